"""
jsapi_ticket lifecycle. Same cache/dedup shape as the access_token, with its own
pending slot and expiry; the fetch goes through the dispatcher, which supplies the token.
"""
import time
from typing import Callable

from libwx.config import TOKEN_SAFETY_MARGIN
from libwx.credential_store import Credential, CredentialStore
from libwx.dispatcher import Request, RequestDispatcher
from libwx.errors import CredentialFetchError, RemoteApiError, TransportError
from libwx.token_manager import RefreshingCache


class TicketManager(RefreshingCache):
    kind = "jsapi_ticket"

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        *,
        store: CredentialStore | None = None,
        safety_margin: int = TOKEN_SAFETY_MARGIN,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(store=store, safety_margin=safety_margin, clock=clock)
        self._dispatcher = dispatcher

    async def get_ticket(self, force_refresh: bool = False) -> Credential:
        return await self._get(force_refresh)

    async def _fetch(self) -> tuple[str, int]:
        try:
            data = await self._dispatcher.dispatch(Request(url="/cgi-bin/ticket/getticket", query={"type": "jsapi"}))
        except RemoteApiError as e:
            raise CredentialFetchError(f"jsapi_ticket request rejected: {e}", errcode=e.errcode, errmsg=e.errmsg) from e
        except TransportError as e:
            raise CredentialFetchError(f"jsapi_ticket request failed: {e}") from e
        ticket = data.get("ticket") if isinstance(data, dict) else None
        if not ticket:
            raise CredentialFetchError("jsapi_ticket response has no ticket")
        try:
            expires_in = int(data.get("expires_in", 7200))
        except (TypeError, ValueError) as e:
            raise CredentialFetchError(f"jsapi_ticket response has invalid expires_in: {data.get('expires_in')!r}") from e
        return ticket, expires_in
