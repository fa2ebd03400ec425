"""
Global access_token lifecycle: in-memory cache, shared-store read/write-through,
and one upstream fetch per manager no matter how many callers are waiting.
"""
import asyncio
import logging
import time
from typing import Callable

import httpx

from libwx.config import API_BASE, TOKEN_SAFETY_MARGIN
from libwx.credential_store import Credential, CredentialStore
from libwx.errors import CredentialFetchError

logger = logging.getLogger(__name__)


def _consume_exception(task: asyncio.Future) -> None:
    # Waiters may all have been cancelled; mark the exception retrieved so asyncio does not warn.
    if not task.cancelled():
        task.exception()


class RefreshingCache:
    """
    Cache for one short-lived credential (token or ticket).

    Concurrent callers that miss the cache share a single pending refresh task; all of
    them observe its result or its exception. The pending slot is cleared before the
    task settles so the next miss after a failure starts a fresh attempt. A forced caller
    joins only a forced refresh; a plain one still pending is awaited first.
    """

    kind = "credential"

    def __init__(
        self,
        *,
        store: CredentialStore | None = None,
        safety_margin: int = TOKEN_SAFETY_MARGIN,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._safety_margin = safety_margin
        self._clock = clock
        self._credential: Credential | None = None
        self._pending: asyncio.Future | None = None
        self._pending_forced = False

    @property
    def cached(self) -> Credential | None:
        return self._credential

    @property
    def refreshing(self) -> bool:
        return self._pending is not None

    def reset(self) -> None:
        """Forget the in-memory credential. A running refresh is left to finish."""
        self._credential = None

    async def _get(self, force_refresh: bool = False) -> Credential:
        current = self._credential
        if not force_refresh and current is not None and current.is_valid(self._clock()):
            return current
        # A forced caller never adopts a value produced by a store read; it waits that refresh out
        while force_refresh and self._pending is not None and not self._pending_forced:
            await asyncio.wait([self._pending])
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._run_refresh(force_refresh))
            self._pending_forced = force_refresh
            self._pending.add_done_callback(_consume_exception)
        # shield: a cancelled waiter must not cancel the refresh the others are joined on
        return await asyncio.shield(self._pending)

    async def _run_refresh(self, force_refresh: bool) -> Credential:
        try:
            return await self._refresh(force_refresh)
        finally:
            self._pending = None
            self._pending_forced = False

    async def _refresh(self, force_refresh: bool) -> Credential:
        if not force_refresh and self._store is not None:
            shared = await self._read_store()
            if shared is not None and shared.is_valid(self._clock()):
                logger.debug("%s taken from shared store", self.kind)
                self._credential = shared
                return shared

        started = self._clock()
        value, expires_in = await self._fetch()
        # Lifetimes not longer than the margin expire on the upstream deadline only
        margin = self._safety_margin if expires_in > self._safety_margin else 0
        credential = Credential(value=value, expires_at=started + expires_in - margin)
        self._credential = credential
        await self._write_store(credential)
        logger.info("%s refreshed; valid for %ss", self.kind, expires_in - margin)
        return credential

    async def _read_store(self) -> Credential | None:
        try:
            return await self._store.get()
        except Exception as e:
            logger.warning("Reading %s from shared store failed: %s; fetching upstream", self.kind, e)
            return None

    async def _write_store(self, credential: Credential) -> None:
        if self._store is None:
            return
        try:
            await self._store.set(credential.value, credential.expires_at)
        except Exception as e:
            logger.warning("Writing %s to shared store failed: %s", self.kind, e)

    async def _fetch(self) -> tuple[str, int]:
        """Return (value, expires_in seconds) from upstream. Raise CredentialFetchError on failure."""
        raise NotImplementedError


class TokenManager(RefreshingCache):
    """Global access_token via GET /cgi-bin/token (client_credential grant)."""

    kind = "access_token"

    def __init__(
        self,
        http: httpx.AsyncClient,
        appid: str,
        secret: str,
        *,
        base_url: str = API_BASE,
        store: CredentialStore | None = None,
        safety_margin: int = TOKEN_SAFETY_MARGIN,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(store=store, safety_margin=safety_margin, clock=clock)
        self._http = http
        self._appid = appid
        self._secret = secret
        self._base_url = base_url.rstrip("/")

    async def get_token(self, force_refresh: bool = False) -> Credential:
        return await self._get(force_refresh)

    async def _fetch(self) -> tuple[str, int]:
        try:
            r = await self._http.get(
                f"{self._base_url}/cgi-bin/token",
                params={"grant_type": "client_credential", "appid": self._appid, "secret": self._secret},
            )
        except httpx.HTTPError as e:
            raise CredentialFetchError(f"access_token request failed: {type(e).__name__}") from e
        if r.status_code != 200:
            raise CredentialFetchError(f"access_token request failed: HTTP {r.status_code}")
        try:
            data = r.json()
        except ValueError as e:
            raise CredentialFetchError("access_token response is not JSON") from e
        if not isinstance(data, dict):
            raise CredentialFetchError("access_token response is not an object")
        errcode = data.get("errcode") or 0
        if errcode or not data.get("access_token"):
            errmsg = data.get("errmsg", "")
            raise CredentialFetchError(
                f"access_token request rejected: {errcode} {errmsg}".strip(), errcode=errcode, errmsg=errmsg
            )
        try:
            expires_in = int(data.get("expires_in", 7200))
        except (TypeError, ValueError) as e:
            raise CredentialFetchError(f"access_token response has invalid expires_in: {data.get('expires_in')!r}") from e
        return data["access_token"], expires_in
