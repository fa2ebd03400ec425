"""
Outbound request dispatch. Attaches the global access_token as a query parameter,
sends through the shared httpx client and unwraps the {errcode, errmsg, ...} envelope.
A stale-token errcode is retried once with a forced token refresh; anything else surfaces.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urlencode

import httpx

from libwx.config import API_BASE, CREDENTIAL_INVALID_CODES
from libwx.credential_store import Credential
from libwx.errors import RemoteApiError, TransportError

logger = logging.getLogger(__name__)


class TokenSource(Protocol):
    async def get_token(self, force_refresh: bool = False) -> Credential: ...


@dataclass
class Request:
    """
    One API call. url is absolute or relative to the API base.
    body is sent as JSON; files (httpx multipart mapping) takes precedence over body.
    with_token=False for the OAuth endpoints that authenticate with appid/secret or a user token.
    binary=True for media/image endpoints: non-JSON responses come back as MediaData.
    """

    url: str
    method: str = "GET"
    query: dict[str, Any] | None = None
    body: Any = None
    files: dict[str, Any] | None = None
    with_token: bool = True
    binary: bool = False


@dataclass
class MediaData:
    content: bytes
    content_type: str

    def __len__(self) -> int:
        return len(self.content)


def _is_envelope(content_type: str) -> bool:
    """Binary endpoints report errors as JSON (sometimes labelled text/plain)."""
    ct = content_type.lower()
    return ct.startswith("application/json") or ct.startswith("text/plain")


class RequestDispatcher:
    def __init__(self, http: httpx.AsyncClient, tokens: TokenSource, *, base_url: str = API_BASE) -> None:
        self._http = http
        self._tokens = tokens
        self._base_url = base_url.rstrip("/")

    def build_url(self, req: Request, access_token: str | None = None) -> str:
        """Resolve req.url against the base and append the query string (token last, once)."""
        if req.url.startswith(("http://", "https://")):
            url = req.url
        else:
            url = f"{self._base_url}/{req.url.lstrip('/')}"
        params = {k: v for k, v in (req.query or {}).items() if v is not None}
        if access_token is not None:
            params.pop("access_token", None)
            params["access_token"] = access_token
        if not params:
            return url
        sep = "&" if "?" in url else "?"
        return f"{url}{sep}{urlencode(params)}"

    async def dispatch(self, req: Request) -> Any:
        try:
            return await self._send(req, force_refresh=False)
        except RemoteApiError as e:
            if not req.with_token or e.errcode not in CREDENTIAL_INVALID_CODES:
                raise
            logger.warning("access_token rejected by %s (errcode %s); refreshing and retrying once", req.url, e.errcode)
        return await self._send(req, force_refresh=True)

    async def _send(self, req: Request, force_refresh: bool) -> Any:
        token = None
        if req.with_token:
            token = (await self._tokens.get_token(force_refresh)).value
        url = self.build_url(req, token)

        kwargs: dict[str, Any] = {}
        if req.files is not None:
            kwargs["files"] = req.files
        elif req.body is not None:
            # ensure_ascii=False: the platform stores \uXXXX escapes literally (menus, messages)
            kwargs["content"] = json.dumps(req.body, ensure_ascii=False).encode("utf-8")
            kwargs["headers"] = {"Content-Type": "application/json; charset=utf-8"}

        try:
            r = await self._http.request(req.method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{req.method} {req.url} failed: {type(e).__name__}: {e}") from e
        if r.status_code >= 400:
            raise TransportError(f"{req.method} {req.url} returned HTTP {r.status_code}", status_code=r.status_code)

        content_type = r.headers.get("content-type", "")
        if req.binary and not _is_envelope(content_type):
            return MediaData(content=r.content, content_type=content_type)

        try:
            data = r.json()
        except ValueError as e:
            raise TransportError(f"{req.method} {req.url} returned a non-JSON body", status_code=r.status_code) from e
        if isinstance(data, dict):
            errcode = data.get("errcode") or 0
            if errcode:
                try:
                    errcode = int(errcode)
                except (TypeError, ValueError) as e:
                    raise TransportError(
                        f"{req.method} {req.url} returned a malformed errcode {errcode!r}", status_code=r.status_code
                    ) from e
                raise RemoteApiError(errcode, str(data.get("errmsg", "")))
        return data
