"""
Weixin SDK facade. Wires the token/ticket managers and the dispatcher around one
shared httpx.AsyncClient and exposes one coroutine per remote operation.

    async with Weixin(Options(appid="wx...", secret="...")) as wx:
        info = await wx.get_user_info(openid)
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, get_args

import httpx

from libwx.config import API_BASE, APP_ID, APP_SECRET, CHANNEL, CHANNELS, DEFAULT_JS_API_LIST
from libwx.config import ERRCODE_RISKY_CONTENT, REQUEST_TIMEOUT, TOKEN_SAFETY_MARGIN
from libwx.credential_store import CredentialStore, Getter, Setter, callback_store
from libwx.dispatcher import MediaData, Request, RequestDispatcher
from libwx.errors import RemoteApiError
from libwx.signature import generate_nonce, normalize_url, sign
from libwx.ticket_manager import TicketManager
from libwx.token_manager import TokenManager
from libwx.types import (
    AccessToken,
    AuthInfo,
    Channel,
    JsConfig,
    MaterialListResult,
    MaterialType,
    MessageResult,
    QrCodeResult,
    UserInfo,
    UserListResult,
)

logger = logging.getLogger(__name__)

MATERIAL_TYPES = set(get_args(MaterialType))
MATERIAL_PAGE_SIZE = 20


@dataclass
class Options:
    """
    appid/secret identify the application. channel selects jssdk (official account),
    wxapp (mini program) or app. The cache hooks share the global token between replicas;
    without them the token lives in this process only. token_store, when given, is used
    instead of the hooks (e.g. SqlCredentialStore).
    """

    appid: str
    secret: str
    channel: Channel = "jssdk"
    set_global_token_cache: Setter | None = None
    get_global_token_cache: Getter | None = None
    token_store: CredentialStore | None = None
    ticket_store: CredentialStore | None = None
    token_safety_margin: int | None = None
    base_url: str = API_BASE


class Weixin:
    def __init__(
        self,
        options: Options,
        *,
        http: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._owns_http = http is None
        self._http = http if http is not None else httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        self._clock = clock
        self.set_options(options)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "Weixin":
        """Build from WEIXIN_APPID / WEIXIN_SECRET / WEIXIN_CHANNEL; kwargs go to Options."""
        kwargs.setdefault("appid", APP_ID)
        kwargs.setdefault("secret", APP_SECRET)
        kwargs.setdefault("channel", CHANNEL)
        return cls(Options(**kwargs))

    def set_options(self, options: Options) -> None:
        """Replace options. Cached token and ticket are dropped with the old managers."""
        if options.channel not in CHANNELS:
            raise ValueError(f"channel must be one of {sorted(CHANNELS)}, got {options.channel!r}")
        if not options.appid or not options.secret:
            raise ValueError("appid and secret are required")
        self.options = options
        margin = TOKEN_SAFETY_MARGIN if options.token_safety_margin is None else options.token_safety_margin
        store = options.token_store or callback_store(
            options.get_global_token_cache, options.set_global_token_cache
        )
        self.tokens = TokenManager(
            self._http,
            options.appid,
            options.secret,
            base_url=options.base_url,
            store=store,
            safety_margin=margin,
            clock=self._clock,
        )
        self.dispatcher = RequestDispatcher(self._http, self.tokens, base_url=options.base_url)
        self.tickets = TicketManager(
            self.dispatcher, store=options.ticket_store, safety_margin=margin, clock=self._clock
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "Weixin":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # --- Credentials ---------------------------------------------------------------

    async def get_global_token(self, refresh: bool = False) -> str:
        """Global access_token; refresh=True skips every cache and hits upstream."""
        return (await self.tokens.get_token(force_refresh=refresh)).value

    async def request(self, req: Request) -> Any:
        """Generic call; access_token is added to the query unless req.with_token is False."""
        return await self.dispatcher.dispatch(req)

    async def get_ticket(self) -> str:
        return (await self.tickets.get_ticket()).value

    async def get_js_config(
        self,
        url: str,
        debug: bool = False,
        js_api_list: list[str] | None = None,
    ) -> JsConfig:
        """Signed wx.config() payload for the page at url. Official account (jssdk) only."""
        if not url:
            raise ValueError("url is required")
        ticket = await self.get_ticket()
        nonce = generate_nonce()
        ts = int(self._clock())
        return {
            "debug": debug,
            "appId": self.options.appid,
            "timestamp": ts,
            "nonceStr": nonce,
            "signature": sign(ticket, normalize_url(url), nonce, ts),
            "jsApiList": list(js_api_list) if js_api_list else list(DEFAULT_JS_API_LIST),
            "jsapi_ticket": ticket,
        }

    # --- OAuth (user-level, no global token) ----------------------------------------

    async def get_access_token(self, code: str) -> AccessToken:
        """Exchange a login code. wxapp uses jscode2session; other channels the web OAuth endpoint."""
        if self.options.channel == "wxapp":
            req = Request(
                url="/sns/jscode2session",
                query={
                    "appid": self.options.appid,
                    "secret": self.options.secret,
                    "js_code": code,
                    "grant_type": "authorization_code",
                },
                with_token=False,
            )
        else:
            req = Request(
                url="/sns/oauth2/access_token",
                query={
                    "appid": self.options.appid,
                    "secret": self.options.secret,
                    "code": code,
                    "grant_type": "authorization_code",
                },
                with_token=False,
            )
        return await self.dispatcher.dispatch(req)

    async def get_auth_info(self, openid: str, access_token: str) -> AuthInfo:
        """access_token is the user's OAuth token, not the global one."""
        return await self.dispatcher.dispatch(
            Request(
                url="/sns/userinfo",
                query={"access_token": access_token, "openid": openid, "lang": "zh_CN"},
                with_token=False,
            )
        )

    # --- Official account ------------------------------------------------------------

    async def get_user_info(self, openid: str) -> UserInfo:
        return await self.dispatcher.dispatch(
            Request(url="/cgi-bin/user/info", query={"openid": openid, "lang": "zh_CN"})
        )

    async def get_user_list(self, next_openid: str | None = None) -> UserListResult:
        return await self.dispatcher.dispatch(Request(url="/cgi-bin/user/get", query={"next_openid": next_openid}))

    async def get_material_list(self, type: MaterialType, offset: int = 0) -> MaterialListResult:
        if type not in MATERIAL_TYPES:
            raise ValueError(f"material type must be one of {sorted(MATERIAL_TYPES)}")
        return await self.dispatcher.dispatch(
            Request(
                url="/cgi-bin/material/batchget_material",
                method="POST",
                body={"type": type, "offset": offset, "count": MATERIAL_PAGE_SIZE},
            )
        )

    async def create_menu(self, menu: dict) -> dict:
        return await self.dispatcher.dispatch(Request(url="/cgi-bin/menu/create", method="POST", body=menu))

    async def get_menu(self) -> dict:
        data = await self.dispatcher.dispatch(Request(url="/cgi-bin/menu/get"))
        return data.get("menu", {"button": []})

    async def send_message(self, message: dict) -> MessageResult:
        return await self.dispatcher.dispatch(Request(url="/cgi-bin/message/custom/send", method="POST", body=message))

    async def send_template_message(self, message: dict) -> MessageResult:
        return await self.dispatcher.dispatch(
            Request(url="/cgi-bin/message/template/send", method="POST", body=message)
        )

    async def get_qr_code(self, options: dict) -> QrCodeResult:
        return await self.dispatcher.dispatch(Request(url="/cgi-bin/qrcode/create", method="POST", body=options))

    # --- Media ------------------------------------------------------------------------

    async def download_media(self, media_id: str) -> MediaData | dict:
        """Raw media bytes. Video media comes back as JSON ({"video_url": ...}) instead."""
        return await self.dispatcher.dispatch(
            Request(url="/cgi-bin/media/get", query={"media_id": media_id}, binary=True)
        )

    # --- Mini program -----------------------------------------------------------------

    async def get_wxacode_unlimit(self, options: dict) -> MediaData:
        return await self.dispatcher.dispatch(
            Request(url="/wxa/getwxacodeunlimit", method="POST", body=options, binary=True)
        )

    async def img_sec_check(self, image: bytes) -> bool:
        """False when the platform flags the image (errcode 87014). Image < 1MB, <= 750x1334px."""
        try:
            await self.dispatcher.dispatch(
                Request(
                    url="/wxa/img_sec_check",
                    method="POST",
                    files={"media": ("image", image, "application/octet-stream")},
                )
            )
        except RemoteApiError as e:
            if e.errcode == ERRCODE_RISKY_CONTENT:
                logger.info("img_sec_check flagged image (%s)", e.errmsg)
                return False
            raise
        return True
