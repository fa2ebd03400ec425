"""
Result shapes returned by the Weixin wrappers. Responses are plain dicts from the
envelope; these TypedDicts document the fields callers can rely on.
"""
from typing import Literal, NotRequired, TypedDict


Channel = Literal["jssdk", "app", "wxapp"]
MaterialType = Literal["image", "video", "voice", "news"]


class JsConfig(TypedDict):
    debug: bool
    appId: str
    timestamp: int
    nonceStr: str
    signature: str
    jsApiList: list[str]
    jsapi_ticket: str


class AccessToken(TypedDict):
    """User-level token from an OAuth code (session_key on wxapp)."""

    openid: str
    unionid: NotRequired[str]
    session_key: NotRequired[str]
    access_token: NotRequired[str]
    expires_in: NotRequired[int]
    refresh_token: NotRequired[str]
    scope: NotRequired[str]


class AuthInfo(TypedDict):
    openid: str
    unionid: NotRequired[str]
    nickname: str
    sex: int
    province: str
    city: str
    country: str
    headimgurl: str
    privilege: NotRequired[list[str]]


class UserInfo(TypedDict):
    openid: str
    unionid: NotRequired[str]
    subscribe: int
    language: str
    subscribe_time: int
    remark: str
    groupid: int
    tagid_list: list[int]
    subscribe_scene: str
    qr_scene: int
    qr_scene_str: str


class UserListData(TypedDict):
    openid: list[str]


class UserListResult(TypedDict):
    total: int
    count: int
    data: NotRequired[UserListData]
    next_openid: str


class MaterialListResult(TypedDict):
    total_count: int
    item_count: int
    item: list[dict]


class MessageResult(TypedDict):
    errcode: int
    errmsg: str
    msgid: NotRequired[int]


class QrCodeResult(TypedDict):
    ticket: str
    expire_seconds: NotRequired[int]
    url: str
