"""
libwx configuration. Defaults for the WeChat API host and token handling.
No secrets in this file; appid/secret come from env or from Options.
"""
import os

# Base endpoint for relative request paths
API_BASE = os.environ.get("WEIXIN_API_BASE", "https://api.weixin.qq.com").rstrip("/")

# Application credentials used by Weixin.from_env() and the demo app
APP_ID = os.environ.get("WEIXIN_APPID", "")
APP_SECRET = os.environ.get("WEIXIN_SECRET", "")

# Channel: jssdk (official account), wxapp (mini program) or app
CHANNEL = os.environ.get("WEIXIN_CHANNEL", "jssdk")
CHANNELS = {"jssdk", "wxapp", "app"}

# Seconds subtracted from upstream expires_in (7200) to absorb clock skew and latency between replicas
TOKEN_SAFETY_MARGIN = int(os.environ.get("WEIXIN_TOKEN_SAFETY_MARGIN", "300"))

# Per-request timeout (seconds) for the shared httpx client
REQUEST_TIMEOUT = float(os.environ.get("WEIXIN_REQUEST_TIMEOUT", "10"))

# Optional SQLAlchemy URL for sharing token/ticket across replicas. Empty = in-memory only.
CACHE_DATABASE_URL = os.environ.get("WEIXIN_CACHE_DATABASE_URL", "").strip()

# Bind address of the demo app in libwx/main.py
DEMO_HOST = os.environ.get("WEIXIN_DEMO_HOST", "127.0.0.1")
DEMO_PORT = int(os.environ.get("WEIXIN_DEMO_PORT", "8000"))

# errcodes that mean the access_token we sent is stale: invalid credential, invalid token, token expired
CREDENTIAL_INVALID_CODES = {40001, 40014, 42001}

# img_sec_check: content is risky
ERRCODE_RISKY_CONTENT = 87014

# Default JS-SDK APIs requested by get_js_config when none are given
DEFAULT_JS_API_LIST = [
    "onMenuShareTimeline",
    "onMenuShareAppMessage",
    "onMenuShareQQ",
    "onMenuShareWeibo",
    "onMenuShareQZone",
    "startRecord",
    "stopRecord",
    "onVoiceRecordEnd",
    "playVoice",
    "pauseVoice",
    "stopVoice",
    "onVoicePlayEnd",
    "uploadVoice",
    "downloadVoice",
    "chooseImage",
    "previewImage",
    "uploadImage",
    "downloadImage",
    "translateVoice",
    "getNetworkType",
    "openLocation",
    "getLocation",
    "hideOptionMenu",
    "showOptionMenu",
    "hideMenuItems",
    "showMenuItems",
    "hideAllNonBaseMenuItem",
    "showAllNonBaseMenuItem",
    "closeWindow",
    "scanQRCode",
    "chooseWXPay",
]
