"""
Demo app serving signed JS-SDK configs from environment configuration.
WEIXIN_APPID / WEIXIN_SECRET required; WEIXIN_CACHE_DATABASE_URL shares token and ticket
between replicas through the credential_cache table.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from libwx.client import Weixin
from libwx.config import APP_ID, CACHE_DATABASE_URL, DEMO_HOST, DEMO_PORT
from libwx.database import make_session_factory
from libwx.jsconfig_api import router as jsconfig_router
from libwx.sql_store import SqlCredentialStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared Weixin client on startup; close its HTTP client on shutdown."""
    stores = {}
    if CACHE_DATABASE_URL:
        session_factory = make_session_factory(CACHE_DATABASE_URL)
        stores["token_store"] = SqlCredentialStore.for_app(session_factory, APP_ID, "access_token")
        stores["ticket_store"] = SqlCredentialStore.for_app(session_factory, APP_ID, "jsapi_ticket")
    app.state.weixin = Weixin.from_env(**stores)
    try:
        yield
    finally:
        await app.state.weixin.aclose()
        del app.state.weixin


app = FastAPI(title="libwx", version="0.1.0", lifespan=lifespan)
app.include_router(jsconfig_router)


@app.get("/health")
def health(request: Request):
    """Reports which application the client serves and whether it holds a live token."""
    weixin = getattr(request.app.state, "weixin", None)
    if weixin is None:
        return {"status": "starting", "weixin": None}
    token = weixin.tokens.cached
    return {
        "status": "ok",
        "weixin": {
            "appid": weixin.options.appid,
            "channel": weixin.options.channel,
            "token_cached": token is not None and token.is_valid(),
            "shared_store": bool(CACHE_DATABASE_URL),
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=DEMO_HOST, port=DEMO_PORT)
