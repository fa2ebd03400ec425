"""
GET /jsconfig: signed wx.config() payload for a page URL, for hosts serving JS-SDK pages.
The Weixin instance comes from app.state.weixin. The raw jsapi_ticket is not sent to the browser.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from libwx.client import Weixin
from libwx.errors import WeixinError

logger = logging.getLogger(__name__)
router = APIRouter(tags=["jsconfig"])


def get_weixin(request: Request) -> Weixin:
    wx = getattr(request.app.state, "weixin", None)
    if wx is None:
        raise HTTPException(
            status_code=503,
            detail={"error": "not_configured", "error_description": "Weixin client is not configured"},
        )
    return wx


@router.get("/jsconfig")
async def jsconfig(
    url: str,
    debug: bool = False,
    jsApiList: str | None = None,
    wx: Weixin = Depends(get_weixin),
):
    """jsApiList is comma-separated; omitted means the default API list."""
    apis = [a.strip() for a in jsApiList.split(",") if a.strip()] if jsApiList else None
    try:
        config = await wx.get_js_config(url, debug=debug, js_api_list=apis)
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"error": "invalid_request", "error_description": str(e)})
    except WeixinError as e:
        logger.warning("jsconfig failed: %s", e)
        raise HTTPException(
            status_code=502,
            detail={"errcode": getattr(e, "errcode", None), "errmsg": getattr(e, "errmsg", None) or str(e)},
        )
    config.pop("jsapi_ticket", None)
    return config
