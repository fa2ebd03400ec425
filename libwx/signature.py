"""
JS-SDK config signing. SHA-1 over the four fields in the platform's fixed order:
jsapi_ticket, noncestr, timestamp, url. Pure functions plus a nonce helper.
"""
import hashlib
import secrets


def sign(ticket: str, url: str, nonce: str, timestamp: int | str) -> str:
    """Signature for wx.config(). Same input always yields the same hex digest."""
    raw = f"jsapi_ticket={ticket}&noncestr={nonce}&timestamp={timestamp}&url={url}"
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


def generate_nonce(length: int = 16) -> str:
    """Random URL-safe nonceStr. The platform caps it at 32 chars."""
    return secrets.token_urlsafe(length)[:length]


def normalize_url(url: str) -> str:
    # The part after '#' is not part of the signed URL
    return url.split("#", 1)[0]
