"""
Error taxonomy for libwx.
CredentialFetchError: token/ticket could not be obtained (shared by all waiters of one refresh).
RemoteApiError: non-zero errcode in the response envelope.
TransportError: HTTP layer failure (connection, timeout, non-2xx, unparsable body).
"""


class WeixinError(Exception):
    """Base class for all libwx errors."""


class CredentialFetchError(WeixinError):
    def __init__(self, message: str, errcode: int | None = None, errmsg: str | None = None):
        super().__init__(message)
        self.errcode = errcode
        self.errmsg = errmsg


class RemoteApiError(WeixinError):
    def __init__(self, errcode: int, errmsg: str):
        super().__init__(f"{errcode}: {errmsg}")
        self.errcode = errcode
        self.errmsg = errmsg


class TransportError(WeixinError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
