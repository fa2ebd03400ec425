"""
Credential value type and the pluggable store used to share it across replicas.
When no store is configured the managers keep the credential in memory only.
"""
import inspect
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol


@dataclass(frozen=True)
class Credential:
    """Access token or jsapi ticket with its absolute expiry (epoch seconds)."""

    value: str
    expires_at: float

    def is_valid(self, now: float | None = None) -> bool:
        if now is None:
            now = time.time()
        return bool(self.value) and now < self.expires_at


class CredentialStore(Protocol):
    async def get(self) -> Credential | None: ...

    async def set(self, value: str, expires_at: float) -> None: ...


Getter = Callable[[], Awaitable[Credential | None]]
Setter = Callable[[str, float], Awaitable[None]]


async def _resolve(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class CallbackCredentialStore:
    """
    Adapts the host's get_global_token_cache / set_global_token_cache hook pair.
    Either hook may be None: get() then reports a miss, set() does nothing.
    """

    def __init__(self, getter: Getter | None = None, setter: Setter | None = None):
        self._getter = getter
        self._setter = setter

    async def get(self) -> Credential | None:
        if self._getter is None:
            return None
        cached = await _resolve(self._getter())
        if cached is None:
            return None
        if not isinstance(cached, Credential):
            raise TypeError(f"credential cache getter must return Credential or None, got {type(cached).__name__}")
        return cached

    async def set(self, value: str, expires_at: float) -> None:
        if self._setter is None:
            return
        await _resolve(self._setter(value, expires_at))


def callback_store(getter: Getter | None, setter: Setter | None) -> CallbackCredentialStore | None:
    """Build a store from optional hooks; None when neither hook is given."""
    if getter is None and setter is None:
        return None
    return CallbackCredentialStore(getter, setter)
