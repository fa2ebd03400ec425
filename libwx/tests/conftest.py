"""
Pytest configuration for libwx. Fake upstream (httpx.MockTransport) and a settable clock
so token expiry can be exercised without sleeping or touching the network.
"""
import asyncio
import os

import httpx
import pytest

# Keep real credentials from the environment out of tests
os.environ["WEIXIN_APPID"] = "wx-test-app"
os.environ["WEIXIN_SECRET"] = "test-secret"
os.environ["WEIXIN_CHANNEL"] = "jssdk"
os.environ.pop("WEIXIN_CACHE_DATABASE_URL", None)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """
    Routes by URL path. Each route holds a queue of replies; the last reply repeats.
    A reply is a dict (JSON 200), an exception (raised as transport failure)
    or a callable(request) -> httpx.Response.
    """

    def __init__(self, delay: float = 0.01):
        self.delay = delay
        self.calls: list[httpx.Request] = []
        self._routes: dict[str, list] = {}

    def on(self, path: str, *replies) -> "FakeUpstream":
        self._routes.setdefault(path, []).extend(replies)
        return self

    def count(self, path: str) -> int:
        return sum(1 for r in self.calls if r.url.path == path)

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.calls if r.url.path == path]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        # Suspend so concurrent callers really overlap with the in-flight request
        await asyncio.sleep(self.delay)
        queue = self._routes.get(request.url.path)
        if not queue:
            return httpx.Response(404, json={"errcode": -1, "errmsg": "no route"})
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        return httpx.Response(200, json=reply)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


TOKEN_PATH = "/cgi-bin/token"
TICKET_PATH = "/cgi-bin/ticket/getticket"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def upstream():
    return FakeUpstream()
