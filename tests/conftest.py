"""Test fixtures — a scripted fake backend behind httpx.MockTransport.

Learn: Testing pattern for the portal client:

1. FakeBackend maps (method, path) → a queue of responses. Each request
   pops the next response for its route; the last one repeats.
2. Every request the client sends is recorded, so tests can assert on
   headers, bodies, and how many times the refresh endpoint was hit.
3. The client gets a MemoryTokenStore and a HistoryNavigator, so token
   and redirect side effects are plain attributes to inspect.

No network, no real backend, no shared state between tests.
"""

import json
from typing import Optional

import httpx
import pytest
import pytest_asyncio
import structlog

from partner_portal.auth.tokens import MemoryTokenStore
from partner_portal.client import ApiClient
from partner_portal.navigation import HistoryNavigator

BASE_URL = "http://portal.test"


class FakeBackend:
    """Route table of canned responses plus a log of received requests."""

    def __init__(self):
        self.routes: dict[tuple[str, str], list] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, json_body=None, *, error=None):
        """Queue a response (or a transport error) for METHOD PATH."""
        self.routes.setdefault((method.upper(), path), []).append((status, json_body, error))
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        queue = self.routes.get(key)
        if not queue:
            return httpx.Response(404, json={"detail": "Not found"})

        status, body, error = queue.pop(0) if len(queue) > 1 else queue[0]
        if error is not None:
            raise error
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method.upper() and r.url.path == path
        ]

    @staticmethod
    def body(request: httpx.Request) -> Optional[dict]:
        return json.loads(request.content) if request.content else None


@pytest.fixture(autouse=True)
def reset_structlog():
    """The CLI reconfigures structlog; put the defaults back after every test."""
    yield
    structlog.reset_defaults()


@pytest.fixture()
def backend():
    return FakeBackend()


@pytest.fixture()
def token_store():
    return MemoryTokenStore()


@pytest.fixture()
def navigator():
    return HistoryNavigator()


@pytest_asyncio.fixture()
async def api(backend, token_store, navigator):
    """ApiClient wired to the fake backend."""
    client = ApiClient(
        BASE_URL,
        token_store,
        navigator,
        transport=httpx.MockTransport(backend.handler),
    )
    try:
        yield client
    finally:
        await client.aclose()
