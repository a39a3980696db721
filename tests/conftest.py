"""Shared fixtures: an in-process upstream built on httpx.MockTransport."""

import json
from typing import Callable, Optional

import httpx
import pytest

from hls_relay.config import Settings

DIRECTORY_URL = "https://directory.example/channels.json"


class FakeUpstream:
    """Routes requests by absolute URL and records what the relay sent."""

    def __init__(self):
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, url: str, status_code: int = 200, content: bytes | str = b"", **kwargs) -> None:
        self.routes[url] = lambda request: httpx.Response(status_code, content=content, **kwargs)

    def add_handler(self, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[url] = handler

    def add_directory(self, channels: list[dict], url: str = DIRECTORY_URL) -> None:
        self.add(url, content=json.dumps({"channels": channels}))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(str(request.url))
        if handler is None:
            return httpx.Response(404, content=b"not found")
        return handler(request)

    def last_request(self, url: str) -> Optional[httpx.Request]:
        for request in reversed(self.requests):
            if str(request.url) == url:
                return request
        return None

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle), follow_redirects=True)


@pytest.fixture
def upstream() -> FakeUpstream:
    """A fresh fake upstream for each test."""
    return FakeUpstream()


@pytest.fixture
def test_settings() -> Settings:
    """Settings pointing at the fake directory, independent of the environment."""
    return Settings(
        _env_file=None,
        directory_url=DIRECTORY_URL,
        user_agent="TestPlayer/1.0",
        trusted_origin="https://front.example",
    )
