"""
Pytest configuration and fixtures.
"""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from realitydefender import RealityDefender
from realitydefender.settings import Settings

BASE_URL = "https://api.test.realitydefender.xyz"


def media_payload(
    status: str,
    score: float | None = None,
    models: list[dict[str, Any]] | None = None,
    request_id: str = "req-123",
) -> dict[str, Any]:
    """Build a raw media status payload as the API returns it."""
    return {
        "name": "sample",
        "filename": "sample.jpg",
        "originalFileName": "sample.jpg",
        "requestId": request_id,
        "uploadedDate": "2024-01-01T00:00:00Z",
        "mediaType": "image",
        "overallStatus": "analyzed",
        "resultsSummary": {"status": status, "metadata": {"finalScore": score}},
        "models": models or [],
    }


def model_entry(name: str, status: str, score: float | None = None) -> dict[str, Any]:
    return {"name": name, "status": status, "finalScore": score, "data": None}


class ScriptedAPI:
    """
    MockTransport handler that replays scripted (status_code, body) pairs.

    Requests past the end of the script keep receiving the last entry.
    """

    def __init__(self, *script: tuple[int, Any]):
        self.script = list(script)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.script)) - 1
        status_code, body = self.script[index]
        if isinstance(body, (bytes, str)):
            return httpx.Response(status_code, content=body)
        return httpx.Response(status_code, json=body)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def json_body(self, index: int) -> Any:
        return json.loads(self.requests[index].content)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment."""
    return Settings(
        api_key="test-api-key",
        base_url=BASE_URL,
        polling_interval_ms=10,
        max_attempts=30,
        poll_timeout_ms=60000,
        _env_file=None,
    )


@pytest.fixture
def make_client(settings: Settings) -> Callable[[Callable[[httpx.Request], httpx.Response]], RealityDefender]:
    """Create a client whose HTTP traffic goes to the given handler."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> RealityDefender:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return RealityDefender(settings=settings, http_client=http_client)

    return factory


@pytest.fixture
def recorded_events() -> dict[str, list]:
    return {"result": [], "error": []}


@pytest.fixture
def listening_client(make_client, recorded_events):
    """Factory for clients with handlers recording every emitted event."""

    def factory(handler):
        client = make_client(handler)
        client.on("result", recorded_events["result"].append)
        client.on("error", recorded_events["error"].append)
        return client

    return factory
