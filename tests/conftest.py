"""Shared fixtures: isolated settings, fake Logs Search API, logging reset."""

import logging
from typing import Any, Optional

import httpx
import orjson
import pytest

from utils.config import Settings


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep DD_* / LOG_* variables from the host out of Settings."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def make_settings():
    """Build Settings from keyword overrides, ignoring any .env file."""

    def _make(**overrides: Any) -> Settings:
        values = {"DD_API_KEY": "api-key", "DD_APP_KEY": "app-key"}
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


def log_event(
    message: Optional[str] = "hello",
    timestamp: Optional[str] = "2023-02-06T03:24:00.000Z",
    **attributes: Any,
) -> dict[str, Any]:
    attrs = dict(attributes)
    if message is not None:
        attrs["message"] = message
    if timestamp is not None:
        attrs["timestamp"] = timestamp
    return {"id": "AQAAAY", "type": "log", "attributes": attrs}


def page(events: list[dict[str, Any]], after: Optional[str] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"data": events, "meta": {"status": "done"}}
    if after is not None:
        body["meta"]["page"] = {"after": after}
    return body


class FakeLogsApi:
    """Serves canned pages in order and records every request body."""

    def __init__(self, pages: list[dict[str, Any]], status_code: int = 200) -> None:
        self.pages = list(pages)
        self.status_code = status_code
        self.requests: list[httpx.Request] = []
        self.bodies: list[dict[str, Any]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.bodies.append(orjson.loads(request.content))
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"errors": ["Forbidden"]})
        if not self.pages:
            return httpx.Response(500, json={"errors": ["no more pages scripted"]})
        return httpx.Response(200, content=orjson.dumps(self.pages.pop(0)))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()
