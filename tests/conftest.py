from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from llm.base import BaseRealtimeClient, RealtimeConnection  # noqa: E402


class FakeRealtimeConnection(RealtimeConnection):
    """Records outbound events; replays scripted model frames.

    With ``release_after`` set, frames are held back until a ``session.update``
    whose instructions contain that text has been sent.
    """

    def __init__(self, frames: list[Any] | None = None, *, release_after: str | None = None) -> None:
        self.sent: list[dict[str, Any]] = []
        self.frames = [f if isinstance(f, str) else json.dumps(f) for f in frames or []]
        self.release_after = release_after
        self.close_calls = 0
        self._open = True
        self._closed: asyncio.Event | None = None
        self._released: asyncio.Event | None = None

    @property
    def is_open(self) -> bool:
        return self._open

    def _closed_event(self) -> asyncio.Event:
        if self._closed is None:
            self._closed = asyncio.Event()
        return self._closed

    def _released_event(self) -> asyncio.Event:
        if self._released is None:
            self._released = asyncio.Event()
            if self.release_after is None:
                self._released.set()
        return self._released

    async def send_json(self, event: dict[str, Any]) -> None:
        self.sent.append(event)
        if (
            self.release_after is not None
            and event.get("type") == "session.update"
            and self.release_after in event["session"]["instructions"]
        ):
            self._released_event().set()

    async def messages(self):
        await self._released_event().wait()
        for frame in self.frames:
            yield frame
        await self._closed_event().wait()

    async def close(self) -> None:
        self.close_calls += 1
        self._open = False
        self._closed_event().set()

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [e for e in self.sent if e.get("type") == event_type]


class FakeRealtimeClient(BaseRealtimeClient):
    def __init__(self, connection: RealtimeConnection) -> None:
        self.connection = connection
        self.connect_calls = 0

    async def connect(self) -> RealtimeConnection:
        self.connect_calls += 1
        return self.connection


@pytest.fixture(scope="session")
def app():
    # Must be set before importing modules that read settings.
    os.environ["PUBLIC_BASE_URL"] = "https://relay.example.com"
    os.environ.pop("OPENAI_API_KEY", None)
    os.environ.pop("TWILIO_ACCOUNT_SID", None)
    os.environ.pop("TWILIO_AUTH_TOKEN", None)

    import importlib

    # Ensure clean import with the test settings.
    for module_name in [
        "config.settings",
        "api.dependencies",
        "api.twilio_routes",
        "api.routes",
        "main",
    ]:
        sys.modules.pop(module_name, None)

    main = importlib.import_module("main")
    return main.app


@pytest.fixture()
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
