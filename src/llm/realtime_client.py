"""OpenAI Realtime websocket client."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosed

from agents.errors import ConfigurationError
from config.settings import Settings, get_settings
from llm.base import BaseRealtimeClient, RealtimeConnection

LOGGER = logging.getLogger(__name__)


class OpenAIRealtimeConnection(RealtimeConnection):
    def __init__(self, ws: Any) -> None:
        self._ws = ws
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    async def send_json(self, event: dict[str, Any]) -> None:
        try:
            await self._ws.send(json.dumps(event))
        except ConnectionClosed:
            self._open = False
            raise

    async def messages(self) -> AsyncIterator[str]:
        try:
            async for message in self._ws:
                if isinstance(message, bytes):
                    message = message.decode("utf-8")
                yield message
        finally:
            self._open = False

    async def close(self) -> None:
        if not self._open:
            return
        self._open = False
        await self._ws.close()


class OpenAIRealtimeClient(BaseRealtimeClient):
    """Dials the OpenAI Realtime API, one websocket per call."""

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self._api_key = settings.openai_api_key
        self._url = f"{settings.realtime_url}?{urlencode({'model': settings.realtime_model})}"

    @property
    def url(self) -> str:
        return self._url

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "OpenAI-Beta": "realtime=v1",
        }

    async def connect(self) -> RealtimeConnection:
        if not self._api_key:
            raise ConfigurationError("OPENAI_API_KEY is not configured")

        LOGGER.info("Connecting to the OpenAI Realtime API: %s", self._url)
        ws = await websockets.connect(
            self._url,
            additional_headers=self.headers(),
            ping_interval=20,
            ping_timeout=20,
        )
        LOGGER.info("Connected to the OpenAI Realtime API")
        return OpenAIRealtimeConnection(ws)


def build_realtime_client() -> BaseRealtimeClient:
    """Instantiate the configured realtime connector."""

    return OpenAIRealtimeClient()
