"""Shared abstractions for realtime model connections."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any


class RealtimeConnection(ABC):
    """One open socket to a speech-to-speech model endpoint."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether events can currently be sent."""

    @abstractmethod
    async def send_json(self, event: dict[str, Any]) -> None:
        """Serialize and send one event."""

    @abstractmethod
    def messages(self) -> AsyncIterator[str]:
        """Yield raw text frames until the socket closes."""

    @abstractmethod
    async def close(self) -> None:
        """Close the socket. Safe to call more than once."""


class BaseRealtimeClient(ABC):
    """Abstract base class for realtime model providers."""

    @abstractmethod
    async def connect(self) -> RealtimeConnection:
        """Open a new connection for one call."""
