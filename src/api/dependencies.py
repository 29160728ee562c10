"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from agents.tools import ToolExecutor
from integrations.identity_directory import DEFAULT_CONTACTS, IdentityDirectory

if TYPE_CHECKING:  # pragma: no cover
    from llm.base import BaseRealtimeClient


@lru_cache(maxsize=1)
def _identity_directory() -> IdentityDirectory:
    return IdentityDirectory(DEFAULT_CONTACTS)


def get_identity_directory() -> IdentityDirectory:
    return _identity_directory()


@lru_cache(maxsize=1)
def _tool_executor() -> ToolExecutor:
    return ToolExecutor()


def get_tool_executor() -> ToolExecutor:
    return _tool_executor()


def get_realtime_client() -> BaseRealtimeClient:
    # Lazy import keeps the websocket client out of plain HTTP route imports.
    from llm.realtime_client import build_realtime_client

    return build_realtime_client()
