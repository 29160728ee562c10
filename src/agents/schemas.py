"""Pydantic schemas exchanged between the relay and its collaborators."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

PLACEHOLDER_NAME = "usuario"
PLACEHOLDER_PHONE = "desconocido"


class CallContext(BaseModel):
    """Caller identity captured from the telephony ``start`` event."""

    model_config = ConfigDict(frozen=True)

    caller_name: str = PLACEHOLDER_NAME
    caller_phone: str = PLACEHOLDER_PHONE
    stream_sid: str | None = None

    @property
    def identity(self) -> tuple[str, str]:
        return (self.caller_name, self.caller_phone)


class ToolCallRequest(BaseModel):
    """Completed function call emitted by the realtime model."""

    name: str
    call_id: str
    arguments: dict[str, Any] | None = Field(default_factory=dict)


class ToolCallResult(BaseModel):
    """Tool output correlated to its originating request by ``call_id``."""

    call_id: str
    output: str

    def to_event(self) -> dict[str, Any]:
        return {
            "type": "conversation.item.create",
            "item": {
                "type": "function_call_output",
                "call_id": self.call_id,
                "output": self.output,
            },
        }
