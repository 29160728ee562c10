"""API-facing Pydantic models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class StatusResponse(BaseModel):
    message: str


class MakeCallRequest(BaseModel):
    name: str | None = Field(default=None, description="Display name injected into the agent instructions.")
    phone: str | None = Field(default=None, description="E.164 phone number, e.g. +593...")


class MakeCallResponse(BaseModel):
    message: str
    call_sid: str
