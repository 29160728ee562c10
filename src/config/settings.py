"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5050)

    # OpenAI Realtime
    openai_api_key: str | None = Field(default=None)
    realtime_url: str = Field(
        default="wss://api.openai.com/v1/realtime",
        description="Realtime websocket endpoint, without the model query parameter.",
    )
    realtime_model: str = Field(default="gpt-4o-realtime-preview-2024-10-01")
    # Base voices: alloy, echo, shimmer. Expressive voices: ash, ballad, coral, sage, verse.
    realtime_voice: str = Field(default="coral")
    realtime_temperature: float = Field(default=0.7, ge=0.6, le=1.2)
    realtime_transcription_model: str = Field(default="whisper-1")
    vad_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    vad_prefix_padding_ms: int = Field(default=300)
    vad_silence_duration_ms: int = Field(default=500)
    realtime_respond_after_tool_output: bool = Field(
        default=True,
        description="Send response.create after each tool output so the model speaks the result.",
    )

    # Relay
    relay_preopen_buffer_frames: int = Field(
        default=0,
        ge=0,
        description=(
            "Caller media frames kept while the model socket is still opening. "
            "0 drops them."
        ),
    )

    # Twilio (Voice)
    twilio_account_sid: str | None = Field(default=None)
    twilio_auth_token: str | None = Field(default=None)
    twilio_from_number: str | None = Field(default=None, description="E.164, e.g. +1555...")
    public_base_url: str | None = Field(
        default=None,
        description="Public base URL for Twilio webhooks (e.g. https://<ngrok>.ngrok-free.app).",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
