"""Builds the realtime ``session.update`` payload for a call."""

from __future__ import annotations

from typing import Any

from agents.schemas import PLACEHOLDER_NAME, PLACEHOLDER_PHONE, CallContext
from config.settings import Settings
from prompts.loader import load_prompt

AUDIO_FORMAT = "g711_ulaw"


def build_instructions(system_message: str, context: CallContext | None) -> str:
    name = context.caller_name if context else PLACEHOLDER_NAME
    phone = context.caller_phone if context else PLACEHOLDER_PHONE
    return f"{system_message.strip()} Me llamo {name} y mi número es {phone}."


def build_session_update(
    context: CallContext | None,
    *,
    settings: Settings,
    tools: list[dict[str, Any]],
    system_message: str | None = None,
) -> dict[str, Any]:
    """Return the ``session.update`` event with the caller identity interpolated.

    A missing context yields the placeholder identity.
    """

    if system_message is None:
        system_message = load_prompt("system_message.txt")

    return {
        "type": "session.update",
        "session": {
            "modalities": ["text", "audio"],
            "instructions": build_instructions(system_message, context),
            "voice": settings.realtime_voice,
            "input_audio_format": AUDIO_FORMAT,
            "output_audio_format": AUDIO_FORMAT,
            "input_audio_transcription": {"model": settings.realtime_transcription_model},
            "turn_detection": {
                "type": "server_vad",
                "threshold": settings.vad_threshold,
                "prefix_padding_ms": settings.vad_prefix_padding_ms,
                "silence_duration_ms": settings.vad_silence_duration_ms,
            },
            "tools": tools,
            "tool_choice": "auto",
            "temperature": settings.realtime_temperature,
            "max_response_output_tokens": "inf",
        },
    }
