"""Twilio Media Streams wire protocol.

Inbound frames are JSON objects keyed by ``event`` (``start``, ``media``,
``stop``, ``mark``, ...). Outbound audio goes back as ``media`` frames
addressed by ``streamSid``. Payloads are base64 mu-law 8kHz and are passed
through untouched.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from agents.errors import MalformedFrameError
from agents.schemas import PLACEHOLDER_NAME, PLACEHOLDER_PHONE, CallContext


@dataclass(frozen=True, slots=True)
class StartEvent:
    stream_sid: str
    context: CallContext


@dataclass(frozen=True, slots=True)
class MediaEvent:
    payload: str
    track: str | None = None

    @property
    def is_inbound(self) -> bool:
        return self.track in (None, "inbound")


@dataclass(frozen=True, slots=True)
class StopEvent:
    stream_sid: str | None


@dataclass(frozen=True, slots=True)
class OtherEvent:
    name: str


TwilioEvent = StartEvent | MediaEvent | StopEvent | OtherEvent


def parse_twilio_ws_message(text: str | bytes) -> dict[str, Any]:
    try:
        message = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise MalformedFrameError(f"Invalid JSON frame: {exc}") from exc
    if not isinstance(message, dict):
        raise MalformedFrameError("Frame is not a JSON object")
    return message


def _param(params: dict[str, Any], key: str, default: str) -> str:
    value = params.get(key)
    if value is None:
        return default
    value = str(value).strip()
    return value or default


def parse_twilio_event(text: str | bytes) -> TwilioEvent:
    message = parse_twilio_ws_message(text)
    event = str(message.get("event") or "")

    if event == "media":
        media = message.get("media")
        if not isinstance(media, dict) or not isinstance(media.get("payload"), str):
            raise MalformedFrameError("media event without payload")
        return MediaEvent(payload=media["payload"], track=media.get("track"))

    if event == "start":
        start = message.get("start")
        if not isinstance(start, dict) or not start.get("streamSid"):
            raise MalformedFrameError("start event without streamSid")
        stream_sid = str(start["streamSid"])
        params = start.get("customParameters") or {}
        if not isinstance(params, dict):
            params = {}
        context = CallContext(
            caller_name=_param(params, "name", PLACEHOLDER_NAME),
            caller_phone=_param(params, "phone", PLACEHOLDER_PHONE),
            stream_sid=stream_sid,
        )
        return StartEvent(stream_sid=stream_sid, context=context)

    if event == "stop":
        return StopEvent(stream_sid=message.get("streamSid"))

    return OtherEvent(name=event or "<missing>")


def build_media_frame(stream_sid: str, audio_b64: str) -> dict[str, Any]:
    """Wrap a base64 audio chunk as an outbound Twilio media frame."""

    try:
        raw = base64.b64decode(audio_b64, validate=True)
    except binascii.Error as exc:
        raise MalformedFrameError(f"Invalid base64 audio: {exc}") from exc
    return {
        "event": "media",
        "streamSid": stream_sid,
        "media": {"payload": base64.b64encode(raw).decode("ascii")},
    }
