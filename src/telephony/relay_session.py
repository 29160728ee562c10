"""Per-call duplex relay between a Twilio media stream and a realtime model.

One ``MediaRelaySession`` owns the caller's websocket and one model
connection. Two loops run concurrently on the event loop: the telephony
reader (``run``) and the model reader started once the model socket opens.
Tool calls run in their own tasks and post their output back on the model
connection when done.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from collections import deque
from typing import Any, Protocol

from agents.errors import MalformedFrameError, RelayError, ToolArgumentsError
from agents.schemas import CallContext, ToolCallRequest, ToolCallResult
from agents.session_config import build_session_update
from agents.tools import ToolExecutor
from config.settings import Settings, get_settings
from integrations.twilio_streaming import (
    MediaEvent,
    OtherEvent,
    StartEvent,
    StopEvent,
    build_media_frame,
    parse_twilio_event,
)
from llm.base import BaseRealtimeClient, RealtimeConnection

LOGGER = logging.getLogger(__name__)

# Model events worth logging. See the OpenAI Realtime API reference.
LOG_EVENT_TYPES = frozenset(
    {
        "error",
        "response.content.done",
        "rate_limits.updated",
        "response.done",
        "input_audio_buffer.committed",
        "input_audio_buffer.speech_stopped",
        "input_audio_buffer.speech_started",
        "session.created",
        "response.function_call.done",
        "response.function_call.failed",
    }
)

_UNCONFIGURED = object()


class RelayState(str, enum.Enum):
    CONNECTING = "connecting"
    READY = "ready"
    ACTIVE = "active"
    CLOSED = "closed"


class TelephonySocket(Protocol):
    async def receive_frame(self) -> str | bytes: ...

    async def send_text(self, data: str) -> None: ...


class TelephonyDisconnected(Exception):
    """Raised by socket adapters when the caller's websocket goes away."""


class MediaRelaySession:
    def __init__(
        self,
        telephony: TelephonySocket,
        *,
        realtime_client: BaseRealtimeClient,
        tool_executor: ToolExecutor,
        settings: Settings | None = None,
        disconnect_errors: tuple[type[BaseException], ...] = (),
    ) -> None:
        self._telephony = telephony
        self._realtime_client = realtime_client
        self._tools = tool_executor
        self._settings = settings or get_settings()
        self._disconnect_errors = (TelephonyDisconnected, *disconnect_errors)

        self._state = RelayState.CONNECTING
        self._model: RealtimeConnection | None = None
        self._model_ready = False
        self._context: CallContext | None = None
        self._configured_for: Any = _UNCONFIGURED
        self._configured = False
        self._stream_sid: str | None = None
        self._telephony_closed = False

        self._pending_media: deque[str] = deque(maxlen=self._settings.relay_preopen_buffer_frames)
        self._model_task: asyncio.Task | None = None
        self._tool_tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> RelayState:
        return self._state

    @property
    def call_context(self) -> CallContext | None:
        return self._context

    @property
    def stream_sid(self) -> str | None:
        return self._stream_sid

    @property
    def model_open(self) -> bool:
        return self._model is not None and self._model.is_open

    # Lifecycle

    async def run(self) -> None:
        """Relay until the caller hangs up or sends ``stop``."""

        self._model_task = asyncio.create_task(self._run_model())
        try:
            while not self._telephony_closed:
                try:
                    message = await self._telephony.receive_frame()
                except self._disconnect_errors:
                    LOGGER.info("Client disconnected.")
                    break
                await self.handle_telephony_message(message)
        finally:
            await self.on_telephony_closed()

    async def _run_model(self) -> None:
        try:
            connection = await self._realtime_client.connect()
        except asyncio.CancelledError:
            raise
        except Exception:
            LOGGER.exception("Failed to connect to the realtime model")
            self._state = RelayState.CLOSED
            return

        if self._telephony_closed:
            await connection.close()
            return

        error: BaseException | None = None
        try:
            await self.on_model_open(connection)
            async for message in connection.messages():
                await self.handle_model_message(message)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            error = exc
        await self.on_model_closed(error)

    async def on_model_open(self, connection: RealtimeConnection) -> None:
        self._model = connection
        self._model_ready = True
        self._state = RelayState.READY
        LOGGER.info("Realtime model socket open (stream=%s)", self._stream_sid)
        await self._sync_configuration()

    async def on_model_closed(self, error: BaseException | None = None) -> None:
        self._model_ready = False
        if error is not None:
            LOGGER.error("Error in the realtime model socket: %s", error)
            await self._close_model()
        LOGGER.info("Disconnected from the realtime model (stream=%s)", self._stream_sid)
        # The caller's socket stays open; Twilio handles its own timeout.
        self._state = RelayState.CLOSED

    async def on_telephony_closed(self) -> None:
        if self._state is RelayState.CLOSED and self._telephony_closed:
            return
        self._telephony_closed = True
        self._model_ready = False

        for task in list(self._tool_tasks):
            task.cancel()

        await self._close_model()

        if self._model_task is not None and not self._model_task.done():
            self._model_task.cancel()
            try:
                await self._model_task
            except asyncio.CancelledError:
                pass

        self._state = RelayState.CLOSED
        LOGGER.info("Relay session closed (stream=%s)", self._stream_sid)

    async def _close_model(self) -> None:
        if self._model is not None and self._model.is_open:
            try:
                await self._model.close()
            except Exception:
                LOGGER.exception("Failed to close the realtime model socket")

    # Configuration

    async def _sync_configuration(self) -> None:
        """Send ``session.update`` when the model is ready and the identity changed.

        Identity is either the placeholder (no ``start`` yet) or the caller's
        name and phone. Each identity is configured at most once.
        """

        if not self._model_ready or self._model is None:
            return
        context = self._context
        identity = context.identity if context is not None else None
        if self._configured_for == identity:
            return

        self._configured_for = identity
        event = build_session_update(
            context,
            settings=self._settings,
            tools=self._tools.definitions(),
        )
        if context is None:
            LOGGER.info("Sending session update with placeholder identity")
        else:
            LOGGER.info(
                "Sending session update for %s (%s)", context.caller_name, context.caller_phone
            )
        await self._model.send_json(event)
        self._configured = True
        self._state = RelayState.ACTIVE
        await self._flush_pending_media()

    # Telephony -> model

    async def handle_telephony_message(self, message: str | bytes) -> None:
        try:
            event = parse_twilio_event(message)
            if isinstance(event, MediaEvent):
                await self._on_media(event)
            elif isinstance(event, StartEvent):
                await self._on_start(event)
            elif isinstance(event, StopEvent):
                LOGGER.info("Incoming stream has stopped %s", self._stream_sid)
                await self.on_telephony_closed()
            elif isinstance(event, OtherEvent):
                LOGGER.info("Received non-media event: %s", event.name)
        except MalformedFrameError as exc:
            LOGGER.error("Error parsing message: %s Message: %r", exc.detail, message)
        except Exception:
            LOGGER.exception("Error processing telephony message: %r", message)

    async def _on_start(self, event: StartEvent) -> None:
        self._stream_sid = event.stream_sid
        self._context = event.context
        LOGGER.info(
            "Incoming stream has started %s, name: %s, phone: %s",
            event.stream_sid,
            event.context.caller_name,
            event.context.caller_phone,
        )
        await self._sync_configuration()

    async def _on_media(self, event: MediaEvent) -> None:
        if not event.is_inbound:
            return
        if self._model_ready and self.model_open and self._configured:
            await self._model.send_json({"type": "input_audio_buffer.append", "audio": event.payload})
        elif self._pending_media.maxlen and not self._telephony_closed:
            self._pending_media.append(event.payload)
        else:
            LOGGER.debug("Dropping media frame; realtime model not ready")

    async def _flush_pending_media(self) -> None:
        while self._pending_media and self.model_open:
            payload = self._pending_media.popleft()
            await self._model.send_json({"type": "input_audio_buffer.append", "audio": payload})

    # Model -> telephony

    async def handle_model_message(self, message: str | bytes) -> None:
        try:
            response = json.loads(message)
            if not isinstance(response, dict):
                raise MalformedFrameError("Model event is not a JSON object")
            event_type = response.get("type")

            if event_type in LOG_EVENT_TYPES:
                LOGGER.info("Received event: %s %s", event_type, response)

            if event_type == "session.updated":
                LOGGER.info("Session updated successfully: %s", response.get("session", {}).get("id"))
            elif event_type == "response.function_call_arguments.done":
                self._dispatch_tool_call(response)
            elif event_type == "response.audio.delta" and response.get("delta"):
                await self._on_audio_delta(response["delta"])
        except (ValueError, RelayError) as exc:
            LOGGER.error("Error processing model message: %s Raw message: %r", exc, message)
        except Exception:
            LOGGER.exception("Error processing model message. Raw message: %r", message)

    async def _on_audio_delta(self, delta: str) -> None:
        if self._stream_sid is None:
            LOGGER.warning("Dropping audio delta; no streamSid yet")
            return
        frame = build_media_frame(self._stream_sid, delta)
        await self._telephony.send_text(json.dumps(frame))

    def _dispatch_tool_call(self, response: dict[str, Any]) -> None:
        request = parse_tool_call(response)
        LOGGER.info("Function call arguments received: %s (call_id=%s)", request.name, request.call_id)
        if not self._tools.knows(request.name):
            # No output is sent; new tools must be registered with the executor.
            LOGGER.warning("Ignoring call to unknown tool %s (call_id=%s)", request.name, request.call_id)
            return

        task = asyncio.create_task(self._run_tool(request))
        self._tool_tasks.add(task)
        task.add_done_callback(self._tool_tasks.discard)

    async def _run_tool(self, request: ToolCallRequest) -> None:
        try:
            result = await self._tools.execute(request.name, request.arguments)
        except ToolArgumentsError as exc:
            LOGGER.warning("Tool %s rejected arguments: %s", request.name, exc.detail)
            result = {"error": exc.detail}
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOGGER.exception("Tool %s failed", request.name)
            result = {"error": str(exc)}

        if not self.model_open:
            LOGGER.warning("Discarding result of %s; realtime model socket closed", request.name)
            return

        tool_result = ToolCallResult(call_id=request.call_id, output=json.dumps(result))
        try:
            await self._model.send_json(tool_result.to_event())
            if self._settings.realtime_respond_after_tool_output:
                await self._model.send_json({"type": "response.create"})
        except Exception:
            LOGGER.exception("Failed to send result of %s", request.name)


def parse_tool_call(response: dict[str, Any]) -> ToolCallRequest:
    name = response.get("name")
    call_id = response.get("call_id")
    if not name or not call_id:
        raise MalformedFrameError("function call event without name or call_id")

    # Unparseable arguments are kept as None so the tool still answers with an error.
    arguments = response.get("arguments") or {}
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments)
        except ValueError:
            arguments = None
    if not isinstance(arguments, dict):
        arguments = None

    return ToolCallRequest(name=str(name), call_id=str(call_id), arguments=arguments)
