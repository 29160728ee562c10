"""Twilio Voice integration.

This module provides:
- Voice webhook (TwiML) that connects inbound/outbound calls to a Media Stream.
- Fallback webhook for failed primary handlers.
- Outbound call placement.
- The Media Stream websocket, relayed to the realtime model.
"""

from __future__ import annotations

import asyncio
import logging
from xml.sax.saxutils import quoteattr

from fastapi import APIRouter, Depends, HTTPException, Request, Response, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from agents.errors import CallPlacementError
from agents.tools import ToolExecutor
from api.dependencies import get_identity_directory, get_realtime_client, get_tool_executor
from api.schemas import MakeCallRequest, MakeCallResponse
from config.settings import get_settings
from integrations.identity_directory import IdentityDirectory
from integrations.twilio_client import TwilioConfig, build_twilio_client, get_twilio_config
from llm.base import BaseRealtimeClient
from telephony.relay_session import MediaRelaySession

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/twilio", tags=["twilio"])

UNKNOWN_CALLER = "desconocido"


class _CallerSocket:
    """Caller websocket that yields text and binary frames alike."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    async def receive_frame(self) -> str | bytes:
        message = await self._websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes") or b""

    async def send_text(self, data: str) -> None:
        await self._websocket.send_text(data)


def _twiml_response(xml: str) -> Response:
    # Twilio expects application/xml
    return Response(content=xml, media_type="application/xml")


def _to_ws_url(http_url: str) -> str:
    if http_url.startswith("https://"):
        return "wss://" + http_url.removeprefix("https://")
    if http_url.startswith("http://"):
        return "ws://" + http_url.removeprefix("http://")
    return http_url


def _public_base(request: Request) -> str:
    settings = get_settings()
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")
    # Fallback to request host. This may not work behind proxies; prefer PUBLIC_BASE_URL.
    return f"https://{request.headers.get('host') or request.url.netloc}"


def _stream_url(request: Request) -> str:
    return _to_ws_url(f"{_public_base(request)}/api/twilio/media-stream")


def _incoming_call_url(request: Request) -> str:
    return f"{_public_base(request)}/api/twilio/incoming-call"


def _twiml_connect_stream(*, stream_url: str, name: str, phone: str) -> str:
    return (
        "<?xml version=\"1.0\" encoding=\"UTF-8\"?>"
        "<Response>"
        "<Connect>"
        f"<Stream url={quoteattr(stream_url)}>"
        f"<Parameter name=\"name\" value={quoteattr(name)} />"
        f"<Parameter name=\"phone\" value={quoteattr(phone)} />"
        "</Stream>"
        "</Connect>"
        "</Response>"
    )


async def _webhook_params(request: Request) -> dict[str, str]:
    if request.method == "GET":
        return dict(request.query_params)
    form = await request.form()
    return {k: str(v) for k, v in form.items()}


@router.api_route("/incoming-call", methods=["GET", "POST"])
async def twilio_incoming_call(
    request: Request,
    directory: IdentityDirectory = Depends(get_identity_directory),
) -> Response:
    params = await _webhook_params(request)
    to_number = params.get("To", "").strip()
    from_number = params.get("From", "").strip()

    phone = to_number or UNKNOWN_CALLER
    name = directory.lookup(to_number) or directory.lookup(from_number) or UNKNOWN_CALLER
    LOGGER.info("Data from %s: %s", phone, name)

    return _twiml_response(
        _twiml_connect_stream(stream_url=_stream_url(request), name=name, phone=phone)
    )


@router.post("/incoming-error")
async def twilio_incoming_error(request: Request) -> Response:
    params = await _webhook_params(request)
    LOGGER.error("Incoming error %s", params)
    return _twiml_response("<?xml version=\"1.0\" encoding=\"UTF-8\"?><Response></Response>")


def get_twilio_client():
    return build_twilio_client()


def get_twilio_cfg() -> TwilioConfig:
    return get_twilio_config()


async def _make_call_payload(request: Request) -> MakeCallRequest:
    # JSON bodies and form posts are both accepted.
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/json"):
            data = await request.json()
        else:
            data = await _webhook_params(request)
        return MakeCallRequest.model_validate(data)
    except (ValueError, ValidationError):
        return MakeCallRequest()


@router.post("/make-call", response_model=MakeCallResponse)
async def make_call(
    request: Request,
    directory: IdentityDirectory = Depends(get_identity_directory),
    cfg: TwilioConfig = Depends(get_twilio_cfg),
    twilio_client=Depends(get_twilio_client),
) -> MakeCallResponse:
    payload = await _make_call_payload(request)
    name = (payload.name or "").strip()
    phone = (payload.phone or "").strip()
    if not name or not phone:
        raise HTTPException(status_code=400, detail="Missing name or phone number")

    directory.register(phone, name)

    try:
        call = await asyncio.to_thread(
            twilio_client.calls.create,
            to=phone,
            from_=cfg.from_number,
            url=_incoming_call_url(request),
            method="POST",
        )
    except Exception as exc:
        LOGGER.exception("Twilio call creation failed: %s", exc)
        raise CallPlacementError(f"Error creating call: {exc}") from exc

    message = f"Call created to {name} ({phone}). SID: {call.sid}"
    LOGGER.info(message)
    return MakeCallResponse(message=message, call_sid=str(call.sid))


@router.websocket("/media-stream")
async def twilio_media_stream(
    websocket: WebSocket,
    realtime_client: BaseRealtimeClient = Depends(get_realtime_client),
    tool_executor: ToolExecutor = Depends(get_tool_executor),
) -> None:
    await websocket.accept()
    LOGGER.info("Client connected")
    session = MediaRelaySession(
        _CallerSocket(websocket),
        realtime_client=realtime_client,
        tool_executor=tool_executor,
        disconnect_errors=(WebSocketDisconnect,),
    )
    await session.run()
