"""Entry point for the Twilio to OpenAI Realtime call relay service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from agents.errors import RelayError
from api.routes import router as api_router
from api.schemas import StatusResponse
from config.settings import get_settings

LOGGER = logging.getLogger(__name__)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="Realtime Call Relay",
    description="Relays Twilio Media Streams to the OpenAI Realtime API.",
)
app.include_router(api_router, prefix="/api")


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/", response_model=StatusResponse)
async def root() -> StatusResponse:
    return StatusResponse(message="Twilio Media Stream Server is running!")


def main() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
