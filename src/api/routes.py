"""FastAPI routes exposing relay capabilities."""

from __future__ import annotations

from fastapi import APIRouter

from api.twilio_routes import router as twilio_router

router = APIRouter()
router.include_router(twilio_router)
