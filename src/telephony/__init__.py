"""Call-side relay components.

PSTN -> Twilio -> Media Stream (WS) -> MediaRelaySession -> OpenAI Realtime (WS).
"""
