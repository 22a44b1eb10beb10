"""
TTS Relay Test Suite

Test coverage for:
    - Configuration (RelayConfig validation and environment loading)
    - Audio caching (signature keys, hit/miss statistics)
    - ElevenLabs provider (request shape, response passthrough)
    - Relay handler (validation, caching, provider error mapping)
    - FastAPI service (REST endpoints, CORS, JSON errors)

Run with:
    pytest tts_relay/tests/ -v
"""
