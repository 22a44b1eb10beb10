"""
TTS Relay

Caching HTTP relay in front of the ElevenLabs text-to-speech API.

Features:
- POST /tts forwards text and voice settings to ElevenLabs with a server-held key
- Successful audio is kept in memory per request signature; repeats skip upstream
- JSON error responses for every failure (400/500/502/upstream status)
- CORS for any origin, /ping and /health status routes

Architecture:
    Client (HTTP) → FastAPI → RelayHandler → AudioCache → ElevenLabsProvider

Usage:
    from tts_relay import create_app, RelayConfig
    app = create_app(RelayConfig.from_env())
"""

__version__ = "1.0.0"

from .config import RelayConfig
from .audio_cache import AudioCache
from .relay import RelayHandler, RelayError, SynthesisResult
from .app import create_app

__all__ = [
    "RelayConfig",
    "AudioCache",
    "RelayHandler",
    "RelayError",
    "SynthesisResult",
    "create_app",
    "__version__",
]
