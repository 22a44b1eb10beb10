"""
Upstream TTS Provider

Providers:
    - ElevenLabsProvider: ElevenLabs text-to-speech REST API
"""

from .elevenlabs import ElevenLabsProvider, UpstreamResponse

__all__ = ["ElevenLabsProvider", "UpstreamResponse"]
