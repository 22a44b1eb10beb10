"""
TTS Relay Handler

Forwards one synthesis request to the upstream provider and memoizes the
audio by request signature.

Flow:
    request → validate → cache key → cache hit? → provider → store → audio

Failures are raised as RelayError subclasses; each carries the HTTP status
and JSON payload the caller should see, so the web layer only renders them.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .audio_cache import AudioCache
from .config import RelayConfig
from .providers.elevenlabs import ElevenLabsProvider

logger = logging.getLogger(__name__)

VOICE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class RelayError(Exception):
    """Base error for relay failures that map to an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra

    @property
    def payload(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class MissingTextError(RelayError):
    status_code = 400

    def __init__(self):
        super().__init__("Missing 'text'.")


class InvalidVoiceIdError(RelayError):
    status_code = 400

    def __init__(self):
        super().__init__("Invalid 'voice_id'.")


class MissingCredentialError(RelayError):
    status_code = 500

    def __init__(self):
        super().__init__("Missing ELEVEN_API_KEY on server")


class ProviderError(RelayError):
    """Upstream answered with a non-2xx status; the status is passed through."""

    def __init__(self, status_code: int, details: str):
        super().__init__("TTS provider error", status_code=status_code, details=details)


class NonAudioResponseError(RelayError):
    status_code = 502

    def __init__(self, content_type: str, body: str):
        super().__init__(
            "Non-audio response from provider",
            contentType=content_type,
            body=body
        )


@dataclass
class SynthesisResult:
    """Result of a relayed synthesis"""
    audio: bytes
    cache_key: str
    cached: bool
    media_type: str = "audio/mpeg"


class RelayHandler:
    """
    Relay between callers and the upstream TTS provider.

    Holds no global state: config, cache and provider are injected and live
    as long as the application that created them.
    """

    def __init__(self, config: RelayConfig, provider: ElevenLabsProvider, cache: Optional[AudioCache] = None):
        self.config = config
        self.provider = provider
        self.cache = cache if cache is not None else AudioCache()

        self.stats = {
            "total_requests": 0,
            "upstream_calls": 0,
            "errors": 0
        }

    def resolve_voice_id(self, voice_id: Optional[str]) -> str:
        """
        Trimmed request voice id, or the configured default when blank.

        Raises:
            InvalidVoiceIdError: voice id is not a single ElevenLabs id token
        """
        if voice_id is None or not voice_id.strip():
            return self.config.default_voice_id
        resolved = voice_id.strip()
        if not VOICE_ID_PATTERN.match(resolved):
            raise InvalidVoiceIdError()
        return resolved

    def truncate_text(self, text: str) -> str:
        return text[:self.config.max_text_length]

    async def synthesize(
        self,
        text: Optional[str],
        voice_id: Optional[str] = None,
        stability: float = 0.5,
        similarity_boost: float = 0.75
    ) -> SynthesisResult:
        """
        Relay one synthesis request.

        Args:
            text: Text to speak; required and non-blank
            voice_id: Voice id; blank falls back to the configured default
            stability: ElevenLabs stability setting
            similarity_boost: ElevenLabs similarity_boost setting

        Returns:
            SynthesisResult with the audio bytes

        Raises:
            MissingTextError: text missing or blank (400)
            MissingCredentialError: no ELEVEN_API_KEY configured (500)
            InvalidVoiceIdError: voice id with characters outside [A-Za-z0-9_-] (400)
            ProviderError: upstream non-2xx (upstream status)
            NonAudioResponseError: upstream 2xx without audio (502)
        """
        self.stats["total_requests"] += 1

        try:
            if not text or not text.strip():
                raise MissingTextError()
            if not self.config.has_credential:
                raise MissingCredentialError()
            resolved_voice = self.resolve_voice_id(voice_id)
        except RelayError:
            self.stats["errors"] += 1
            raise

        safe_text = self.truncate_text(text)
        cache_key = AudioCache.get_cache_key(safe_text, resolved_voice, stability, similarity_boost)

        cached_audio = self.cache.get(cache_key)
        if cached_audio is not None:
            return SynthesisResult(audio=cached_audio, cache_key=cache_key, cached=True)

        start_time = time.time()
        self.stats["upstream_calls"] += 1
        response = await self.provider.synthesize(
            text=safe_text,
            voice_id=resolved_voice,
            stability=stability,
            similarity_boost=similarity_boost
        )
        elapsed = time.time() - start_time

        limit = self.config.error_body_limit
        if not response.ok:
            self.stats["errors"] += 1
            logger.error(f"TTS provider error: status={response.status} voice={resolved_voice}")
            raise ProviderError(response.status, response.text(limit))

        if not response.is_audio:
            self.stats["errors"] += 1
            logger.error(f"Non-audio response from provider: content-type={response.content_type!r}")
            raise NonAudioResponseError(response.content_type, response.text(limit))

        self.cache.put(cache_key, response.body)
        logger.info(
            f"Synthesized {len(safe_text)} chars with voice {resolved_voice} → "
            f"{len(response.body)} bytes in {elapsed:.2f}s"
        )
        return SynthesisResult(audio=response.body, cache_key=cache_key, cached=False)

    def get_stats(self) -> Dict[str, Any]:
        return {**self.stats, "cache": self.cache.get_stats()}
