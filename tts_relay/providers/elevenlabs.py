"""
ElevenLabs TTS Provider

Async HTTP client for the ElevenLabs text-to-speech REST API.

Features:
    - Async HTTP API calls via aiohttp
    - One ClientSession per process (opened on startup, closed on shutdown)
    - Stability/similarity_boost voice settings
    - MP3 output (``Accept: audio/mpeg``)

The provider does not judge the upstream answer: status, content type and
body are handed back to the relay handler, which decides what the caller sees.

Reference:
    https://elevenlabs.io/docs/api-reference/text-to-speech
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import aiohttp

from .. import __version__
from ..config import RelayConfig

logger = logging.getLogger(__name__)

USER_AGENT = f"tts-relay/{__version__}"


@dataclass
class UpstreamResponse:
    """Raw upstream answer."""
    status: int
    content_type: str
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_audio(self) -> bool:
        return "audio" in self.content_type

    def text(self, limit: Optional[int] = None) -> str:
        """Decode the body for error reporting, optionally truncated."""
        decoded = self.body.decode("utf-8", errors="replace")
        return decoded if limit is None else decoded[:limit]


class ElevenLabsProvider:
    """
    ElevenLabs TTS provider.

    Usage:
        async with ElevenLabsProvider(config) as provider:
            response = await provider.synthesize("Hello", voice_id, 0.5, 0.75)
    """

    def __init__(self, config: RelayConfig, session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize ElevenLabs provider.

        Args:
            config: RelayConfig with api_key, model_id, api_base_url, timeout
            session: Optional externally owned aiohttp session
        """
        self.config = config
        self.session = session
        self._owns_session = session is None

        logger.info(f"ElevenLabs provider initialized (model: {config.model_id})")

    async def _ensure_session(self):
        """Create aiohttp session if not exists."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout)
            )
            self._owns_session = True

    async def open(self):
        """Open the upstream session ahead of the first request."""
        await self._ensure_session()

    def _endpoint(self, voice_id: str) -> str:
        # voice_id is one path segment; "/", "?" and "#" must not reach the URL unescaped
        if voice_id in (".", ".."):
            raise ValueError(f"Invalid voice_id: {voice_id!r}")
        return f"{self.config.api_base_url}/text-to-speech/{quote(voice_id, safe='')}"

    async def synthesize(
        self,
        text: str,
        voice_id: str,
        stability: float,
        similarity_boost: float
    ) -> UpstreamResponse:
        """
        Request speech for ``text`` from ElevenLabs.

        Args:
            text: Text to synthesize (already truncated by the caller)
            voice_id: ElevenLabs voice id
            stability: Voice consistency setting
            similarity_boost: Voice likeness setting

        Returns:
            UpstreamResponse with status, content type and body

        Raises:
            aiohttp.ClientError: On connection failure
            asyncio.TimeoutError: On request timeout
        """
        await self._ensure_session()

        payload = {
            "text": text,
            "model_id": self.config.model_id,
            "voice_settings": {
                "stability": stability,
                "similarity_boost": similarity_boost
            }
        }

        headers = {
            "xi-api-key": self.config.api_key or "",
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
            "User-Agent": USER_AGENT
        }

        logger.debug(f"ElevenLabs TTS: {len(text)} chars, voice={voice_id}")

        try:
            async with self.session.post(
                self._endpoint(voice_id),
                json=payload,
                headers=headers
            ) as response:
                body = await response.read()
                content_type = response.headers.get("Content-Type", "")

                logger.debug(
                    f"ElevenLabs answered {response.status} ({content_type or 'no content-type'}, "
                    f"{len(body)} bytes)"
                )

                return UpstreamResponse(
                    status=response.status,
                    content_type=content_type,
                    body=body
                )

        except asyncio.TimeoutError:
            logger.error(f"ElevenLabs API timeout ({self.config.timeout}s)")
            raise
        except aiohttp.ClientError as e:
            logger.error(f"ElevenLabs API error: {e}")
            raise

    async def close(self):
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
            logger.debug("ElevenLabs session closed")

    async def __aenter__(self):
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit - cleanup session."""
        await self.close()
