"""
TTS Relay Configuration Module

Configuration dataclass for the relay service with environment variable
loading and validation.

The configuration is read once at startup (see ``app.lifespan``) and handed to
the relay handler and provider; nothing reads the environment per request.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# "Rachel" style default voice used when VOICE_ID is not set
DEFAULT_VOICE_ID = "EXAVITQu4vr4xnSDxMaL"
DEFAULT_MODEL_ID = "eleven_monolingual_v1"
DEFAULT_API_BASE_URL = "https://api.elevenlabs.io/v1"


@dataclass
class RelayConfig:
    """
    Configuration for the TTS relay.

    Upstream (ElevenLabs):
        - api_key: Server-held credential sent as ``xi-api-key``
        - default_voice_id: Voice used when the request omits ``voice_id``
        - model_id: ElevenLabs model sent with every synthesis call
        - api_base_url: Base URL of the ElevenLabs REST API

    Relay behaviour:
        - max_text_length: Request text is cut to this many characters
        - error_body_limit: Upstream error bodies are cut to this many characters
        - timeout: Total timeout for one upstream call (seconds)
    """

    # Upstream provider
    api_key: Optional[str] = None
    default_voice_id: str = DEFAULT_VOICE_ID
    model_id: str = DEFAULT_MODEL_ID
    api_base_url: str = DEFAULT_API_BASE_URL

    # Relay behaviour
    max_text_length: int = 500
    error_body_limit: int = 200
    timeout: float = 30.0

    # Server settings
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    @staticmethod
    def from_env() -> "RelayConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            - ELEVEN_API_KEY: ElevenLabs API key (required for synthesis)
            - VOICE_ID: Default voice id (default: EXAVITQu4vr4xnSDxMaL)
            - ELEVEN_MODEL_ID: Model id (default: eleven_monolingual_v1)
            - ELEVEN_API_BASE_URL: API base URL (default: https://api.elevenlabs.io/v1)
            - TTS_RELAY_MAX_TEXT_LENGTH: Text truncation length (default: 500)
            - TTS_RELAY_ERROR_BODY_LIMIT: Upstream error body truncation (default: 200)
            - TTS_RELAY_TIMEOUT: Upstream timeout in seconds (default: 30.0)
            - TTS_RELAY_HOST: Bind address (default: 0.0.0.0)
            - PORT: Bind port (default: 3000)
            - TTS_RELAY_LOG_LEVEL: Logging level (default: INFO)

        Returns:
            RelayConfig instance with values from environment or defaults
        """
        return RelayConfig(
            api_key=os.getenv("ELEVEN_API_KEY") or None,
            default_voice_id=os.getenv("VOICE_ID") or DEFAULT_VOICE_ID,
            model_id=os.getenv("ELEVEN_MODEL_ID", DEFAULT_MODEL_ID),
            api_base_url=os.getenv("ELEVEN_API_BASE_URL", DEFAULT_API_BASE_URL),
            max_text_length=int(os.getenv("TTS_RELAY_MAX_TEXT_LENGTH", "500")),
            error_body_limit=int(os.getenv("TTS_RELAY_ERROR_BODY_LIMIT", "200")),
            timeout=float(os.getenv("TTS_RELAY_TIMEOUT", "30.0")),
            host=os.getenv("TTS_RELAY_HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            log_level=os.getenv("TTS_RELAY_LOG_LEVEL", "INFO").upper(),
        )

    def __post_init__(self):
        """
        Validate configuration after initialization.

        Raises:
            ValueError: If any numeric setting is out of range or log_level
                is not a logging level name
        """
        if self.max_text_length <= 0:
            raise ValueError(f"Invalid max_text_length: {self.max_text_length}. Must be positive.")

        if self.error_body_limit < 0:
            raise ValueError(f"Invalid error_body_limit: {self.error_body_limit}. Must not be negative.")

        if self.timeout <= 0:
            raise ValueError(f"Invalid timeout: {self.timeout}. Must be positive.")

        if self.port <= 0:
            raise ValueError(f"Invalid port: {self.port}. Must be positive.")

        self.log_level = self.log_level.upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Invalid log_level: {self.log_level}. Must be a logging level name.")

        self.api_base_url = self.api_base_url.rstrip("/")

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    def log_summary(self):
        """Log the effective configuration without the credential."""
        if not self.has_credential:
            logger.warning("ELEVEN_API_KEY is missing. /tts will answer 500 until it is set.")
        logger.info(f"Default VOICE_ID: {self.default_voice_id}")
        logger.info(
            f"TTS Relay Config: model={self.model_id}, max_text_length={self.max_text_length}, "
            f"timeout={self.timeout}s"
        )
