"""
TTS Relay FastAPI Application

HTTP relay in front of the ElevenLabs text-to-speech API.

Endpoints:
    POST /tts - Synthesize text to audio/mpeg (cached per request signature)
    GET /ping - Liveness check ("ok")
    GET /health - Credential status and cache statistics

Features:
    - In-memory audio cache shared by all requests
    - Server-held ElevenLabs credential
    - CORS for any origin (GET/POST/OPTIONS)
    - Every failure rendered as a JSON error with an HTTP status

Process-scoped state (config, upstream session, cache, relay handler) is
created in the lifespan and reaches the routes through ``Depends(get_relay)``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .audio_cache import AudioCache
from .config import RelayConfig
from .providers.elevenlabs import ElevenLabsProvider
from .relay import RelayError, RelayHandler

logger = logging.getLogger(__name__)

AUDIO_CACHE_CONTROL = "public, max-age=31536000, immutable"


# Request Models
class TTSRequest(BaseModel):
    """Request model for the synthesis endpoint."""
    text: Optional[str] = Field(default=None, description="Text to synthesize (cut to 500 characters)")
    voice_id: Optional[str] = Field(default=None, description="ElevenLabs voice id (server default if blank)")
    stability: float = Field(default=0.5, description="Voice stability")
    similarity_boost: float = Field(default=0.75, description="Voice similarity boost")

    model_config = {
        "json_schema_extra": {
            "example": {
                "text": "Hello! Welcome aboard.",
                "voice_id": None,
                "stability": 0.5,
                "similarity_boost": 0.75
            }
        }
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the relay state on startup and release it on shutdown."""
    config: RelayConfig = app.state.config
    injected_provider = app.state.provider

    logger.info("=" * 60)
    logger.info(" TTS Relay Starting")
    config.log_summary()
    logger.info("=" * 60)

    provider = injected_provider or ElevenLabsProvider(config)
    if injected_provider is None:
        await provider.open()
    app.state.relay = RelayHandler(config, provider, AudioCache())

    try:
        yield
    finally:
        stats = app.state.relay.get_stats()
        if injected_provider is None:
            await provider.close()

        logger.info("=" * 60)
        logger.info(" TTS Relay Shutting Down")
        logger.info(f"   Total Requests: {stats['total_requests']}")
        logger.info(f"   Upstream Calls: {stats['upstream_calls']}")
        logger.info(f"   Cache Hits: {stats['cache']['hits']}")
        logger.info(f"   Cache Misses: {stats['cache']['misses']}")
        logger.info("=" * 60)


def get_relay(request: Request) -> RelayHandler:
    return request.app.state.relay


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # the rejected input may be raw bytes that are not valid UTF-8; it is left out
    details = [{k: v for k, v in error.items() if k != "input"} for error in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request body",
            "details": jsonable_encoder(details, custom_encoder={Exception: str})
        }
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None)
    )


def create_app(
    config: Optional[RelayConfig] = None,
    provider: Optional[ElevenLabsProvider] = None
) -> FastAPI:
    """
    Build the relay application.

    Args:
        config: Relay configuration (loaded from the environment if None)
        provider: Upstream provider to use instead of a fresh ElevenLabsProvider;
            an injected provider is not closed on shutdown

    Returns:
        FastAPI application
    """
    app = FastAPI(
        title="TTS Relay",
        description="Caching relay for the ElevenLabs text-to-speech API",
        version=__version__,
        lifespan=lifespan
    )
    app.state.config = config or RelayConfig.from_env()
    app.state.provider = provider

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    @app.get("/ping", response_class=PlainTextResponse)
    async def ping():
        """Health check."""
        return "ok"

    @app.get("/health")
    async def health_check(relay: RelayHandler = Depends(get_relay)):
        """
        Service status.

        "degraded" when no credential is configured (synthesis answers 500).
        """
        return {
            "status": "healthy" if relay.config.has_credential else "degraded",
            "credential_configured": relay.config.has_credential,
            "default_voice_id": relay.config.default_voice_id,
            "cache": relay.cache.get_stats(),
            "total_requests": relay.stats["total_requests"],
            "upstream_calls": relay.stats["upstream_calls"]
        }

    @app.post("/tts")
    async def synthesize_text(
        payload: Optional[TTSRequest] = Body(default=None),
        relay: RelayHandler = Depends(get_relay)
    ):
        """
        Relay text to ElevenLabs and return the MP3 audio.

        Raises:
            RelayError: 400 (missing text), 500 (missing credential or server
                error), upstream status (provider error), 502 (non-audio answer)
        """
        payload = payload or TTSRequest()
        try:
            result = await relay.synthesize(
                text=payload.text,
                voice_id=payload.voice_id,
                stability=payload.stability,
                similarity_boost=payload.similarity_boost
            )
        except RelayError:
            raise
        except Exception as e:
            logger.error(f"[TTS] server error: {e}", exc_info=True)
            raise RelayError("Server error", status_code=500, details=str(e))

        return Response(
            content=result.audio,
            media_type=result.media_type,
            headers={
                "Cache-Control": AUDIO_CACHE_CONTROL,
                "X-Cache": "HIT" if result.cached else "MISS"
            }
        )

    return app


def main():
    """Run the relay under uvicorn."""
    import uvicorn

    config = RelayConfig.from_env()

    logging.basicConfig(
        level=config.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    app = create_app(config)
    logger.info(f"TTS proxy running on http://localhost:{config.port}")
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower()
    )


if __name__ == "__main__":
    main()
