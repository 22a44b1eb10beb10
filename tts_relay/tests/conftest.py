"""
pytest Configuration and Fixtures

Provides reusable fixtures for relay testing:
    - relay_config: RelayConfig with a fake credential
    - sample_audio: Fake MP3 bytes
    - mock_provider: Provider whose synthesize() returns sample_audio
    - relay_handler: RelayHandler wired to mock_provider
    - client: TestClient around create_app() with mock_provider injected
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from tts_relay.app import create_app
from tts_relay.audio_cache import AudioCache
from tts_relay.config import RelayConfig
from tts_relay.providers.elevenlabs import UpstreamResponse
from tts_relay.relay import RelayHandler


@pytest.fixture
def relay_config():
    """RelayConfig with a fake credential so no real API key is needed."""
    return RelayConfig(
        api_key="test-eleven-key",
        default_voice_id="default-voice",
        timeout=5.0,
    )


@pytest.fixture
def sample_audio():
    """Bytes shaped like an MP3 with an ID3 header."""
    return b"ID3\x04\x00\x00\x00\x00\x00\x00" + b"\xff\xfb\x90\x64" * 64


def audio_response(body: bytes, content_type: str = "audio/mpeg", status: int = 200) -> UpstreamResponse:
    return UpstreamResponse(status=status, content_type=content_type, body=body)


@pytest.fixture
def mock_provider(sample_audio):
    """
    Mock ElevenLabsProvider for testing without API calls.
    """
    mock = MagicMock()
    mock.synthesize = AsyncMock(return_value=audio_response(sample_audio))
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def relay_handler(relay_config, mock_provider):
    return RelayHandler(relay_config, mock_provider, AudioCache())


@pytest.fixture
def client(relay_config, mock_provider):
    """TestClient with the lifespan running, so app.state.relay exists."""
    app = create_app(relay_config, provider=mock_provider)
    with TestClient(app) as test_client:
        yield test_client


# Test markers
def pytest_configure(config):
    """
    Register custom test markers.
    """
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (exercise the HTTP app)"
    )
