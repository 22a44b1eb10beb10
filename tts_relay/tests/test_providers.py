"""
Provider Tests for TTS Relay

Tests ElevenLabsProvider with a mocked aiohttp session:
    - Request URL, headers and JSON body
    - Status/content-type/body passthrough
    - Timeout and client errors propagate
    - Session ownership on close

Run with:
    pytest tts_relay/tests/test_providers.py -v
"""

import asyncio

import aiohttp
import pytest
from yarl import URL
from unittest.mock import AsyncMock, MagicMock

from tts_relay.config import RelayConfig
from tts_relay.providers.elevenlabs import USER_AGENT, ElevenLabsProvider, UpstreamResponse


def mock_session(status=200, content_type="audio/mpeg", body=b"mp3-bytes"):
    """aiohttp.ClientSession stand-in whose post() yields one response."""
    response = MagicMock()
    response.status = status
    response.headers = {"Content-Type": content_type} if content_type else {}
    response.read = AsyncMock(return_value=body)

    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    session.post.return_value.__aenter__.return_value = response
    return session


@pytest.mark.unit
class TestUpstreamResponse:
    """Test UpstreamResponse helpers."""

    def test_ok_range(self):
        assert UpstreamResponse(200, "audio/mpeg", b"").ok is True
        assert UpstreamResponse(204, "", b"").ok is True
        assert UpstreamResponse(401, "application/json", b"").ok is False
        assert UpstreamResponse(500, "text/plain", b"").ok is False

    def test_is_audio(self):
        assert UpstreamResponse(200, "audio/mpeg", b"").is_audio is True
        assert UpstreamResponse(200, "audio/wav", b"").is_audio is True
        assert UpstreamResponse(200, "application/json", b"").is_audio is False
        assert UpstreamResponse(200, "", b"").is_audio is False

    def test_text_truncates(self):
        response = UpstreamResponse(500, "text/plain", b"x" * 300)
        assert len(response.text(200)) == 200
        assert len(response.text()) == 300

    def test_text_replaces_invalid_utf8(self):
        assert UpstreamResponse(500, "", b"\xff\xfeoops").text().endswith("oops")


@pytest.mark.unit
class TestElevenLabsProvider:
    """Test ElevenLabsProvider with a mocked session."""

    @pytest.mark.asyncio
    async def test_synthesize_posts_expected_request(self):
        config = RelayConfig(api_key="secret", model_id="eleven_monolingual_v1")
        session = mock_session()
        provider = ElevenLabsProvider(config, session=session)

        await provider.synthesize("Hello", "voice-1", 0.4, 0.9)

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == "https://api.elevenlabs.io/v1/text-to-speech/voice-1"
        assert kwargs["json"] == {
            "text": "Hello",
            "model_id": "eleven_monolingual_v1",
            "voice_settings": {"stability": 0.4, "similarity_boost": 0.9}
        }
        assert kwargs["headers"]["xi-api-key"] == "secret"
        assert kwargs["headers"]["Accept"] == "audio/mpeg"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["headers"]["User-Agent"] == USER_AGENT

    @pytest.mark.asyncio
    async def test_custom_base_url(self):
        config = RelayConfig(api_key="secret", api_base_url="http://upstream.local/v1/")
        session = mock_session()
        provider = ElevenLabsProvider(config, session=session)

        await provider.synthesize("Hello", "voice-1", 0.5, 0.75)

        assert session.post.call_args[0][0] == "http://upstream.local/v1/text-to-speech/voice-1"

    def test_endpoint_keeps_voice_id_in_one_segment(self):
        provider = ElevenLabsProvider(RelayConfig(api_key="secret"), session=mock_session())

        url = URL(provider._endpoint("../../user/subscription"))

        assert url.raw_path.startswith("/v1/text-to-speech/")
        assert url.raw_path.count("/") == 3

    @pytest.mark.parametrize("voice_id", ["voice?stream=1", "voice#frag"])
    def test_endpoint_escapes_query_and_fragment(self, voice_id):
        provider = ElevenLabsProvider(RelayConfig(api_key="secret"), session=mock_session())

        url = URL(provider._endpoint(voice_id))

        assert url.query_string == ""
        assert url.fragment == ""
        assert url.path == f"/v1/text-to-speech/{voice_id}"

    @pytest.mark.parametrize("voice_id", [".", ".."])
    def test_endpoint_rejects_dot_segments(self, voice_id):
        provider = ElevenLabsProvider(RelayConfig(api_key="secret"), session=mock_session())

        with pytest.raises(ValueError):
            provider._endpoint(voice_id)

    @pytest.mark.asyncio
    async def test_synthesize_returns_upstream_answer(self):
        provider = ElevenLabsProvider(
            RelayConfig(api_key="secret"),
            session=mock_session(status=200, content_type="audio/mpeg", body=b"mp3")
        )

        response = await provider.synthesize("Hello", "voice-1", 0.5, 0.75)

        assert response == UpstreamResponse(status=200, content_type="audio/mpeg", body=b"mp3")

    @pytest.mark.asyncio
    async def test_error_status_is_not_raised(self):
        provider = ElevenLabsProvider(
            RelayConfig(api_key="secret"),
            session=mock_session(status=401, content_type="application/json", body=b'{"detail":"bad key"}')
        )

        response = await provider.synthesize("Hello", "voice-1", 0.5, 0.75)

        assert response.status == 401
        assert response.ok is False
        assert "bad key" in response.text()

    @pytest.mark.asyncio
    async def test_missing_content_type(self):
        provider = ElevenLabsProvider(
            RelayConfig(api_key="secret"),
            session=mock_session(content_type=None)
        )

        response = await provider.synthesize("Hello", "voice-1", 0.5, 0.75)

        assert response.content_type == ""

    @pytest.mark.asyncio
    async def test_timeout_propagates(self):
        session = mock_session()
        session.post.side_effect = asyncio.TimeoutError()
        provider = ElevenLabsProvider(RelayConfig(api_key="secret"), session=session)

        with pytest.raises(asyncio.TimeoutError):
            await provider.synthesize("Hello", "voice-1", 0.5, 0.75)

    @pytest.mark.asyncio
    async def test_client_error_propagates(self):
        session = mock_session()
        session.post.side_effect = aiohttp.ClientConnectionError("connection refused")
        provider = ElevenLabsProvider(RelayConfig(api_key="secret"), session=session)

        with pytest.raises(aiohttp.ClientError):
            await provider.synthesize("Hello", "voice-1", 0.5, 0.75)

    @pytest.mark.asyncio
    async def test_injected_session_not_closed(self):
        session = mock_session()
        provider = ElevenLabsProvider(RelayConfig(api_key="secret"), session=session)

        await provider.close()

        session.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_owned_session_closed_on_exit(self):
        async with ElevenLabsProvider(RelayConfig(api_key="secret")) as provider:
            session = provider.session
            assert isinstance(session, aiohttp.ClientSession)
            assert not session.closed

        assert session.closed
