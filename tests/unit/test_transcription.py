"""
Unit tests for voice transcription.
"""

import base64
from unittest.mock import MagicMock

import pytest

from braindump.infrastructure.ai.transcription_service import (
    MAX_AUDIO_BYTES,
    TranscriptionService,
    decode_audio,
)
from braindump.infrastructure.exceptions import (
    AIServiceError,
    ConfigurationError,
    ValidationError,
)

from conftest import make_settings


AUDIO = b"\x1aE\xdf\xa3fake-webm-bytes"
AUDIO_B64 = base64.b64encode(AUDIO).decode()


class TestDecodeAudio:

    def test_plain_base64(self):
        assert decode_audio(AUDIO_B64) == AUDIO

    def test_data_uri(self):
        assert decode_audio(f"data:audio/webm;base64,{AUDIO_B64}") == AUDIO

    @pytest.mark.parametrize("payload", ["", "   ", "data:audio/webm;base64,"])
    def test_empty(self, payload):
        with pytest.raises(ValidationError):
            decode_audio(payload)

    def test_not_base64(self):
        with pytest.raises(ValidationError, match="base64"):
            decode_audio("this is not base64!!")

    def test_too_large(self):
        oversized = base64.b64encode(b"\0" * (MAX_AUDIO_BYTES + 1)).decode()
        with pytest.raises(ValidationError, match="too large"):
            decode_audio(oversized)


class TestTranscriptionService:

    async def test_transcribe(self):
        client = MagicMock()
        client.models.generate_content.return_value = MagicMock(text="  buy milk tomorrow \n")
        service = TranscriptionService(make_settings(), client=client)

        text = await service.transcribe(AUDIO_B64, "audio/webm")

        assert text == "buy milk tomorrow"
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash"
        assert len(kwargs["contents"]) == 2

    async def test_model_failure(self):
        client = MagicMock()
        client.models.generate_content.side_effect = RuntimeError("503")
        service = TranscriptionService(make_settings(), client=client)

        with pytest.raises(AIServiceError):
            await service.transcribe(AUDIO_B64)

    async def test_missing_key(self):
        service = TranscriptionService(make_settings())

        with pytest.raises(ConfigurationError):
            await service.transcribe(AUDIO_B64)

    async def test_bad_audio_never_reaches_model(self):
        client = MagicMock()
        service = TranscriptionService(make_settings(), client=client)

        with pytest.raises(ValidationError):
            await service.transcribe("")

        client.models.generate_content.assert_not_called()
