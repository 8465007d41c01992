"""
Voice Transcription Service

Transcribes a short base64-encoded voice note with a Gemini audio model.
Unlike categorization, failures here are reported to the caller.
"""

import asyncio
import base64
import binascii
import logging
from typing import Optional

from google import genai
from google.genai import types

from braindump.config.settings import Settings
from braindump.infrastructure.exceptions import (
    AIServiceError,
    ConfigurationError,
    ValidationError,
)


logger = logging.getLogger(__name__)


TRANSCRIBE_INSTRUCTION = (
    "Transcribe this voice note verbatim. Return only the transcribed text, "
    "without quotes, labels or commentary."
)

# 10 MB of decoded audio
MAX_AUDIO_BYTES = 10 * 1024 * 1024


def decode_audio(audio_b64: str) -> bytes:
    """
    Decode a base64 payload, accepting ``data:<mime>;base64,`` prefixes.

    Raises:
        ValidationError: If the payload is empty, malformed or too large
    """
    payload = audio_b64.strip()
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    if not payload:
        raise ValidationError("No audio data provided")

    try:
        audio = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Audio must be base64 encoded", original_error=e)

    if not audio:
        raise ValidationError("No audio data provided")
    if len(audio) > MAX_AUDIO_BYTES:
        raise ValidationError(
            "Audio recording is too large",
            details={"max_bytes": MAX_AUDIO_BYTES},
        )
    return audio


class TranscriptionService:
    """Gemini speech-to-text."""

    def __init__(self, settings: Settings, client: Optional[genai.Client] = None):
        self._settings = settings
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self._settings.google_api_key:
                raise ConfigurationError(
                    "Missing GOOGLE_API_KEY environment variable",
                    missing_keys=["GOOGLE_API_KEY"],
                )
            self._client = genai.Client(api_key=self._settings.google_api_key)
        return self._client

    async def transcribe(self, audio_b64: str, mime_type: str = "audio/webm") -> str:
        """
        Transcribe base64 audio to text.

        Raises:
            ValidationError: Bad audio payload
            ConfigurationError: No Google API key
            AIServiceError: The model call failed
        """
        audio = decode_audio(audio_b64)
        client = self.client
        model = self._settings.transcription_model

        try:
            response = await asyncio.to_thread(
                lambda: client.models.generate_content(
                    model=model,
                    contents=[
                        TRANSCRIBE_INSTRUCTION,
                        types.Part.from_bytes(data=audio, mime_type=mime_type),
                    ],
                    config=types.GenerateContentConfig(temperature=0.0),
                )
            )
        except Exception as e:
            logger.error(f"Transcription failed: {e}")
            raise AIServiceError(
                "Failed to transcribe audio",
                model=model,
                operation="transcribe",
                original_error=e,
            )

        text = (response.text or "").strip()
        logger.info(f"Transcribed {len(audio)} bytes of audio into {len(text)} characters")
        return text
