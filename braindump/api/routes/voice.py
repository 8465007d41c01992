"""
Voice Route

``voice-to-text``: base64 audio in, transcript out.
"""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from braindump.api.dependencies import CurrentUser, TranscriberDep


router = APIRouter()


class VoiceToTextRequest(BaseModel):
    audio: str = Field(..., min_length=1, description="Base64 encoded audio")
    mime_type: str = Field("audio/webm", max_length=100)


class VoiceToTextResponse(BaseModel):
    text: str


@router.post("/voice-to-text", response_model=VoiceToTextResponse)
async def voice_to_text(
    request: VoiceToTextRequest,
    user: CurrentUser,
    transcriber: TranscriberDep,
):
    text = await transcriber.transcribe(request.audio, mime_type=request.mime_type)
    return VoiceToTextResponse(text=text)
