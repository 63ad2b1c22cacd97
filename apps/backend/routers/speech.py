"""
Speech Router
=============
Text-to-speech through ElevenLabs, or a browser speech plan when
ElevenLabs is not configured.

Endpoints:
- POST /api/v1/speech        - MP3 audio, or the browser plan as JSON
- POST /api/v1/speech/plan   - Browser speech plan only
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from logging_config import get_logger
from routers.deps import get_speech_service
from schemas import BrowserSpeechPlan, SpeechRequest
from services.speech import SpeechService, build_browser_speech_plan

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "",
    responses={
        200: {
            "content": {"audio/mpeg": {}, "application/json": {}},
            "description": "MP3 audio, or a BrowserSpeechPlan when ElevenLabs is not configured",
        }
    },
)
async def speak(request: SpeechRequest, speech: Optional[SpeechService] = Depends(get_speech_service)):
    if speech is None:
        logger.info("speech_browser_fallback", lang=request.language)
        return build_browser_speech_plan(request.text, request.language, request.voice_index)

    async with speech:
        audio = await speech.generate_speech(request.text, request.voice_id)
    return Response(content=audio, media_type="audio/mpeg")


@router.post("/plan", response_model=BrowserSpeechPlan)
async def speech_plan(request: SpeechRequest):
    return build_browser_speech_plan(request.text, request.language, request.voice_index)
