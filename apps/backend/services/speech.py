"""
LinguaLens - Speech
===================
ElevenLabs text-to-speech, plus the instructions a browser needs to speak
text itself when ElevenLabs is not configured.
"""

import re
from typing import Optional, Sequence

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from circuit_breaker import CircuitBreaker, CircuitBreakerOpenError, get_circuit_breaker
from config import Settings, get_settings
from exceptions import SpeechSynthesisError, ValidationError
from languages import base_code
from logging_config import get_logger
from metrics import speech_requests_total
from schemas import BrowserSpeechPlan

logger = get_logger(__name__)

MAX_TEXT_LENGTH = 5000


# =============================================================================
# Browser Voices
# =============================================================================

PREFERRED_VOICES: dict[str, list[str]] = {
    "en": ["Daniel", "Samantha", "Karen", "Arthur"],
    "es": ["Monica", "Juan", "Diego", "Jorge"],
    "fr": ["Thomas", "Amelie", "Marie", "Louis"],
    "de": ["Anna", "Klaus", "Heinrich", "Marlene"],
    "it": ["Alice", "Luca", "Elsa", "Giorgio"],
    "pt": ["Joana", "Felipe", "Lucia"],
    "ru": ["Milena", "Yuri", "Ivan"],
    "zh": ["Tingting", "Lili", "Hanhan"],
    "ja": ["Kyoko", "Otoya", "Sakura"],
    "ko": ["Yuna", "Seoyeon", "Jihun"],
}

_SENTENCE_BREAK = re.compile(r"([.!?])\s+")


def add_sentence_breaks(text: str) -> str:
    return _SENTENCE_BREAK.sub(r"\1\n", text)


def order_voices(voices: Sequence[dict], lang: str = "en") -> list[dict]:
    """
    Filter and rank voice descriptors (``{"name": ..., "lang": ...}``).

    Voices whose language starts with the base code are kept. Preferred
    names come first in preference order, then voices not provided by
    Google, then the rest in their original order.
    """
    code = base_code(lang)
    preferred = [name.lower() for name in PREFERRED_VOICES.get(code, [])]

    def rank(voice: dict) -> tuple[int, int]:
        name = str(voice.get("name", "")).lower()
        for index, preferred_name in enumerate(preferred):
            if preferred_name in name:
                return (0, index)
        return (1, 0) if "google" not in name else (2, 0)

    matching = [voice for voice in voices if str(voice.get("lang", "")).startswith(code)]
    return sorted(matching, key=rank)


def build_browser_speech_plan(text: str, lang: str = "en-US", voice_index: int = 0) -> BrowserSpeechPlan:
    if not text or not text.strip():
        raise ValidationError("Text is required for speech generation", field="text")
    speech_requests_total.labels(provider="browser").inc()
    return BrowserSpeechPlan(
        text=add_sentence_breaks(text),
        lang=lang,
        preferred_voices=PREFERRED_VOICES.get(base_code(lang), []),
        voice_index=voice_index,
    )


# =============================================================================
# ElevenLabs
# =============================================================================

class SpeechBusyError(SpeechSynthesisError):
    """429/503 from ElevenLabs; retried."""


def _error_detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except ValueError:
        return f"Failed to generate speech: {response.status_code} {response.reason_phrase}"
    if isinstance(detail, dict):
        detail = detail.get("message")
    return str(detail) if detail else "Failed to generate speech"


class SpeechService:
    """
    ElevenLabs text-to-speech client.

    Example:
        ```python
        async with SpeechService() as speech:
            mp3 = await speech.generate_speech("Hola, ¿qué tal?")
        ```
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.settings = settings or get_settings()
        self.api_key = api_key if api_key is not None else self.settings.elevenlabs_api_key
        self.base_url = self.settings.elevenlabs_base_url
        self._transport = transport
        self._breaker = breaker or get_circuit_breaker(
            "elevenlabs",
            failure_threshold=3,
            recovery_timeout=60.0,
            expected_exception=SpeechBusyError,
        )
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(60.0, connect=10.0),
                transport=self._transport,
            )
        return self._client

    @retry(
        retry=retry_if_exception_type(SpeechBusyError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "elevenlabs_busy_retrying",
            attempt=retry_state.attempt_number,
        ),
    )
    async def _synthesize(self, text: str, voice_id: str) -> bytes:
        client = self._get_client()
        try:
            response = await client.post(
                f"/text-to-speech/{voice_id}",
                headers={
                    "Accept": "audio/mpeg",
                    "Content-Type": "application/json",
                    "xi-api-key": self.api_key,
                },
                json={
                    "text": text,
                    "model_id": self.settings.elevenlabs_model_id,
                    "voice_settings": {
                        "stability": 0.75,
                        "similarity_boost": 0.75,
                        "style": 0.0,
                        "use_speaker_boost": True,
                    },
                },
            )
        except httpx.RequestError as e:
            logger.error("elevenlabs_connection_error", error=str(e))
            raise SpeechSynthesisError(
                "Failed to generate audio. Please check your API key and try again.",
                voice_id=voice_id,
                original_error=e,
            ) from e

        if response.status_code in (429, 503):
            raise SpeechBusyError(_error_detail(response), voice_id=voice_id)
        if not response.is_success:
            raise SpeechSynthesisError(_error_detail(response), voice_id=voice_id)

        return response.content

    async def generate_speech(self, text: str, voice_id: Optional[str] = None) -> bytes:
        """
        Synthesize ``text`` to MP3 bytes.

        Text over 5000 characters is cut to 4997 characters plus "...".

        Raises:
            SpeechSynthesisError: Missing key, provider error or empty audio
            ValidationError: Blank text
        """
        if not self.api_key or not self.api_key.strip():
            raise SpeechSynthesisError("ElevenLabs API key is required")
        if not text or not text.strip():
            raise ValidationError("Text is required for speech generation", field="text")

        if len(text) > MAX_TEXT_LENGTH:
            text = text[:MAX_TEXT_LENGTH - 3] + "..."

        voice_id = voice_id or self.settings.elevenlabs_voice_id
        speech_requests_total.labels(provider="elevenlabs").inc()

        try:
            audio = await self._breaker.call(self._synthesize, text, voice_id)
        except CircuitBreakerOpenError as e:
            raise SpeechSynthesisError(
                "Speech service is temporarily unavailable. Please try again later.",
                voice_id=voice_id,
                original_error=e,
            ) from e
        if not audio:
            raise SpeechSynthesisError("Generated audio is empty", voice_id=voice_id)

        logger.info("speech_generated", voice_id=voice_id, chars=len(text), audio_bytes=len(audio))
        return audio
