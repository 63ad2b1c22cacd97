"""
LinguaLens - Language Detection
===============================
Ask the chat model for the ISO 639-1 code of a text.
"""

from services.openai_client import OpenAIClient
from logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_LANGUAGE = "en"

DETECTION_SYSTEM_PROMPT = (
    "You are a language detection expert. Respond only with the ISO 639-1 language code."
)


async def detect_language(client: OpenAIClient, text: str) -> str:
    """
    Detect the language of ``text``.

    Never raises: any failure or empty answer yields ``"en"``.
    """
    if not text or not text.strip():
        return DEFAULT_LANGUAGE

    try:
        answer = await client.chat_completion(
            [
                {"role": "system", "content": DETECTION_SYSTEM_PROMPT},
                {"role": "user", "content": f'Detect the language of this text: "{text}"'},
            ],
            temperature=0.3,
            max_tokens=2,
            operation="detect_language",
        )
    except Exception as e:
        logger.warning("language_detection_failed", error=str(e))
        return DEFAULT_LANGUAGE

    code = answer.strip().strip(".\"'").lower()
    return code or DEFAULT_LANGUAGE
