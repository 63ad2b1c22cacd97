"""
LinguaLens - API Key Validation
===============================
Cheap authenticated calls that tell whether an OpenAI or ElevenLabs key works.
"""

from typing import Optional

import httpx

from circuit_breaker import CircuitBreaker
from config import get_settings
from logging_config import get_logger
from services.openai_client import OpenAIClient

logger = get_logger(__name__)


async def validate_openai_key(
    api_key: Optional[str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """True when ``GET /models`` succeeds and lists at least one model."""
    if not api_key or not api_key.strip():
        logger.warning("openai_key_empty")
        return False

    try:
        async with OpenAIClient(
            api_key=api_key,
            transport=transport,
            breaker=CircuitBreaker(name="openai-key-check"),
        ) as client:
            models = await client.list_models()
    except Exception as e:
        logger.warning("openai_key_invalid", error=str(e))
        return False

    return len(models) > 0


async def validate_elevenlabs_key(
    api_key: Optional[str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """True when ``GET /voices`` returns 2xx."""
    if not api_key or not api_key.strip():
        logger.warning("elevenlabs_key_empty")
        return False

    try:
        async with httpx.AsyncClient(
            base_url=get_settings().elevenlabs_base_url,
            timeout=httpx.Timeout(15.0, connect=5.0),
            transport=transport,
        ) as client:
            response = await client.get("/voices", headers={"xi-api-key": api_key})
    except httpx.HTTPError as e:
        logger.warning("elevenlabs_key_check_failed", error=str(e))
        return False

    return response.is_success
