"""
System Management Router
========================
Operational endpoints: API key checks, translation cache and circuit
breaker status.

Endpoints:
- POST /api/v1/system/keys/validate      - Check OpenAI and ElevenLabs keys
- GET  /api/v1/system/cache              - Translation cache statistics
- GET  /api/v1/system/circuit-breakers   - Breaker states
- POST /api/v1/system/circuit-breakers/{name}/reset - Close a breaker
"""

import asyncio
from typing import Any, Dict, List

from fastapi import APIRouter

from circuit_breaker import all_circuit_breakers, reset_circuit_breaker
from config import get_settings
from exceptions import NotFoundError
from logging_config import get_logger
from schemas import KeyValidationRequest, KeyValidationResponse
from services.api_validation import validate_elevenlabs_key, validate_openai_key
from services.translation_cache import get_translation_cache

logger = get_logger(__name__)

router = APIRouter()


@router.post("/keys/validate", response_model=KeyValidationResponse)
async def validate_keys(request: KeyValidationRequest):
    """
    Validate API keys.

    Keys omitted from the request are taken from the server configuration.
    A missing key is reported as invalid.
    """
    settings = get_settings()
    openai_key = request.openai_api_key if request.openai_api_key is not None else settings.openai_api_key
    elevenlabs_key = (
        request.elevenlabs_api_key
        if request.elevenlabs_api_key is not None
        else settings.elevenlabs_api_key
    )

    openai_ok, elevenlabs_ok = await asyncio.gather(
        validate_openai_key(openai_key),
        validate_elevenlabs_key(elevenlabs_key),
    )
    logger.info("api_keys_validated", openai=openai_ok, elevenlabs=elevenlabs_ok)
    return KeyValidationResponse(openai=openai_ok, elevenlabs=elevenlabs_ok)


@router.get("/cache")
async def cache_stats() -> Dict[str, Any]:
    return get_translation_cache().stats()


@router.get("/circuit-breakers")
async def circuit_breakers() -> List[Dict[str, Any]]:
    return all_circuit_breakers()


@router.post("/circuit-breakers/{name}/reset")
async def reset_breaker(name: str) -> Dict[str, Any]:
    """Close a breaker after the upstream service has recovered."""
    stats = reset_circuit_breaker(name)
    if stats is None:
        raise NotFoundError("circuit breaker", name)
    logger.info("circuit_breaker_reset_requested", breaker=name)
    return stats
