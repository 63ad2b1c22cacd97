"""
Translation Router
==================
Stateless translation and language utilities.

Endpoints:
- POST   /api/v1/translate          - Translate one text
- POST   /api/v1/translate/batch    - Translate many texts
- DELETE /api/v1/translate/cache    - Empty the translation cache
- POST   /api/v1/detect-language    - Detect the language of a text
- GET    /api/v1/languages          - Supported languages
"""

from typing import List

from fastapi import APIRouter, Depends

from languages import COMMON_LANGUAGES
from logging_config import get_logger
from routers.deps import get_translation_service
from schemas import (
    BatchTranslateRequest,
    BatchTranslateResponse,
    DetectLanguageRequest,
    DetectLanguageResponse,
    LanguageResponse,
    TranslateRequest,
    TranslateResponse,
)
from services.language_detection import detect_language
from services.translation import TranslationService

logger = get_logger(__name__)

router = APIRouter()


@router.post("/translate", response_model=TranslateResponse)
async def translate(
    request: TranslateRequest,
    translator: TranslationService = Depends(get_translation_service),
):
    """
    Translate ``text`` into ``target_language``.

    ``cached`` tells whether the answer came from the translation cache.
    """
    translated, cached = await translator.translate_text_cached(
        request.text,
        request.source_language,
        request.target_language,
    )
    return TranslateResponse(
        translated_text=translated,
        source_language=request.source_language,
        target_language=request.target_language,
        cached=cached,
    )


@router.post("/translate/batch", response_model=BatchTranslateResponse)
async def translate_batch(
    request: BatchTranslateRequest,
    translator: TranslationService = Depends(get_translation_service),
):
    translations = await translator.translate_batch(
        request.texts,
        request.source_language,
        request.target_language,
    )
    return BatchTranslateResponse(
        translations=translations,
        source_language=request.source_language,
        target_language=request.target_language,
    )


@router.delete("/translate/cache", status_code=204)
async def clear_translation_cache(translator: TranslationService = Depends(get_translation_service)):
    cleared = len(translator.cache)
    translator.cache.clear()
    logger.info("translation_cache_cleared", entries=cleared)


@router.post("/detect-language", response_model=DetectLanguageResponse)
async def detect(
    request: DetectLanguageRequest,
    translator: TranslationService = Depends(get_translation_service),
):
    """Falls back to ``en`` when detection fails."""
    language = await detect_language(translator.client, request.text)
    return DetectLanguageResponse(language=language)


@router.get("/languages", response_model=List[LanguageResponse])
async def list_languages():
    return [
        LanguageResponse(code=language.code, name=language.name, native_name=language.native_name)
        for language in COMMON_LANGUAGES
    ]
