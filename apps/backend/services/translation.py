"""
LinguaLens - Translation Service
================================
LLM-backed translation with caching, batch fan-out and context-aware
document translation.
"""

import asyncio
import time
from typing import Optional

from exceptions import LLMServiceError
from languages import base_code, language_name
from logging_config import get_logger
from metrics import translation_cache_hits_total, translation_duration_seconds, translations_total
from services.openai_client import OpenAIClient
from services.translation_cache import TranslationCache, get_translation_cache

logger = get_logger(__name__)

TRANSLATION_TEMPERATURE = 0.3
TRANSLATION_MAX_TOKENS = 1000


def translator_prompt(source_language: str, target_language: str) -> str:
    return (
        "You are a professional translator. "
        f"Translate the following text from {language_name(source_language)} "
        f"to {language_name(target_language)}. "
        "Maintain the original tone and meaning while ensuring natural flow "
        "in the target language."
    )


class TranslationService:
    """
    Translate text through the OpenAI chat model.

    Example:
        ```python
        service = TranslationService(get_openai_client())
        spanish = await service.translate_text("Good morning", "en", "es")
        ```
    """

    def __init__(self, client: OpenAIClient, cache: Optional[TranslationCache] = None):
        self.client = client
        self.cache = cache if cache is not None else get_translation_cache()

    @staticmethod
    def _same_language(source_language: str, target_language: str) -> bool:
        return base_code(source_language) == base_code(target_language)

    async def _complete(self, system_prompt: str, user_content: str) -> str:
        start_time = time.perf_counter()
        try:
            return await self.client.chat_completion(
                [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                temperature=TRANSLATION_TEMPERATURE,
                max_tokens=TRANSLATION_MAX_TOKENS,
                operation="translate",
                empty_message="No translation received",
            )
        except LLMServiceError:
            raise
        except Exception as e:
            logger.error("translation_failed", error=str(e))
            raise LLMServiceError("Translation failed", operation="translate", original_error=e) from e
        finally:
            translation_duration_seconds.observe(time.perf_counter() - start_time)

    async def translate_text(self, text: str, source_language: str, target_language: str) -> str:
        """
        Translate ``text`` from ``source_language`` into ``target_language``.

        Identical languages return the text untouched and blank text returns
        an empty string, both without calling the model. Results are cached.

        Raises:
            LLMServiceError: Quota, key, availability or generic failure
        """
        translation, _ = await self.translate_text_cached(text, source_language, target_language)
        return translation

    async def translate_text_cached(
        self,
        text: str,
        source_language: str,
        target_language: str,
    ) -> tuple[str, bool]:
        """Like ``translate_text``, also telling whether the cache answered."""
        if self._same_language(source_language, target_language):
            return text, False
        if not text or not text.strip():
            return "", False

        cached = self.cache.get(text, target_language)
        if cached is not None:
            translations_total.labels(cached="true").inc()
            translation_cache_hits_total.inc()
            return cached, True

        translations_total.labels(cached="false").inc()
        translation = await self._complete(translator_prompt(source_language, target_language), text)
        self.cache.set(text, translation, target_language)

        logger.info(
            "text_translated",
            source_language=source_language,
            target_language=target_language,
            chars=len(text),
        )
        return translation, False

    async def translate_batch(
        self,
        texts: list[str],
        source_language: str,
        target_language: str,
    ) -> list[str]:
        """Translate many strings concurrently, preserving order."""
        if not texts:
            return []
        return list(await asyncio.gather(
            *(self.translate_text(text, source_language, target_language) for text in texts)
        ))

    async def translate_with_context(
        self,
        text: str,
        context_summary: str,
        source_language: str,
        target_language: str,
    ) -> str:
        """
        Translate a document with its analysis summary as background.

        Not cached: the same text may be translated with different context.
        """
        if self._same_language(source_language, target_language):
            return text
        if not text or not text.strip():
            return ""

        source_name = language_name(source_language)
        target_name = language_name(target_language)
        prompt = (
            f"Context and background information:\n{context_summary}\n\n"
            f"Original text to translate:\n{text}\n\n"
            f"Please provide a high-quality translation from {source_name} to {target_name}, "
            "taking into account the contextual information provided above."
        )
        translations_total.labels(cached="false").inc()
        return await self._complete(translator_prompt(source_language, target_language), prompt)
