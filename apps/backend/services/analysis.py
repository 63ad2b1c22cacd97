"""
LinguaLens - Document Analysis
==============================
Executive summary, follow-up questions, action items and sections
generated by the chat model in JSON mode.
"""

import json
from typing import Any

from exceptions import LLMServiceError, QuotaExceededError
from logging_config import get_logger
from schemas import ActionItem, AnalysisResult, AnalysisTranslation, Section
from services.openai_client import OpenAIClient
from services.translation import TranslationService

logger = get_logger(__name__)

ANALYSIS_SYSTEM_PROMPT = """You are an expert document analyzer. Analyze the provided text and return a JSON response with:
1. A comprehensive yet concise executive summary
2. 3-5 key questions that would be relevant to ask about this content
3. Key action items and insights
4. Logical content sections

Format the response as:
{
  "summary": "executive summary",
  "relevantQuestions": ["question 1", "question 2", "question 3"],
  "actionItems": ["action item 1", "action item 2"],
  "sections": [
    {
      "title": "section title",
      "content": "section content"
    }
  ]
}"""


def _strip_code_fence(text: str) -> str:
    clean_text = text.strip()
    if clean_text.startswith("```json"):
        clean_text = clean_text[7:]
    if clean_text.startswith("```"):
        clean_text = clean_text[3:]
    if clean_text.endswith("```"):
        clean_text = clean_text[:-3]
    return clean_text.strip()


def build_analysis_result(data: dict[str, Any]) -> AnalysisResult:
    """
    Map the model's JSON onto ``AnalysisResult``, filling defaults.

    Action items get fresh ids and start uncompleted. Sections without a
    title become "Untitled Section".
    """
    action_items = [
        ActionItem(text=str(item))
        for item in data.get("actionItems") or []
        if item
    ]
    sections = []
    for raw in data.get("sections") or []:
        if not isinstance(raw, dict):
            continue
        sections.append(Section(
            title=raw.get("title") or "Untitled Section",
            content=raw.get("content") or "",
        ))

    return AnalysisResult(
        summary=data.get("summary") or "No summary available",
        relevant_questions=[str(q) for q in data.get("relevantQuestions") or []],
        action_items=action_items,
        sections=sections,
        translations={"es": AnalysisTranslation()},
    )


class AnalysisService:
    """
    Document analysis through the OpenAI chat model.

    Example:
        ```python
        service = AnalysisService(client, translator)
        result = await service.analyze_document(text)
        spanish = await service.translate_analysis(result, "en", "es")
        ```
    """

    def __init__(self, client: OpenAIClient, translator: TranslationService):
        self.client = client
        self.translator = translator

    async def analyze_document(self, text: str) -> AnalysisResult:
        """
        Analyze a document.

        Args:
            text: Full document text

        Returns:
            AnalysisResult with defaults filled in

        Raises:
            QuotaExceededError: OpenAI quota exhausted
            LLMServiceError: Any other failure, including unparseable JSON
        """
        try:
            content = await self.client.chat_completion(
                [
                    {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": f"Please analyze this text and provide the response in JSON format: {text}",
                    },
                ],
                temperature=0.3,
                json_mode=True,
                operation="analyze",
                empty_message="Document analysis failed",
            )
        except QuotaExceededError:
            raise
        except LLMServiceError as e:
            logger.error("document_analysis_failed", error=e.message)
            raise

        try:
            data = json.loads(_strip_code_fence(content))
        except json.JSONDecodeError as e:
            logger.error("analysis_invalid_json", error=str(e), response=content[:500])
            raise LLMServiceError("Document analysis failed", operation="analyze", original_error=e) from e

        if not isinstance(data, dict):
            raise LLMServiceError("Document analysis failed", operation="analyze")

        result = build_analysis_result(data)
        logger.info(
            "document_analyzed",
            questions=len(result.relevant_questions),
            action_items=len(result.action_items),
            sections=len(result.sections),
        )
        return result

    async def translate_analysis(
        self,
        result: AnalysisResult,
        source_language: str,
        target_language: str,
    ) -> AnalysisResult:
        """
        Fill ``translations[target_language]`` with the translated summary
        and action items. Returns a new result; the input is not modified.
        """
        texts = [result.summary] + [item.text for item in result.action_items]
        translated = await self.translator.translate_batch(texts, source_language, target_language)

        translated_items = [
            ActionItem(id=item.id, text=text, completed=item.completed)
            for item, text in zip(result.action_items, translated[1:])
        ]
        translations = dict(result.translations)
        translations[target_language] = AnalysisTranslation(
            summary=translated[0],
            action_items=translated_items,
        )
        return result.model_copy(update={"translations": translations})
