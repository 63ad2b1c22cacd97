"""
LinguaLens - Document Chat
==========================
Question answering about one document, grounded in its text and analysis.
"""

from typing import Optional

from logging_config import get_logger
from schemas import AnalysisResult, ChatMessage
from services.openai_client import OpenAIClient
from services.translation import TranslationService

logger = get_logger(__name__)

FALLBACK_REPLY = "I apologize, but I could not generate a response."
CHAT_TEMPERATURE = 0.7


def build_system_prompt(document_text: str, analysis: AnalysisResult) -> str:
    action_items = "\n".join(f"- {item.text}" for item in analysis.action_items)
    return (
        "You are an AI assistant helping with document analysis. Here's the context:\n\n"
        f"Document Summary: {analysis.summary}\n\n"
        f"Key Action Items:\n{action_items}\n\n"
        f"Full Content: {document_text}\n\n"
        "Provide helpful, concise answers based on this content. If asked about something "
        "not in the document, politely explain that you can only answer questions about "
        "the provided content."
    )


class DocumentChatService:
    """
    Chat assistant scoped to a single document.

    The conversation history is supplied by the caller on every turn.
    """

    def __init__(self, client: OpenAIClient, translator: Optional[TranslationService] = None):
        self.client = client
        self.translator = translator

    async def reply(
        self,
        document_text: str,
        analysis: AnalysisResult,
        history: list[ChatMessage],
        message: str,
    ) -> str:
        """
        Answer ``message`` about the document.

        Returns:
            The assistant's reply, or a polite fallback when the model
            returns nothing

        Raises:
            LLMServiceError: Request failure
        """
        messages = [{"role": "system", "content": build_system_prompt(document_text, analysis)}]
        messages.extend(
            {"role": turn.role, "content": turn.content}
            for turn in history
            if turn.role != "system"
        )
        messages.append({"role": "user", "content": message})

        content = await self.client.chat_completion(
            messages,
            temperature=CHAT_TEMPERATURE,
            operation="document_chat",
            allow_empty=True,
        )
        return content.strip() or FALLBACK_REPLY

    async def translate_questions(
        self,
        questions: list[str],
        source_language: str,
        target_language: str,
    ) -> list[str]:
        """Suggested questions in ``target_language``; the originals on any failure."""
        if not questions or self.translator is None or source_language == target_language:
            return list(questions)
        try:
            return await self.translator.translate_batch(questions, source_language, target_language)
        except Exception as e:
            logger.warning("question_translation_failed", error=str(e))
            return list(questions)
