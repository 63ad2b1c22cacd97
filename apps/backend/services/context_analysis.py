"""
LinguaLens - Context Analysis
=============================
Relevance summary and confidence score for a block of text.
"""

import re

from exceptions import LLMServiceError
from logging_config import get_logger
from schemas import ContextAnalysis
from services.openai_client import OpenAIClient

logger = get_logger(__name__)

SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")
CONFIDENCE_PATTERN = re.compile(r"confidence score: (0\.\d+)", re.IGNORECASE)
DEFAULT_CONFIDENCE = 0.5

MAX_EMBEDDED_SENTENCES = 10
MAX_RELEVANT_SENTENCES = 5
MIN_RELEVANT_LENGTH = 20

CONTEXT_SYSTEM_PROMPT = (
    "You are an expert at analyzing and summarizing text content. "
    "Evaluate the relevance and importance of the provided content."
)


def split_sentences(text: str) -> list[str]:
    """Sentences ending in . ! or ?; the whole text when there are none."""
    return SENTENCE_PATTERN.findall(text) or [text]


def parse_confidence(analysis: str) -> float:
    match = CONFIDENCE_PATTERN.search(analysis)
    return float(match.group(1)) if match else DEFAULT_CONFIDENCE


def pick_relevant_sentences(sentences: list[str]) -> list[str]:
    return [
        sentence
        for sentence in sentences[:MAX_RELEVANT_SENTENCES]
        if len(sentence.strip()) > MIN_RELEVANT_LENGTH
    ]


async def analyze_context(client: OpenAIClient, text: str) -> ContextAnalysis:
    """
    Summarize how relevant and coherent ``text`` is.

    Raises:
        LLMServiceError: "Context analysis failed: <reason>"
    """
    sentences = split_sentences(text)

    try:
        await client.embeddings(sentences[:MAX_EMBEDDED_SENTENCES])

        joined = "\n\n".join(sentences)
        analysis = await client.chat_completion(
            [
                {"role": "system", "content": CONTEXT_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f"Text content:\n{joined}\n\n"
                        "Please:\n"
                        "1. Identify the most relevant sections\n"
                        "2. Provide a concise summary\n"
                        "3. Assign a confidence score (0-1) based on the quality "
                        "and coherence of the content"
                    ),
                },
            ],
            temperature=0.3,
            operation="context_analysis",
            empty_message="No analysis received from OpenAI",
        )
    except LLMServiceError as e:
        logger.error("context_analysis_failed", error=e.message)
        raise LLMServiceError(
            f"Context analysis failed: {e.message}",
            operation="context_analysis",
            original_error=e,
        ) from e

    return ContextAnalysis(
        relevant_content=pick_relevant_sentences(sentences),
        summary=analysis,
        confidence=parse_confidence(analysis),
    )
