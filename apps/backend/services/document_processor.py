"""
LinguaLens - Document Processor
===============================
The upload pipeline: OCR (for images), language detection, analysis,
context-aware translation and persistence with per-user deduplication.
"""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from uuid import uuid4

import aiofiles
import aiofiles.os

from config import Settings, get_settings
from exceptions import AuthenticationError, ValidationError
from logging_config import get_logger
from schemas import ProcessingResult
from services.analysis import AnalysisService
from services.document_service import DocumentService, compute_text_hash
from services.language_detection import detect_language
from services.ocr import extract_text_from_image, is_supported_image
from services.translation import TranslationService

logger = get_logger(__name__)

DEFAULT_CONFIDENCE = 0.8
AUTO_DETECT = "auto"


def _safe_filename(filename: str) -> str:
    name = Path(filename or "upload").name
    return re.sub(r"[^A-Za-z0-9._-]", "_", name) or "upload"


async def _discard_upload(path: Path) -> None:
    """Remove an upload that no document row refers to."""
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        return
    logger.info("upload_discarded", path=path.as_posix())


class DocumentProcessor:
    """
    Orchestrates analysis, translation and storage of one document.

    Example:
        ```python
        processor = DocumentProcessor(documents, analysis, translator)
        result = await processor.process_document(user_id, text, "en", "es")
        ```
    """

    def __init__(
        self,
        documents: DocumentService,
        analysis: AnalysisService,
        translator: TranslationService,
        settings: Optional[Settings] = None,
    ):
        self.documents = documents
        self.analysis = analysis
        self.translator = translator
        self.settings = settings or get_settings()

    async def process_document(
        self,
        user_id: Optional[str],
        text: str,
        source_language: str,
        target_language: str,
        name: Optional[str] = None,
        size: Optional[int] = None,
        type: str = "text/plain",
        image_url: Optional[str] = None,
    ) -> ProcessingResult:
        """
        Analyze, translate and save ``text`` for ``user_id``.

        ``source_language == "auto"`` detects the language first. When the
        user already has a document with identical text, the stored texts
        are returned and only the analysis is re-run.

        Raises:
            AuthenticationError: No user
            ValidationError: Blank text
            LLMServiceError: Analysis or translation failure
        """
        if not user_id:
            raise AuthenticationError("Please sign in to save documents")
        if not text or not text.strip():
            raise ValidationError("No text found in document", field="text")

        if source_language == AUTO_DETECT:
            source_language = await detect_language(self.translator.client, text)
            logger.info("language_detected", language=source_language)

        text_hash = compute_text_hash(text)

        existing = None
        try:
            existing = await self.documents.find_by_hash(user_id, text_hash)
        except Exception as e:
            logger.error("dedup_lookup_failed", user_id=user_id, error=str(e))

        if existing is not None:
            logger.info("document_deduplicated", user_id=user_id, document_id=str(existing.id))
            analysis_result = await self.analysis.analyze_document(text)
            return ProcessingResult(
                original_text=existing.original_text,
                translated_text=existing.translated_text or "",
                analysis_result=analysis_result,
                confidence_score=DEFAULT_CONFIDENCE,
                document_id=str(existing.id),
                deduplicated=True,
            )

        analysis_result = await self.analysis.analyze_document(text)
        translated_text = await self.translator.translate_with_context(
            text,
            analysis_result.summary,
            source_language,
            target_language,
        )

        doc = await self.documents.create_document(
            user_id=user_id,
            name=name or f"Translation_{datetime.now(timezone.utc).isoformat()}",
            original_text=text,
            translated_text=translated_text,
            source_language=source_language,
            target_language=target_language,
            size=size,
            type=type,
            image_url=image_url,
            text_hash=text_hash,
            analysis=analysis_result,
        )

        return ProcessingResult(
            original_text=text,
            translated_text=translated_text,
            analysis_result=analysis_result,
            confidence_score=DEFAULT_CONFIDENCE,
            document_id=str(doc.id),
        )

    async def _save_upload(self, user_id: str, filename: str, data: bytes) -> Path:
        upload_dir = Path(self.settings.upload_dir) / user_id
        upload_dir.mkdir(parents=True, exist_ok=True)
        path = upload_dir / f"{uuid4().hex}_{_safe_filename(filename)}"
        async with aiofiles.open(path, mode="wb") as f:
            await f.write(data)
        return path

    async def process_image(
        self,
        user_id: Optional[str],
        filename: str,
        content_type: Optional[str],
        data: bytes,
        source_language: str,
        target_language: str,
    ) -> ProcessingResult:
        """
        OCR an uploaded image and run it through ``process_document``.

        ``source_language == "auto"`` detects the language from the OCR text.

        Raises:
            AuthenticationError: No user
            ValidationError: Unsupported type, empty or oversized file, no text found
            OCRError: Extraction failure
        """
        if not user_id:
            raise AuthenticationError("Please sign in to save documents")
        if not is_supported_image(content_type):
            raise ValidationError(
                "Unsupported file type. Please upload an image.",
                field="file",
                value=content_type,
            )
        if not data:
            raise ValidationError("Uploaded file is empty", field="file")
        if len(data) > self.settings.max_upload_bytes:
            raise ValidationError(
                f"File exceeds the {self.settings.max_upload_bytes // (1024 * 1024)}MB upload limit",
                field="file",
                value=len(data),
            )

        text = await extract_text_from_image(
            data,
            filename=filename,
            content_type=content_type or "image/png",
        )
        if not text:
            raise ValidationError("No text found in image", field="file")

        path = await self._save_upload(user_id, filename, data)
        logger.info("upload_saved", user_id=user_id, filename=filename, bytes=len(data))

        try:
            result = await self.process_document(
                user_id,
                text,
                source_language,
                target_language,
                name=filename,
                size=len(data),
                type=content_type or "image/png",
                image_url=path.as_posix(),
            )
        except Exception:
            await _discard_upload(path)
            raise

        if result.deduplicated:
            await _discard_upload(path)
        return result
