"""
Documents Router
================
Upload, processing, history and export of translated documents.

Endpoints:
- POST   /api/v1/documents/upload          - OCR an image, then analyze, translate and save
- POST   /api/v1/documents/process         - Analyze, translate and save pasted text
- GET    /api/v1/documents                 - Paginated history, newest first
- GET    /api/v1/documents/{id}            - One document (optional preview translation)
- DELETE /api/v1/documents/{id}            - Delete a document
- POST   /api/v1/documents/{id}/analysis   - Re-run the analysis and store it
- GET    /api/v1/documents/{id}/export     - PDF of the original and translated text
- POST   /api/v1/documents/{id}/chat       - Ask the assistant about a document
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response

from config import get_settings
from database.models import DocumentModel, DownloadStatus
from exceptions import DatabaseConnectionError, NotFoundError
from logging_config import get_logger
from routers.deps import (
    get_analysis_service,
    get_chat_service,
    get_current_user,
    get_document_processor,
    get_document_service,
    get_download_service,
    get_translation_service,
)
from schemas import (
    AnalysisResult,
    AuthUser,
    DocumentChatRequest,
    DocumentChatResponse,
    DocumentListResponse,
    DocumentResponse,
    ProcessingResult,
    ProcessTextRequest,
)
from services.analysis import AnalysisService
from services.chat import DocumentChatService
from services.document_processor import DocumentProcessor
from services.document_service import DocumentService
from services.downloads import DownloadService
from services.pdf_export import export_filename, generate_pdf
from services.translation import TranslationService
from timeout_utils import run_blocking

logger = get_logger(__name__)

router = APIRouter()


def _to_response(doc: DocumentModel, preview_translation: Optional[str] = None) -> DocumentResponse:
    return DocumentResponse(**doc.to_dict(), preview_translation=preview_translation)


async def _require_document(documents: DocumentService, user_id: str, document_id: str) -> DocumentModel:
    doc = await documents.get_document(user_id, document_id)
    if doc is None:
        raise NotFoundError("document", document_id)
    return doc


# =============================================================================
# Processing
# =============================================================================

@router.post("/upload", response_model=ProcessingResult)
async def upload_document(
    file: UploadFile = File(...),
    source_language: str = Form("auto"),
    target_language: str = Form("es"),
    user: AuthUser = Depends(get_current_user),
    processor: DocumentProcessor = Depends(get_document_processor),
):
    """
    Upload an image of a document.

    The text is extracted with OCR, its language detected when
    ``source_language`` is ``auto``, then analyzed, translated and saved.
    Uploading the same text twice returns the stored document.
    """
    data = await file.read()
    result = await processor.process_image(
        user_id=user.id,
        filename=file.filename or "upload",
        content_type=file.content_type,
        data=data,
        source_language=source_language,
        target_language=target_language,
    )
    logger.info(
        "document_uploaded",
        user_id=user.id,
        document_id=result.document_id,
        deduplicated=result.deduplicated,
    )
    return result


@router.post("/process", response_model=ProcessingResult)
async def process_text(
    request: ProcessTextRequest,
    user: AuthUser = Depends(get_current_user),
    processor: DocumentProcessor = Depends(get_document_processor),
):
    """Analyze, translate and save pasted text."""
    return await processor.process_document(
        user.id,
        request.text,
        request.source_language,
        request.target_language,
        name=request.name,
    )


# =============================================================================
# History
# =============================================================================

@router.get("", response_model=DocumentListResponse)
async def list_documents(
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=100),
    user: AuthUser = Depends(get_current_user),
    documents: DocumentService = Depends(get_document_service),
):
    """
    The user's documents, newest first.

    When the database stays unreachable after retries the response carries
    an ``error`` message and an empty page instead of failing.
    """
    per_page = per_page or get_settings().documents_per_page
    try:
        docs, total, has_more = await documents.list_documents(user.id, page, per_page)
    except DatabaseConnectionError as e:
        return DocumentListResponse(page=page, per_page=per_page, error=e.message)

    return DocumentListResponse(
        documents=[_to_response(doc) for doc in docs],
        total=total,
        has_more=has_more,
        page=page,
        per_page=per_page,
    )


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    target_language: Optional[str] = Query(None, description="Preview the original in this language"),
    user: AuthUser = Depends(get_current_user),
    documents: DocumentService = Depends(get_document_service),
    translator: TranslationService = Depends(get_translation_service),
):
    doc = await _require_document(documents, user.id, document_id)

    preview = None
    if target_language and target_language != doc.target_language:
        preview = await translator.translate_text(doc.original_text, doc.source_language, target_language)

    return _to_response(doc, preview)


@router.delete("/{document_id}", status_code=204)
async def delete_document(
    document_id: str,
    user: AuthUser = Depends(get_current_user),
    documents: DocumentService = Depends(get_document_service),
):
    if not await documents.delete_document(user.id, document_id):
        raise NotFoundError("document", document_id)
    logger.info("document_deleted", user_id=user.id, document_id=document_id)


# =============================================================================
# Analysis, Export, Chat
# =============================================================================

@router.post("/{document_id}/analysis", response_model=AnalysisResult)
async def analyze_document(
    document_id: str,
    user: AuthUser = Depends(get_current_user),
    documents: DocumentService = Depends(get_document_service),
    analysis: AnalysisService = Depends(get_analysis_service),
):
    """Re-run the analysis on the stored original text and save the result."""
    doc = await _require_document(documents, user.id, document_id)
    result = await analysis.analyze_document(doc.original_text)
    await documents.update_analysis(user.id, document_id, result)
    return result


@router.get("/{document_id}/export")
async def export_document(
    document_id: str,
    user: AuthUser = Depends(get_current_user),
    documents: DocumentService = Depends(get_document_service),
    downloads: DownloadService = Depends(get_download_service),
):
    """
    Download the document as a PDF.

    Each export is recorded in the user's downloads.
    """
    doc = await _require_document(documents, user.id, document_id)
    pdf = await run_blocking(generate_pdf, doc, timeout=get_settings().export_timeout_seconds)
    filename = export_filename(doc.name)

    await downloads.create_download(
        user_id=user.id,
        filename=filename,
        url=f"/api/v1/documents/{doc.id}/export",
        size=len(pdf),
        status=DownloadStatus.COMPLETED,
    )

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{document_id}/chat", response_model=DocumentChatResponse)
async def chat_about_document(
    document_id: str,
    request: DocumentChatRequest,
    user: AuthUser = Depends(get_current_user),
    documents: DocumentService = Depends(get_document_service),
    chat: DocumentChatService = Depends(get_chat_service),
):
    """
    Answer a question about the document.

    The suggested questions from the analysis are returned in
    ``target_language`` alongside the reply.
    """
    doc = await _require_document(documents, user.id, document_id)
    analysis = AnalysisResult.model_validate(doc.analysis or {"summary": doc.summary or "No summary available"})

    reply = await chat.reply(doc.original_text, analysis, request.history, request.message)
    questions = await chat.translate_questions(
        analysis.relevant_questions,
        request.source_language,
        request.target_language,
    )
    return DocumentChatResponse(response=reply, translated_questions=questions)
