"""
Router Dependencies
===================
FastAPI dependency providers shared by the API routers.

Tests replace these through ``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from database.session import get_db_session
from exceptions import AuthenticationError
from schemas import AuthUser
from services.analysis import AnalysisService
from services.auth import AuthService
from services.chat import DocumentChatService
from services.document_processor import DocumentProcessor
from services.document_service import DocumentService
from services.downloads import DownloadService
from services.live_chat import LiveChatService
from services.openai_client import OpenAIClient, get_openai_client
from services.speech import SpeechService
from services.translation import TranslationService
from services.translation_cache import get_translation_cache


def bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header, if any."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_auth_service(session: AsyncSession = Depends(get_db_session)) -> AuthService:
    return AuthService(session)


async def get_current_user(
    token: Optional[str] = Depends(bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> AuthUser:
    if not token:
        raise AuthenticationError("Please sign in to continue")
    return await auth.get_user(token)


# =============================================================================
# Services
# =============================================================================

def get_translation_service(client: OpenAIClient = Depends(get_openai_client)) -> TranslationService:
    return TranslationService(client, get_translation_cache())


def get_analysis_service(
    client: OpenAIClient = Depends(get_openai_client),
    translator: TranslationService = Depends(get_translation_service),
) -> AnalysisService:
    return AnalysisService(client, translator)


def get_chat_service(
    client: OpenAIClient = Depends(get_openai_client),
    translator: TranslationService = Depends(get_translation_service),
) -> DocumentChatService:
    return DocumentChatService(client, translator)


def get_document_service(session: AsyncSession = Depends(get_db_session)) -> DocumentService:
    return DocumentService.from_session(session)


def get_document_processor(
    documents: DocumentService = Depends(get_document_service),
    analysis: AnalysisService = Depends(get_analysis_service),
    translator: TranslationService = Depends(get_translation_service),
) -> DocumentProcessor:
    return DocumentProcessor(documents, analysis, translator, get_settings())


def get_download_service(session: AsyncSession = Depends(get_db_session)) -> DownloadService:
    return DownloadService(session)


def get_live_chat_service(session: AsyncSession = Depends(get_db_session)) -> LiveChatService:
    return LiveChatService(session)


def get_speech_service() -> Optional[SpeechService]:
    """None when no ElevenLabs key is configured."""
    settings = get_settings()
    return SpeechService(settings=settings) if settings.speech_enabled else None
