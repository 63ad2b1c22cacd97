"""
Document Service
================
CRUD over the ``documents`` table, scoped to the owning user.
"""

import hashlib
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import get_settings
from database.models import DocumentModel
from exceptions import DatabaseConnectionError
from logging_config import get_logger
from schemas import AnalysisResult

logger = get_logger(__name__)

LIST_ATTEMPTS = 3


def compute_text_hash(text: Optional[str]) -> str:
    """SHA-256 hex digest of the UTF-8 text; ``None`` hashes as empty."""
    return hashlib.sha256((text or "").encode("utf-8")).hexdigest()


def _as_uuid(value: Any) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class DocumentService:
    """
    Document persistence for one user's translations.

    Usage:
        async with DocumentService(db_url) as service:
            docs, total, has_more = await service.list_documents(user_id)

    Or with an existing session:
        service = DocumentService.from_session(session)
        doc = await service.get_document(user_id, doc_id)
    """

    # Backoff between listing attempts
    list_retry_wait = wait_exponential(multiplier=1, min=1, max=4)

    def __init__(self, database_url: Optional[str] = None):
        """
        Initialize the Document Service.

        Args:
            database_url: SQLAlchemy async database URL.
                         If None, uses settings.database_url.
        """
        self._database_url = database_url or get_settings().database_url
        self._engine = None
        self._session_factory = None
        self._session: Optional[AsyncSession] = None
        self._owns_session = True

    @classmethod
    def from_session(cls, session: AsyncSession) -> "DocumentService":
        """
        Create a DocumentService using an existing session.

        Use this when you need to participate in an external transaction.
        """
        instance = cls.__new__(cls)
        instance._database_url = None
        instance._session = session
        instance._owns_session = False
        instance._engine = None
        instance._session_factory = None
        return instance

    async def __aenter__(self) -> "DocumentService":
        if self._owns_session:
            self._engine = create_async_engine(self._database_url, echo=False)
            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            self._session = self._session_factory()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._owns_session and self._session:
            if exc_type is not None:
                await self._session.rollback()
            else:
                await self._session.commit()
            await self._session.close()

        if self._engine:
            await self._engine.dispose()

    # =========================================================================
    # Queries
    # =========================================================================

    async def find_by_hash(self, user_id: str, text_hash: str) -> Optional[DocumentModel]:
        """Most recent document of ``user_id`` with the same text hash."""
        stmt = (
            select(DocumentModel)
            .where(DocumentModel.user_id == user_id, DocumentModel.text_hash == text_hash)
            .order_by(DocumentModel.created_at.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def get_document(self, user_id: str, doc_id: Any) -> Optional[DocumentModel]:
        """
        Retrieve a single document owned by ``user_id``.

        Returns:
            DocumentModel if found, None otherwise (including malformed ids).
        """
        doc_uuid = _as_uuid(doc_id)
        if doc_uuid is None:
            return None
        stmt = select(DocumentModel).where(
            DocumentModel.id == doc_uuid,
            DocumentModel.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _list_once(self, user_id: str, page: int, per_page: int) -> Tuple[List[DocumentModel], int]:
        count_stmt = select(func.count()).select_from(DocumentModel).where(DocumentModel.user_id == user_id)
        total = (await self._session.execute(count_stmt)).scalar_one()

        stmt = (
            select(DocumentModel)
            .where(DocumentModel.user_id == user_id)
            .order_by(DocumentModel.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all()), total

    async def list_documents(
        self,
        user_id: str,
        page: int = 1,
        per_page: int = 5,
    ) -> Tuple[List[DocumentModel], int, bool]:
        """
        One page of the user's documents, newest first.

        The query is attempted up to three times with exponential backoff.

        Returns:
            (documents, total, has_more) where has_more = total > page * per_page

        Raises:
            DatabaseConnectionError: All attempts failed
        """
        page = max(page, 1)
        per_page = max(per_page, 1)

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(SQLAlchemyError),
                stop=stop_after_attempt(LIST_ATTEMPTS),
                wait=self.list_retry_wait,
                before_sleep=lambda retry_state: logger.warning(
                    "list_documents_retrying",
                    user_id=user_id,
                    attempt=retry_state.attempt_number,
                ),
            ):
                with attempt:
                    documents, total = await self._list_once(user_id, page, per_page)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error("list_documents_failed", user_id=user_id, error=str(last_error))
            raise DatabaseConnectionError(
                "Failed to fetch documents. Please try again later.",
                operation="list_documents",
                original_error=last_error,
            ) from e

        return documents, total, total > page * per_page

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create_document(
        self,
        user_id: str,
        name: str,
        original_text: str,
        translated_text: Optional[str],
        source_language: str,
        target_language: str,
        size: Optional[int] = None,
        type: str = "text/plain",
        image_url: Optional[str] = None,
        text_hash: Optional[str] = None,
        analysis: Optional[AnalysisResult] = None,
    ) -> DocumentModel:
        """
        Insert a document row.

        ``size`` defaults to the UTF-8 byte length of ``original_text`` and
        ``text_hash`` to its SHA-256.
        """
        doc = DocumentModel(
            user_id=user_id,
            name=name,
            size=size if size is not None else len(original_text.encode("utf-8")),
            type=type,
            original_text=original_text,
            translated_text=translated_text,
            source_language=source_language,
            target_language=target_language,
            image_url=image_url,
            text_hash=text_hash or compute_text_hash(original_text),
            summary=analysis.summary if analysis else None,
            analysis=analysis.model_dump() if analysis else None,
        )

        self._session.add(doc)
        await self._session.flush()

        logger.info("document_created", document_id=str(doc.id), user_id=user_id, name=name)
        return doc

    async def update_translation(
        self,
        user_id: str,
        doc_id: Any,
        translated_text: str,
        target_language: str,
    ) -> bool:
        """Replace the stored translation. Returns False if no row matched."""
        return await self._update(
            user_id,
            doc_id,
            {"translated_text": translated_text, "target_language": target_language},
        )

    async def update_analysis(self, user_id: str, doc_id: Any, analysis: AnalysisResult) -> bool:
        return await self._update(
            user_id,
            doc_id,
            {"summary": analysis.summary, "analysis": analysis.model_dump()},
        )

    async def _update(self, user_id: str, doc_id: Any, values: Dict[str, Any]) -> bool:
        doc_uuid = _as_uuid(doc_id)
        if doc_uuid is None:
            return False

        stmt = (
            update(DocumentModel)
            .where(DocumentModel.id == doc_uuid, DocumentModel.user_id == user_id)
            .values(**values)
        )
        result = await self._session.execute(stmt)

        if result.rowcount > 0:
            logger.info("document_updated", document_id=str(doc_uuid), fields=sorted(values))
            return True

        logger.warning("document_not_found_for_update", document_id=str(doc_uuid))
        return False

    async def delete_document(self, user_id: str, doc_id: Any) -> bool:
        doc_uuid = _as_uuid(doc_id)
        if doc_uuid is None:
            return False

        stmt = delete(DocumentModel).where(
            DocumentModel.id == doc_uuid,
            DocumentModel.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        if result.rowcount > 0:
            logger.info("document_deleted", document_id=str(doc_uuid))
            return True
        return False
