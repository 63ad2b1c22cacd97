"""
Database Models
===============
SQLAlchemy models for the rows LinguaLens persists: profiles, documents,
live-chat messages and downloads.
"""

import enum
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Text,
    Integer,
    Float,
    Enum,
    Index,
    JSON,
)
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class DownloadStatus(str, enum.Enum):
    """
    Download lifecycle status.

    PENDING: Row created, transfer not started
    DOWNLOADING: Transfer in progress, ``progress`` is meaningful
    COMPLETED: File fully retrieved
    ERROR: Transfer failed, see ``error``
    """
    PENDING = "pending"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    ERROR = "error"


class ProfileModel(Base):
    """Public profile for an auth user. ``id`` is the Supabase user id."""
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "created_at": _iso(self.created_at),
        }


class DocumentModel(Base):
    """
    A processed document: the OCR or pasted source text, its translation and
    the AI analysis.

    Attributes:
        id: Unique document identifier (UUID)
        user_id: Owner (auth user id)
        name: Display name (upload filename or ``Translation_<timestamp>``)
        size: Source size in bytes
        type: MIME type of the source
        original_text: Extracted or pasted text
        translated_text: Translation into ``target_language``
        text_hash: SHA-256 of ``original_text`` for per-user dedup
        summary: Analysis summary, denormalized for listing
        analysis: Full analysis payload (questions, action items, sections)
    """
    __tablename__ = "documents"

    id = Column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(String(64), nullable=False, index=True)

    name = Column(String(512), nullable=False)
    size = Column(Integer, nullable=False, default=0)
    type = Column(String(128), nullable=False, default="text/plain")

    original_text = Column(Text, nullable=False, default="")
    translated_text = Column(Text, nullable=True)
    source_language = Column(String(16), nullable=False, default="en")
    target_language = Column(String(16), nullable=False, default="es")
    image_url = Column(String(1024), nullable=True)
    text_hash = Column(String(64), nullable=True, index=True)

    summary = Column(Text, nullable=True)
    analysis = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_documents_user_hash", "user_id", "text_hash"),
        Index("ix_documents_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<DocumentModel(id={self.id}, name='{self.name}', user_id={self.user_id})>"

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": str(self.id),
            "user_id": self.user_id,
            "name": self.name,
            "size": self.size,
            "type": self.type,
            "original_text": self.original_text,
            "translated_text": self.translated_text,
            "source_language": self.source_language,
            "target_language": self.target_language,
            "image_url": self.image_url,
            "text_hash": self.text_hash,
            "summary": self.summary,
            "analysis": self.analysis,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class MessageModel(Base):
    """Live-chat message."""
    __tablename__ = "messages"

    id = Column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(String(64), nullable=False, index=True)
    username = Column(String(64), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": self.user_id,
            "username": self.username,
            "content": self.content,
            "created_at": _iso(self.created_at),
        }


class DownloadModel(Base):
    """A file the user downloaded or exported, with transfer progress."""
    __tablename__ = "downloads"

    id = Column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(String(64), nullable=False, index=True)
    filename = Column(String(512), nullable=False)
    size = Column(Integer, nullable=False, default=0)
    url = Column(String(2048), nullable=False)
    status = Column(
        Enum(DownloadStatus),
        nullable=False,
        default=DownloadStatus.PENDING,
        server_default=DownloadStatus.PENDING.name,
    )
    error = Column(Text, nullable=True)
    progress = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<DownloadModel(id={self.id}, filename='{self.filename}', status={self.status.value})>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": self.user_id,
            "filename": self.filename,
            "size": self.size,
            "url": self.url,
            "status": self.status.value,
            "error": self.error,
            "progress": self.progress,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
