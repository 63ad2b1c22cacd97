"""
Database Package
================
SQLAlchemy models and session management.
"""

from .models import (
    Base,
    DocumentModel,
    DownloadModel,
    DownloadStatus,
    MessageModel,
    ProfileModel,
)

__all__ = [
    "Base",
    "DocumentModel",
    "DownloadModel",
    "DownloadStatus",
    "MessageModel",
    "ProfileModel",
]
