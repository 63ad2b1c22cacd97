"""
API Routers
===========
FastAPI routers for the LinguaLens backend.
"""

from .analysis import router as analysis_router
from .auth import router as auth_router
from .documents import router as documents_router
from .downloads import router as downloads_router
from .messages import router as messages_router
from .speech import router as speech_router
from .system import router as system_router
from .translation import router as translation_router

__all__ = [
    "analysis_router",
    "auth_router",
    "documents_router",
    "downloads_router",
    "messages_router",
    "speech_router",
    "system_router",
    "translation_router",
]
