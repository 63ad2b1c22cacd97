"""
LinguaLens - Test Configuration
===============================
Pytest fixtures, markers, and shared test doubles.
"""

import asyncio
import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Add backend to path for imports
BACKEND_PATH = Path(__file__).parent.parent / "apps" / "backend"
sys.path.insert(0, str(BACKEND_PATH))

# Settings are read at import time by main.py
os.environ.setdefault("OPENAI_API_KEY", "sk-test-key")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "100000")
os.environ.setdefault("ENVIRONMENT", "development")


# =============================================================================
# Test Run Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Fast, no I/O, mocks only"
    )
    config.addinivalue_line(
        "markers", "integration: Mocks external APIs but uses real DB drivers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests requiring a running server"
    )


def pytest_collection_modifyitems(config, items):
    """Skip E2E tests unless E2E_ACTIVE is set."""
    if not os.getenv("E2E_ACTIVE"):
        skip_e2e = pytest.mark.skip(
            reason="E2E_ACTIVE not set. Run with E2E_ACTIVE=1 for E2E tests."
        )
        for item in items:
            if "e2e" in item.keywords:
                item.add_marker(skip_e2e)


@pytest.fixture(autouse=True)
def reset_cached_singletons():
    """Fresh settings, translation cache and login throttle for every test."""
    from config import get_settings
    from services.auth import get_login_throttle
    from services.translation_cache import get_translation_cache

    get_settings.cache_clear()
    get_translation_cache.cache_clear()
    get_login_throttle.cache_clear()
    yield
    get_settings.cache_clear()
    get_translation_cache.cache_clear()
    get_login_throttle.cache_clear()


@pytest.fixture
def no_retry_wait(monkeypatch):
    """Retry immediately instead of backing off."""
    from tenacity import wait_none

    from services.openai_client import OpenAIClient
    from services.speech import SpeechService

    monkeypatch.setattr(OpenAIClient._request.retry, "wait", wait_none())
    monkeypatch.setattr(SpeechService._synthesize.retry, "wait", wait_none())


# =============================================================================
# Mock Settings
# =============================================================================

@pytest.fixture
def mock_settings(tmp_path):
    """Provide application settings isolated to a temp directory."""
    from config import Settings

    return Settings(
        openai_api_key="sk-test-key",
        openai_model="gpt-test",
        database_url="sqlite+aiosqlite://",
        upload_dir=str(tmp_path / "uploads"),
        max_upload_bytes=1024 * 1024,
        elevenlabs_api_key=None,
        supabase_url=None,
        supabase_anon_key=None,
    )


# =============================================================================
# Database
# =============================================================================

@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite with all tables created."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
    from sqlalchemy.pool import StaticPool

    from database.models import Base

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def api_session_factory(tmp_path):
    """
    File-backed SQLite for TestClient tests.

    TestClient runs each request on its own event loop, so connections are
    not pooled between requests.
    """
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
    from sqlalchemy.pool import NullPool

    from database.models import Base

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", poolclass=NullPool)

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


# =============================================================================
# Mock OpenAI Client
# =============================================================================

@pytest.fixture
def mock_openai_client():
    """
    OpenAI client double.

    ``chat_completion`` returns "translated" unless a test sets its
    ``side_effect`` or ``return_value``.
    """
    from services.openai_client import OpenAIClient

    client = MagicMock(spec=OpenAIClient)
    client.model = "gpt-test"
    client.chat_completion = AsyncMock(return_value="translated")
    client.embeddings = AsyncMock(return_value=[[0.1, 0.2, 0.3]])
    client.list_models = AsyncMock(return_value=[{"id": "gpt-test"}])
    return client


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def sample_analysis_payload() -> dict:
    """A well-formed analysis answer from the model."""
    return {
        "summary": "A lease agreement for a two-bedroom apartment.",
        "relevant_questions": [
            "When is rent due?",
            "Who pays for repairs?",
        ],
        "action_items": [
            "Sign the lease by Friday",
            "Pay the security deposit",
        ],
        "sections": [
            {"title": "Rent", "content": "Rent is due on the first of each month."},
            {"title": "Repairs", "content": "The landlord handles structural repairs."},
        ],
    }


@pytest.fixture
def sample_document_text() -> str:
    return (
        "This lease starts on March 1. Rent is due on the first of each month. "
        "The landlord handles structural repairs. The tenant must sign by Friday."
    )
