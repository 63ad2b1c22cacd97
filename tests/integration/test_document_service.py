"""
Integration Tests - Document Service
====================================
Documents table behaviour on SQLite (aiosqlite).
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError
from tenacity import wait_none

from database.models import DocumentModel
from exceptions import DatabaseConnectionError
from services.analysis import build_analysis_result
from services.document_service import DocumentService, compute_text_hash


@pytest.fixture
def service(db_session):
    return DocumentService.from_session(db_session)


def make_document(user_id: str, name: str, created_at: datetime) -> DocumentModel:
    return DocumentModel(
        user_id=user_id,
        name=name,
        size=10,
        type="text/plain",
        original_text=f"text of {name}",
        translated_text=f"texto de {name}",
        source_language="en",
        target_language="es",
        text_hash=compute_text_hash(f"text of {name}"),
        created_at=created_at,
    )


@pytest.mark.integration
class TestCreateAndFetch:

    async def test_create_fills_size_and_hash(self, service):
        doc = await service.create_document(
            user_id="user-1",
            name="Translation_x",
            original_text="Café",
            translated_text="Coffee",
            source_language="fr",
            target_language="en",
        )

        assert doc.id is not None
        assert doc.size == len("Café".encode("utf-8"))
        assert doc.text_hash == compute_text_hash("Café")
        assert doc.summary is None

    async def test_create_stores_analysis(self, service, sample_analysis_payload):
        analysis = build_analysis_result(sample_analysis_payload)

        doc = await service.create_document(
            user_id="user-1",
            name="lease.png",
            original_text="lease",
            translated_text="contrato",
            source_language="en",
            target_language="es",
            analysis=analysis,
        )

        assert doc.summary == analysis.summary
        assert doc.analysis["relevant_questions"] == analysis.relevant_questions

    async def test_get_is_scoped_to_owner(self, service):
        doc = await service.create_document("user-1", "a", "text", None, "en", "es")

        assert (await service.get_document("user-1", str(doc.id))).id == doc.id
        assert await service.get_document("user-2", str(doc.id)) is None
        assert await service.get_document("user-1", "not-a-uuid") is None

    async def test_find_by_hash(self, service):
        await service.create_document("user-1", "a", "same text", "mismo texto", "en", "es")

        found = await service.find_by_hash("user-1", compute_text_hash("same text"))

        assert found is not None
        assert found.translated_text == "mismo texto"
        assert await service.find_by_hash("user-2", compute_text_hash("same text")) is None


@pytest.mark.integration
class TestListDocuments:

    async def test_pagination_newest_first(self, service, db_session):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(7):
            db_session.add(make_document("user-1", f"doc-{i}", start + timedelta(minutes=i)))
        db_session.add(make_document("user-2", "other", start))
        await db_session.flush()

        page_one, total, has_more = await service.list_documents("user-1", page=1, per_page=5)
        page_two, _, has_more_two = await service.list_documents("user-1", page=2, per_page=5)

        assert total == 7
        assert has_more is True
        assert [doc.name for doc in page_one] == ["doc-6", "doc-5", "doc-4", "doc-3", "doc-2"]
        assert [doc.name for doc in page_two] == ["doc-1", "doc-0"]
        assert has_more_two is False

    async def test_exact_page_has_no_more(self, service, db_session):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(5):
            db_session.add(make_document("user-1", f"doc-{i}", start + timedelta(minutes=i)))
        await db_session.flush()

        _, total, has_more = await service.list_documents("user-1", page=1, per_page=5)

        assert total == 5
        assert has_more is False

    async def test_transient_failures_are_retried(self, service, monkeypatch):
        monkeypatch.setattr(DocumentService, "list_retry_wait", wait_none())
        error = OperationalError("SELECT", {}, Exception("database is locked"))
        monkeypatch.setattr(service, "_list_once", AsyncMock(side_effect=[error, error, ([], 0)]))

        docs, total, has_more = await service.list_documents("user-1")

        assert (docs, total, has_more) == ([], 0, False)
        assert service._list_once.await_count == 3

    async def test_three_failures_raise(self, service, monkeypatch):
        monkeypatch.setattr(DocumentService, "list_retry_wait", wait_none())
        error = OperationalError("SELECT", {}, Exception("database is locked"))
        monkeypatch.setattr(service, "_list_once", AsyncMock(side_effect=error))

        with pytest.raises(DatabaseConnectionError) as exc_info:
            await service.list_documents("user-1")

        assert exc_info.value.message == "Failed to fetch documents. Please try again later."
        assert service._list_once.await_count == 3


@pytest.mark.integration
class TestMutations:

    async def test_update_translation(self, service):
        doc = await service.create_document("user-1", "a", "Hello", "Hola", "en", "es")

        assert await service.update_translation("user-1", doc.id, "Bonjour", "fr")
        assert not await service.update_translation("user-2", doc.id, "Hallo", "de")

        refreshed = await service.get_document("user-1", doc.id)
        assert refreshed.translated_text == "Bonjour"
        assert refreshed.target_language == "fr"

    async def test_update_analysis(self, service, sample_analysis_payload):
        doc = await service.create_document("user-1", "a", "Hello", "Hola", "en", "es")
        analysis = build_analysis_result(sample_analysis_payload)

        assert await service.update_analysis("user-1", str(doc.id), analysis)

        refreshed = await service.get_document("user-1", doc.id)
        assert refreshed.summary == analysis.summary

    async def test_delete_is_scoped_to_owner(self, service):
        doc = await service.create_document("user-1", "a", "Hello", "Hola", "en", "es")

        assert not await service.delete_document("user-2", doc.id)
        assert await service.delete_document("user-1", doc.id)
        assert await service.get_document("user-1", doc.id) is None
        assert not await service.delete_document("user-1", "garbage")
