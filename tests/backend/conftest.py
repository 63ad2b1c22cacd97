"""
API test fixtures: the FastAPI app with its database, user and OpenAI
client dependencies replaced.
"""

import json

import pytest
from fastapi.testclient import TestClient

from schemas import AuthUser


@pytest.fixture
def current_user() -> AuthUser:
    return AuthUser(id="user-1", email="ana@example.com", username="ana_b")


@pytest.fixture
def fake_completion(mock_openai_client, sample_analysis_payload):
    """JSON analysis for json_mode calls, a fixed translation otherwise."""

    async def complete(messages, **kwargs):
        if kwargs.get("json_mode"):
            return json.dumps(sample_analysis_payload)
        return "texto traducido"

    mock_openai_client.chat_completion.side_effect = complete
    return complete


@pytest.fixture
def app(api_session_factory, mock_openai_client, current_user, tmp_path, monkeypatch):
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))

    from database.session import get_db_session
    from main import app
    from routers.deps import get_current_user, get_speech_service
    from services.openai_client import get_openai_client

    async def override_db_session():
        async with api_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_current_user] = lambda: current_user
    app.dependency_overrides[get_openai_client] = lambda: mock_openai_client
    app.dependency_overrides[get_speech_service] = lambda: None
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def anonymous_client(app) -> TestClient:
    """Client without the signed-in user override."""
    from routers.deps import get_current_user

    app.dependency_overrides.pop(get_current_user, None)
    return TestClient(app)
