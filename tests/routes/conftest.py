from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from story_engine import services, storage
from story_engine.app import create_app
from story_engine.llm import ChatResult

REPLY = "Elena grins. Her hair is now silver."


@pytest.fixture
def ollama() -> MagicMock:
    """Stand-in for OllamaClient; tests tweak its AsyncMocks per case."""
    client = MagicMock()
    client.chat_model = "llama3.2"
    client.health_check = AsyncMock(return_value=True)
    client.chat = AsyncMock(return_value=ChatResult(REPLY, "llama3.2", 21, 5000))
    client.embed = AsyncMock(side_effect=lambda texts: [[1.0, 0.0, 0.0] for _ in texts])
    return client


@pytest.fixture
def client(ollama):
    app = create_app(storage.data_dir())
    services.init_services(ollama)
    with TestClient(app) as c:
        yield c


def _register(client: TestClient, email: str = "ann@example.com") -> dict:
    resp = client.post("/api/auth/register", json={
        "email": email, "name": email.split("@")[0], "password": "password123",
    })
    assert resp.status_code == 201, resp.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {resp.json()['session_id']}"}


@pytest.fixture
def register():
    """Register a user and return bearer headers for it."""
    return _register


@pytest.fixture
def headers(client) -> dict:
    return _register(client)


@pytest.fixture
def other_headers(client) -> dict:
    return _register(client, "bob@example.com")
