"""Process-wide service instances shared by routes, pipeline and worker.

init_services() is called by create_app(); tests call it again with a
client pointing at a mock server.
"""

from story_engine.database import DatabaseManager
from story_engine.embeddings import EmbeddingService
from story_engine.llm import OllamaClient

_client: OllamaClient | None = None
_database: DatabaseManager | None = None
_embeddings: EmbeddingService | None = None


def init_services(client: OllamaClient | None = None) -> None:
    global _client, _database, _embeddings
    _client = client or OllamaClient.from_env()
    _database = DatabaseManager(_client)
    _embeddings = EmbeddingService(_client)


def get_client() -> OllamaClient:
    assert _client is not None, "Call init_services() first"
    return _client


def get_database() -> DatabaseManager:
    assert _database is not None, "Call init_services() first"
    return _database


def get_embedding_service() -> EmbeddingService:
    assert _embeddings is not None, "Call init_services() first"
    return _embeddings
