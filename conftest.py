import shutil
from pathlib import Path

import pytest

from story_engine import storage

TEST_DATA_DIR = Path("data-tests")


@pytest.fixture(autouse=True)
def clean_test_data(monkeypatch):
    """Wipe and re-init data-tests/ before every test, with AI features off."""
    for name in (
        "ENABLE_CHARACTER_EMBEDDINGS",
        "ENABLE_CONVERSATION_MEMORY",
        "ENABLE_SEMANTIC_SEARCH",
        "ENABLE_BACKGROUND_EMBEDDINGS",
        "EXTRACTION_MODE",
    ):
        monkeypatch.delenv(name, raising=False)
    # Test embeddings are three-dimensional
    monkeypatch.setenv("VECTOR_DIMENSIONS", "3")
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    storage.init_storage(TEST_DATA_DIR)
    yield
    # leave data-tests around after tests for inspection; CI can ignore it
