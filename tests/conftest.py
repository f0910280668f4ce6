"""
Pytest fixtures for codeask tests.

Provides temporary directories, sample project trees, a real LanceDB store
in a temp dir, and deterministic stand-ins for the embedding and
generation providers.
"""

import hashlib
import threading
import pytest
import tempfile
import shutil
from pathlib import Path
from codeask.config import Config
from codeask.errors import ProviderError
from codeask.store import VectorStore
from codeask.indexer import Indexer

DIMENSION = 8


class FakeEmbedder:
    """Deterministic hash-based vectors; fails for text containing a marker."""

    def __init__(self, dimension: int = DIMENSION, fail_marker: str = "EXPLODE"):
        self._dimension = dimension
        self.fail_marker = fail_marker
        self.calls = 0
        self._lock = threading.Lock()

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> list[float]:
        with self._lock:
            self.calls += 1
        if self.fail_marker and self.fail_marker in text:
            raise ProviderError("embedding service unavailable")
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [b / 255.0 for b in digest[:self._dimension]]


class FakeGenerator:
    """Records every request and answers with a numbered reply."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.requests = []

    def complete(self, messages: list[dict[str, str]]) -> str:
        self.requests.append(messages)
        if self.fail:
            raise ProviderError("completion service unavailable")
        return f"answer {len(self.requests)}"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    # Cleanup
    if temp_path.exists():
        shutil.rmtree(temp_path)


@pytest.fixture
def project_dir(temp_dir):
    """A folder to index, kept apart from the database directory."""
    path = temp_dir / "project"
    path.mkdir()
    return path


@pytest.fixture
def sample_project(project_dir):
    """Create a small project with code, an image and an ignored dependency."""
    (project_dir / "a.txt").write_text("Plain notes about the service configuration and startup order.\n")
    (project_dir / "app.py").write_text('''
def main():
    """Start the web server."""
    print("listening on port 8080")
''')
    (project_dir / "image.png").write_bytes(b"\x89PNG\r\n\x1a\n" + bytes(64))

    deps = project_dir / "node_modules" / "left-pad"
    deps.mkdir(parents=True)
    (deps / "index.js").write_text("module.exports = function leftPad() {};\n")
    return project_dir


@pytest.fixture
def large_text():
    """Text long enough to be split into several default-sized chunks."""
    lines = [f"line {i}: the scheduler assigns job {i} to worker {i % 7}\n" for i in range(200)]
    return "".join(lines)


@pytest.fixture
def config(temp_dir):
    """Create a test configuration with a fake API key."""
    return Config(project_root=temp_dir, env={"OPENAI_API_KEY": "test"})


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def vector_store(temp_dir):
    """Create a vector store for testing."""
    db_path = temp_dir / ".codeask" / "data.lance"
    return VectorStore(db_path, dimension=DIMENSION)


@pytest.fixture
def indexer(vector_store, fake_embedder, config):
    """Create an indexer for testing."""
    return Indexer(vector_store, fake_embedder, config)
