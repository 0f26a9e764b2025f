"""Shared fixtures and in-memory fakes.

No live services: PostgreSQL is replaced by a fake psycopg2 connection,
Elasticsearch by an in-memory `VectorIndex`, and the embedding model by a
deterministic embedder.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence
from uuid import UUID

import psycopg2
import pytest

from core.config import AppSettings
from core.domain.models import Document, IndexInfo
from core.services.search_service import SearchOptions, SearchService

ROOT = Path(__file__).resolve().parents[1]
MANIFEST_PATH = ROOT / "docker-compose.yaml"

_ENV_VARS = (
    "DATABASE_URL",
    "ELASTIC_URL",
    "VSEARCH_DATABASE_URL",
    "VSEARCH_ELASTIC_URL",
    "VSEARCH_THRESHOLD",
    "VSEARCH_COLLECTION_NAME",
)


class FakeEmbedder:
    """Deterministic 4-d vectors derived from the text length."""

    def __init__(self, dimension: int = 4) -> None:
        self._dimension = dimension
        self.calls: list[list[str]] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [[float(len(t))] + [0.5] * (self._dimension - 1) for t in texts]


class FakeStore:
    def __init__(self, rows: int = 0) -> None:
        self.documents: list[Document] = []
        self._initial_rows = rows
        self.closed = False
        self.events: list[str] = []

    def insert(self, document: Document) -> None:
        self.documents.append(document)
        self.events.append(f"insert:{document.id}")

    def count(self) -> int:
        return self._initial_rows + len(self.documents)

    def close(self) -> None:
        self.closed = True


class FakeIndex:
    """In-memory `VectorIndex` returning canned k-NN hits."""

    def __init__(self, hits: list[tuple[str, str, float]] | None = None) -> None:
        self.indices: dict[str, int] = {}
        self.documents: dict[str, dict[str, Any]] = {}
        self.hits = hits or []
        self.searches: list[dict[str, Any]] = []
        self.closed = False
        self.events: list[str] = []

    async def list_indices(self) -> list[IndexInfo]:
        return [
            IndexInfo(index=name, health="green", status="open", docs_count=len(self.documents))
            for name in self.indices
        ]

    async def index_exists(self, name: str) -> bool:
        return name in self.indices

    async def ensure_index(self, name: str, *, dims: int) -> bool:
        self.events.append(f"ensure:{name}")
        if name in self.indices:
            return False
        self.indices[name] = dims
        return True

    async def index_document(self, name: str, *, doc_id: UUID | str, vector: list[float], content: str) -> None:
        self.events.append(f"index:{doc_id}")
        self.documents[str(doc_id)] = {"index": name, "vector": vector, "content": content}

    async def knn_search(self, name: str, *, vector: list[float], k: int, num_candidates: int) -> dict[str, Any]:
        self.searches.append({"index": name, "vector": vector, "k": k, "num_candidates": num_candidates})
        return {
            "took": 3,
            "hits": {
                "hits": [
                    {"_id": doc_id, "_score": score, "_source": {"content": content}}
                    for doc_id, content, score in self.hits[:k]
                ]
            },
        }

    async def aclose(self) -> None:
        self.closed = True


class FakeCursor:
    def __init__(self, db: "FakeDatabase") -> None:
        self._db = db
        self._result: list[tuple[Any, ...]] = []

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc: object) -> None:
        return None

    def execute(self, sql: str, params: tuple[Any, ...] | None = None) -> None:
        self._db.executed.append((sql, params))
        for fragment, error in self._db.fail_on.items():
            if fragment in sql:
                raise error
        if sql.startswith("SELECT version FROM"):
            self._result = [(v,) for v in sorted(self._db.versions)]
        elif sql.startswith("INSERT INTO vsearch_migrations"):
            self._db.versions.add(params[0])
        elif sql.startswith("DELETE FROM vsearch_migrations"):
            self._db.versions.discard(params[0])
        elif sql.startswith("SELECT COUNT(*)"):
            self._result = [(self._db.row_count,)]
        elif sql == "SELECT 1":
            self._result = [(1,)]

    def fetchone(self) -> tuple[Any, ...] | None:
        return self._result[0] if self._result else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        return list(self._result)


class FakeConnection:
    def __init__(self, db: "FakeDatabase") -> None:
        self._db = db
        self.closed = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self._db)

    def commit(self) -> None:
        self._db.commits += 1

    def rollback(self) -> None:
        self._db.rollbacks += 1
        if self._db.rollback_error is not None:
            self.closed = True
            raise self._db.rollback_error

    def close(self) -> None:
        self.closed = True
        self._db.closes += 1


class FakeDatabase:
    """Just enough of PostgreSQL for the store and the migrator."""

    def __init__(self) -> None:
        self.executed: list[tuple[str, tuple[Any, ...] | None]] = []
        self.versions: set[str] = set()
        self.fail_on: dict[str, psycopg2.Error] = {}
        self.rollback_error: psycopg2.Error | None = None
        self.row_count = 0
        self.commits = 0
        self.rollbacks = 0
        self.closes = 0
        self.connections = 0

    def connect(self) -> FakeConnection:
        self.connections += 1
        return FakeConnection(self)

    def statements(self) -> list[str]:
        return [sql for sql, _ in self.executed]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(_env_file=None, manifest_path=MANIFEST_PATH)


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def index() -> FakeIndex:
    return FakeIndex(
        hits=[
            ("a", "the quick brown fox", 0.93),
            ("b", "a fast auburn fox", 0.71),
            ("c", "tax law in Qatar", 0.42),
        ]
    )


@pytest.fixture
def service(embedder: FakeEmbedder, store: FakeStore, index: FakeIndex) -> SearchService:
    # Store and index share one event log so tests can assert write order.
    store.events = index.events
    return SearchService(embedder=embedder, store=store, index=index, options=SearchOptions())
