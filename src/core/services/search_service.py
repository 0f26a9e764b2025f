"""Search orchestration.

The CLI delegates every command to `SearchService`, which only talks to the
contracts in `core.interfaces`. That keeps side-effects (printing, progress)
out of the core flow and lets tests swap in fakes for PostgreSQL, Elasticsearch
and the embedding model.

Write path: PostgreSQL is the source of truth and is written first; the same
id/vector/content is then mirrored into the Elasticsearch k-NN index.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from uuid6 import uuid7

from core.domain.models import Document, IndexInfo, SearchHit, SearchResult
from core.errors import EmbeddingError, VSearchError
from core.interfaces import DocumentStore, Embedder, VectorIndex
from core.log import get_logger

logger = get_logger(__name__)

DEFAULT_COLLECTION_NAME = "search"
DEFAULT_TOP_K = 10
DEFAULT_NUM_CANDIDATES = 100


@dataclass
class SearchOptions:
    """Parameters shared by every command."""

    collection_name: str = DEFAULT_COLLECTION_NAME
    threshold: float | None = 0.6
    num_candidates: int = DEFAULT_NUM_CANDIDATES


class SearchService:
    def __init__(
        self,
        *,
        embedder: Embedder,
        store: DocumentStore,
        index: VectorIndex,
        options: SearchOptions | None = None,
    ) -> None:
        self._embedder = embedder
        self._store = store
        self._index = index
        self._options = options or SearchOptions()

    async def collections(self) -> list[IndexInfo]:
        return await self._index.list_indices()

    async def create(self, content: str) -> Document:
        """Embed `content`, store it in PostgreSQL and index it in Elasticsearch."""

        if not content or not content.strip():
            raise ValueError("content must not be empty")

        name = self._options.collection_name
        created = await self._index.ensure_index(name, dims=self._embedder.dimension)
        if created:
            logger.info("Created index %s (dims=%d)", name, self._embedder.dimension)

        vector = await self._embed_one(content)
        document = Document(id=uuid7(), content=content, vector=vector)

        await asyncio.to_thread(self._store.insert, document)
        logger.debug("Stored row %s", document.id)

        try:
            await self._index.index_document(
                name,
                doc_id=document.id,
                vector=document.vector,
                content=document.content,
            )
        except VSearchError as exc:
            logger.warning("Row %s is stored in PostgreSQL but was not indexed in %s: %s", document.id, name, exc)
            raise
        logger.debug("Indexed document %s in %s", document.id, name)
        return document

    async def count(self) -> int:
        return await asyncio.to_thread(self._store.count)

    async def search(self, query: str, *, top_k: int = DEFAULT_TOP_K) -> SearchResult:
        """k-NN search; hits scoring below the threshold are dropped."""

        if not query or not query.strip():
            raise ValueError("query must not be empty")
        if top_k < 1:
            raise ValueError("top_k must be >= 1")

        vector = await self._embed_one(query)
        raw = await self._index.knn_search(
            self._options.collection_name,
            vector=vector,
            k=top_k,
            num_candidates=max(self._options.num_candidates, top_k),
        )

        threshold = self._options.threshold
        hits = [hit for hit in _parse_hits(raw) if threshold is None or hit.score >= threshold]
        logger.debug("Query %r -> %d hit(s) above threshold %s", query, len(hits), threshold)

        took = raw.get("took")
        return SearchResult(
            query=query,
            top_k=top_k,
            threshold=threshold,
            hits=hits,
            took_ms=took if isinstance(took, int) else None,
            raw=raw,
        )

    async def aclose(self) -> None:
        try:
            await self._index.aclose()
        finally:
            self._store.close()

    async def _embed_one(self, text: str) -> list[float]:
        vectors = await asyncio.to_thread(self._embedder.embed_batch, [text])
        if len(vectors) != 1:
            raise EmbeddingError(f"expected 1 embedding, got {len(vectors)}")
        return vectors[0]


def _parse_hits(raw: dict[str, Any]) -> list[SearchHit]:
    hits_block = raw.get("hits") or {}
    out: list[SearchHit] = []
    for item in hits_block.get("hits") or []:
        source = item.get("_source") or {}
        score = item.get("_score")
        if score is None:
            continue
        out.append(SearchHit(id=str(item.get("_id")), content=source.get("content"), score=float(score)))
    return out
