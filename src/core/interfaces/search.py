"""Contratos de almacenamiento, índice vectorial y embeddings.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Permite que adaptadores (PostgreSQL, Elasticsearch, sentence-transformers)
  sean intercambiables y testeables con fakes.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable
from uuid import UUID

from core.domain.models import Document, IndexInfo


@runtime_checkable
class Embedder(Protocol):
    """Convierte textos en vectores de dimensión fija."""

    @property
    def dimension(self) -> int: ...

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Un vector por texto, en el mismo orden. Lista vacía -> lista vacía."""

        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Fuente de verdad relacional (PostgreSQL)."""

    def insert(self, document: Document) -> None: ...

    def count(self) -> int: ...

    def close(self) -> None: ...


@runtime_checkable
class VectorIndex(Protocol):
    """Índice k-NN (Elasticsearch).

    Reglas de diseño:
    - Todo es asíncrono porque típicamente hará I/O (HTTP).
    """

    async def list_indices(self) -> list[IndexInfo]: ...

    async def index_exists(self, name: str) -> bool: ...

    async def ensure_index(self, name: str, *, dims: int) -> bool:
        """Crea el índice si falta. Devuelve True si lo creó."""

        ...

    async def index_document(self, name: str, *, doc_id: UUID | str, vector: list[float], content: str) -> None: ...

    async def knn_search(
        self,
        name: str,
        *,
        vector: list[float],
        k: int,
        num_candidates: int,
    ) -> dict[str, Any]: ...

    async def aclose(self) -> None: ...
