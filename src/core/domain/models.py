"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Normaliza respuestas heterogéneas del backend de búsqueda.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict


class Document(BaseModel):
    """Texto persistido junto con su embedding.

    El mismo `id` identifica la fila en PostgreSQL y el documento en
    Elasticsearch.
    """

    id: UUID = Field(
        ...,
        description="Identificador ordenable en el tiempo (UUIDv7).",
    )
    content: str = Field(
        ...,
        min_length=1,
        description="Texto original.",
    )
    vector: list[float] = Field(
        ...,
        min_length=1,
        description="Embedding del contenido.",
    )

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value


class SearchHit(BaseModel):
    """Un match devuelto por la búsqueda k-NN."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Id del documento (`_id`).")
    content: str | None = Field(default=None, description="Contenido (`_source.content`).")
    score: float = Field(..., description="Score del backend (`_score`).")


class SearchResult(BaseModel):
    """Resultado de `search`: hits filtrados + respuesta cruda para auditoría."""

    query: str = Field(..., min_length=1)
    top_k: int = Field(..., ge=1)
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    hits: list[SearchHit] = Field(default_factory=list)
    took_ms: int | None = Field(default=None, description="Tiempo reportado por el backend.")
    raw: dict[str, Any] = Field(
        default_factory=dict,
        description="Carga útil cruda del backend (opcional).",
    )


class IndexInfo(BaseModel):
    """Fila de `_cat/indices?format=json`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    index: str
    health: str | None = None
    status: str | None = None
    docs_count: int | None = Field(default=None, alias="docs.count")
    store_size: str | None = Field(default=None, alias="store.size")
