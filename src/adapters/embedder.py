"""Adaptador de embeddings (sentence-transformers).

Responsabilidad:
- Cargar el modelo una sola vez por proceso (la carga es cara: descarga + pesos).
- Convertir lotes de textos en vectores `list[float]` de dimensión fija.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Sequence

from core.config import AppSettings
from core.errors import EmbeddingError
from core.log import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=4)
def _load_model(model_name: str) -> Any:
    from sentence_transformers import SentenceTransformer  # noqa: PLC0415

    logger.info("Loading embedding model %s", model_name)
    try:
        return SentenceTransformer(model_name)
    except Exception as exc:
        raise EmbeddingError(f"could not load embedding model {model_name!r}: {exc}") from exc


class SentenceTransformerEmbedder:
    """Implementa `core.interfaces.Embedder` sobre sentence-transformers.

    El modelo se resuelve perezosamente: construir el adaptador no toca disco
    ni red, así `count`/`collections` no pagan la carga.
    """

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        model_name: str | None = None,
        dimension: int | None = None,
        batch_size: int | None = None,
    ) -> None:
        settings = settings or AppSettings()
        self._model_name = model_name or settings.embedding_model
        self._dimension = dimension or settings.embedding_dim
        self._batch_size = batch_size or settings.embedding_batch_size
        self._checked = False

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    def _model(self) -> Any:
        model = _load_model(self._model_name)
        if not self._checked:
            actual = model.get_sentence_embedding_dimension()
            if actual is not None and actual != self._dimension:
                raise EmbeddingError(
                    f"model {self._model_name!r} produces {actual}-d vectors, expected {self._dimension}"
                )
            self._checked = True
        return model

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []

        model = self._model()
        try:
            vectors = model.encode(
                list(texts),
                batch_size=self._batch_size,
                show_progress_bar=False,
            )
        except Exception as exc:
            raise EmbeddingError(f"embedding failed: {exc}") from exc
        return [[float(x) for x in row] for row in vectors]

    def embed_one(self, text: str) -> list[float]:
        return self.embed_batch([text])[0]
