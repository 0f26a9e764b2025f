"""Jerarquía de errores del dominio.

Los adaptadores traducen excepciones de librerías (psycopg2, httpx, PyYAML,
sentence-transformers) a estos tipos en el borde; la CLI solo conoce
`VSearchError`.
"""

from __future__ import annotations


class VSearchError(Exception):
    """Base de todos los errores esperables de la aplicación."""


class ConfigurationError(VSearchError):
    """Falta configuración o es inconsistente."""


class ManifestError(VSearchError):
    """El manifiesto de despliegue no se puede leer o no es válido."""


class EmbeddingError(VSearchError):
    """Fallo al cargar el modelo o al producir embeddings."""


class StorageError(VSearchError):
    """Fallo en PostgreSQL."""


class MigrationError(StorageError):
    """Fallo aplicando o revirtiendo migraciones."""


class SearchBackendError(VSearchError):
    """Respuesta no exitosa (o fallo de red) de Elasticsearch."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        return f"{base} (HTTP {self.status_code})"
