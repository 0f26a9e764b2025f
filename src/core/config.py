"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (Postgres/Elasticsearch/embeddings) lean config de
  forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "vsearch"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "vsearch"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "vsearch"
    return Path.home() / ".config" / "vsearch"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario.

    Las claves existentes se conservan; los valores `None` no pisan nada.
    """

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# vsearch user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.

    `DATABASE_URL` y `ELASTIC_URL` se aceptan sin prefijo (convención habitual
    en despliegues); el resto usa el prefijo `VSEARCH_`.
    """

    model_config = SettingsConfigDict(
        env_prefix="VSEARCH_",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    database_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("VSEARCH_DATABASE_URL", "DATABASE_URL"),
        description="DSN de PostgreSQL. Si falta, se deriva de docker-compose.yaml.",
    )
    elastic_url: str = Field(
        default="http://localhost:9200",
        min_length=8,
        validation_alias=AliasChoices("VSEARCH_ELASTIC_URL", "ELASTIC_URL"),
        description="URL base del nodo Elasticsearch.",
    )
    collection_name: str = Field(
        default="search",
        min_length=1,
        pattern=r"^[a-z0-9][a-z0-9_\-]*$",
        description="Nombre del índice/colección en Elasticsearch.",
    )

    embedding_model: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        min_length=1,
        description="Modelo sentence-transformers para embeddings.",
    )
    embedding_dim: int = Field(
        default=384,
        ge=1,
        le=16_000,
        description="Dimensión esperada de los vectores.",
    )
    embedding_batch_size: int = Field(
        default=256,
        ge=1,
        le=4096,
        description="Tamaño de lote al embeber.",
    )

    knn_num_candidates: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description="Candidatos por shard en la búsqueda k-NN.",
    )
    threshold: float | None = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Score mínimo para conservar un match (None desactiva el filtro).",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por request a Elasticsearch (segundos).",
    )
    db_connect_timeout_seconds: int = Field(
        default=5,
        ge=1,
        le=300,
        description="Timeout de conexión a PostgreSQL (segundos).",
    )
    user_agent: str = Field(
        default="vsearch/0.1",
        min_length=1,
        description="User-Agent para peticiones HTTP.",
    )

    manifest_path: Path = Field(
        default=Path("docker-compose.yaml"),
        description="Ruta al manifiesto de despliegue (compose).",
    )
    log_level: str = Field(
        default="WARNING",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Nivel de logging por defecto.",
    )
