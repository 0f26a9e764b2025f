"""Wiring compartido por los comandos de la CLI.

Por qué separado de `cli.main`:
- Evita dependencias circulares (main <-> migrate <-> doctor).
- Los tests sustituyen `build_service`/`build_migrator` sin tocar Typer.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, NoReturn, TypeVar

import typer
from rich.console import Console
from rich.markup import escape

from adapters.compose_loader import load_manifest
from adapters.elastic import ElasticsearchIndex
from adapters.embedder import SentenceTransformerEmbedder
from adapters.migrations import Migrator
from adapters.postgres import PostgresDocumentStore, connection_factory
from core.config import AppSettings
from core.domain.compose import database_url_from_manifest
from core.errors import ConfigurationError, ManifestError, VSearchError
from core.log import get_logger
from core.services.search_service import SearchOptions, SearchService

T = TypeVar("T")

logger = get_logger(__name__)

console = Console()
err_console = Console(stderr=True)


@dataclass
class CliState:
    settings: AppSettings = field(default_factory=AppSettings)
    json_output: bool = False
    verbose: bool = False


def get_state(ctx: typer.Context) -> CliState:
    obj = ctx.find_object(CliState)
    return obj if obj is not None else CliState()


def resolve_database_url(settings: AppSettings) -> str:
    """Flag/env primero; si no, la DSN que publica el manifiesto."""

    if settings.database_url:
        return settings.database_url
    if settings.manifest_path.exists():
        try:
            url = database_url_from_manifest(load_manifest(settings.manifest_path))
        except ManifestError as exc:
            raise ConfigurationError(f"DATABASE_URL is not set and the manifest is unusable: {exc}") from exc
        logger.info("Using database URL derived from %s", settings.manifest_path)
        return url
    raise ConfigurationError("DATABASE_URL is not set (use --database-url or the DATABASE_URL env var)")


def build_service(settings: AppSettings) -> SearchService:
    connect = connection_factory(
        resolve_database_url(settings),
        connect_timeout=settings.db_connect_timeout_seconds,
    )
    return SearchService(
        embedder=SentenceTransformerEmbedder(settings),
        store=PostgresDocumentStore(connect),
        index=ElasticsearchIndex(settings),
        options=SearchOptions(
            collection_name=settings.collection_name,
            threshold=settings.threshold,
            num_candidates=settings.knn_num_candidates,
        ),
    )


def build_migrator(settings: AppSettings) -> Migrator:
    return Migrator(
        connection_factory(
            resolve_database_url(settings),
            connect_timeout=settings.db_connect_timeout_seconds,
        )
    )


def fail(state: CliState, exc: Exception) -> NoReturn:
    if state.verbose:
        logger.exception("Command failed")
    err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
    raise typer.Exit(code=1)


def run_with_service(state: CliState, action: Callable[[SearchService], Awaitable[T]]) -> T:
    """Construye el servicio, ejecuta `action` y libera conexiones siempre."""

    async def _go() -> T:
        service = build_service(state.settings)
        try:
            return await action(service)
        finally:
            await service.aclose()

    try:
        return asyncio.run(_go())
    except (VSearchError, ValueError) as exc:
        fail(state, exc)
