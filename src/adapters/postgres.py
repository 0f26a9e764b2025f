"""Adaptador PostgreSQL/pgvector (psycopg2).

Responsabilidad:
- Abrir conexiones con timeout y traducir errores de psycopg2 a `StorageError`.
- Persistir documentos en la tabla `search` y contarlos.
- Probe de readiness equivalente a `pg_isready` del manifiesto.

Los vectores viajan como literal pgvector (`'[0.1,0.2,...]'::vector`), así no
hace falta registrar adaptadores de tipo en psycopg2.
"""

from __future__ import annotations

import math
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Sequence

import psycopg2

from core.domain.models import Document
from core.errors import ConfigurationError, StorageError
from core.log import get_logger

logger = get_logger(__name__)

TABLE_NAME = "search"

Connect = Callable[[], Any]


def to_vector_literal(values: Sequence[float]) -> str:
    """Serializa un vector al formato de texto de pgvector."""

    if not values:
        raise ValueError("vector must not be empty")
    parts: list[str] = []
    for value in values:
        f = float(value)
        if not math.isfinite(f):
            raise ValueError("vector values must be finite")
        parts.append(repr(f))
    return "[" + ",".join(parts) + "]"


def connection_factory(database_url: str | None, *, connect_timeout: int = 5) -> Connect:
    """Devuelve un callable que abre una conexión nueva en cada llamada."""

    if not database_url:
        raise ConfigurationError("DATABASE_URL is not set (use --database-url or the DATABASE_URL env var)")

    def _connect() -> Any:
        try:
            return psycopg2.connect(database_url, connect_timeout=connect_timeout)
        except psycopg2.Error as exc:
            raise StorageError(f"could not connect to PostgreSQL: {exc}".strip()) from exc

    return _connect


def rollback_quietly(conn: Any) -> bool:
    """Rollback que no enmascara el error original; `False` si la conexión murió."""

    try:
        conn.rollback()
    except psycopg2.Error as exc:
        logger.debug("Rollback failed, dropping connection: %s", exc)
        return False
    return True


class PostgresDocumentStore:
    """Implementa `core.interfaces.DocumentStore`.

    Mantiene una única conexión perezosa; cada operación corre en su propia
    transacción (commit al salir, rollback ante error).
    """

    def __init__(self, connect: Connect) -> None:
        self._connect = connect
        self._conn: Any | None = None

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        if self._conn is None:
            self._conn = self._connect()
        conn = self._conn
        try:
            with conn.cursor() as cur:
                yield cur
            conn.commit()
        except psycopg2.Error as exc:
            if not rollback_quietly(conn) or conn.closed:
                self._discard(conn)
            raise StorageError(str(exc).strip() or exc.__class__.__name__) from exc
        except Exception:
            if not rollback_quietly(conn):
                self._discard(conn)
            raise

    def _discard(self, conn: Any) -> None:
        # psycopg2: close() sobre una conexión ya cerrada no lanza.
        self._conn = None
        conn.close()

    def insert(self, document: Document) -> None:
        with self._cursor() as cur:
            cur.execute(
                f"INSERT INTO {TABLE_NAME} (id, content, vector) VALUES (%s::uuid, %s, %s::vector)",
                (str(document.id), document.content, to_vector_literal(document.vector)),
            )

    def count(self) -> int:
        with self._cursor() as cur:
            cur.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}")
            row = cur.fetchone()
        return int(row[0]) if row else 0

    def close(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            finally:
                self._conn = None


@dataclass
class ProbeResult:
    ready: bool
    latency_seconds: float
    detail: str
    timeout_seconds: float

    @property
    def within_timeout(self) -> bool:
        return self.ready and self.latency_seconds <= self.timeout_seconds


def probe_readiness(database_url: str, *, timeout_seconds: float = 1.0) -> ProbeResult:
    """Comprueba que la base acepta conexiones y responde a `SELECT 1`.

    No lanza por fallos de conexión: los reporta en `ProbeResult.detail`.
    """

    started = time.perf_counter()
    # libpq solo acepta segundos enteros.
    connect_timeout = max(1, math.ceil(timeout_seconds))
    try:
        conn = psycopg2.connect(database_url, connect_timeout=connect_timeout)
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
        finally:
            conn.close()
    except psycopg2.Error as exc:
        elapsed = time.perf_counter() - started
        detail = str(exc).strip().splitlines()[0] if str(exc).strip() else exc.__class__.__name__
        logger.debug("Readiness probe failed after %.3fs: %s", elapsed, detail)
        return ProbeResult(ready=False, latency_seconds=elapsed, detail=detail, timeout_seconds=timeout_seconds)

    elapsed = time.perf_counter() - started
    return ProbeResult(
        ready=True,
        latency_seconds=elapsed,
        detail=f"accepting connections ({elapsed * 1000:.0f} ms)",
        timeout_seconds=timeout_seconds,
    )
