"""Migraciones de esquema (registro ordenado sobre psycopg2).

Cada migración se aplica/revierte en su propia transacción y queda registrada
en `vsearch_migrations`. El orden del registro es el orden de aplicación; el
nombre lleva timestamp para que ordene igual alfabéticamente.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import psycopg2

from adapters.postgres import TABLE_NAME, Connect, rollback_quietly
from core.errors import MigrationError
from core.log import get_logger

logger = get_logger(__name__)

MIGRATIONS_TABLE = "vsearch_migrations"


@dataclass(frozen=True)
class Migration:
    name: str
    up: tuple[str, ...]
    down: tuple[str, ...]


@dataclass(frozen=True)
class MigrationStatus:
    name: str
    applied: bool


CREATE_SEARCH = Migration(
    name="m20250414_131949_create_search",
    up=(
        "CREATE EXTENSION IF NOT EXISTS vector CASCADE",
        f"CREATE TABLE IF NOT EXISTS {TABLE_NAME} ("
        "id UUID PRIMARY KEY, "
        "content TEXT NOT NULL, "
        "vector vector NOT NULL)",
    ),
    down=(
        "DROP EXTENSION IF EXISTS vector CASCADE",
        f"DROP TABLE IF EXISTS {TABLE_NAME}",
    ),
)

MIGRATIONS: tuple[Migration, ...] = (CREATE_SEARCH,)


class Migrator:
    def __init__(self, connect: Connect, migrations: tuple[Migration, ...] = MIGRATIONS) -> None:
        names = [m.name for m in migrations]
        if len(set(names)) != len(names):
            raise MigrationError("duplicate migration names")
        self._connect = connect
        self._migrations = migrations

    def _run(
        self,
        conn: Any,
        statements: tuple[str, ...],
        record: tuple[str, tuple[Any, ...]] | None = None,
    ) -> None:
        try:
            with conn.cursor() as cur:
                for statement in statements:
                    logger.debug("SQL: %s", statement)
                    cur.execute(statement)
                if record is not None:
                    cur.execute(*record)
            conn.commit()
        except psycopg2.Error as exc:
            rollback_quietly(conn)
            raise MigrationError(str(exc).strip() or exc.__class__.__name__) from exc

    def _ensure_table(self, conn: Any) -> None:
        self._run(
            conn,
            (
                f"CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} ("
                "version TEXT PRIMARY KEY, "
                "applied_at TIMESTAMPTZ NOT NULL DEFAULT now())",
            ),
        )

    def _applied(self, conn: Any) -> list[str]:
        self._ensure_table(conn)
        try:
            with conn.cursor() as cur:
                cur.execute(f"SELECT version FROM {MIGRATIONS_TABLE} ORDER BY version")
                rows = cur.fetchall()
            conn.commit()
        except psycopg2.Error as exc:
            rollback_quietly(conn)
            raise MigrationError(str(exc).strip() or exc.__class__.__name__) from exc
        return [row[0] for row in rows]

    def status(self) -> list[MigrationStatus]:
        conn = self._connect()
        try:
            applied = set(self._applied(conn))
        finally:
            conn.close()
        return [MigrationStatus(name=m.name, applied=m.name in applied) for m in self._migrations]

    def up(self, steps: int | None = None) -> list[str]:
        """Aplica pendientes en orden. Devuelve los nombres aplicados."""

        if steps is not None and steps < 1:
            raise MigrationError("steps must be >= 1")

        conn = self._connect()
        done: list[str] = []
        try:
            applied = set(self._applied(conn))
            pending = [m for m in self._migrations if m.name not in applied]
            for migration in pending[:steps] if steps is not None else pending:
                self._run(
                    conn,
                    migration.up,
                    (f"INSERT INTO {MIGRATIONS_TABLE} (version) VALUES (%s)", (migration.name,)),
                )
                logger.info("Applied migration %s", migration.name)
                done.append(migration.name)
        finally:
            conn.close()
        return done

    def down(self, steps: int | None = 1) -> list[str]:
        """Revierte las más recientes primero. `steps=None` revierte todas."""

        if steps is not None and steps < 1:
            raise MigrationError("steps must be >= 1")

        conn = self._connect()
        done: list[str] = []
        try:
            applied = set(self._applied(conn))
            known = [m for m in self._migrations if m.name in applied]
            targets = list(reversed(known))
            for migration in targets[:steps] if steps is not None else targets:
                self._run(
                    conn,
                    migration.down,
                    (f"DELETE FROM {MIGRATIONS_TABLE} WHERE version = %s", (migration.name,)),
                )
                logger.info("Reverted migration %s", migration.name)
                done.append(migration.name)
        finally:
            conn.close()
        return done

    def fresh(self) -> list[str]:
        self.down(steps=None)
        return self.up()
