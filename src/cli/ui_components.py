"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from adapters.migrations import MigrationStatus
from core.domain.compose import ComposeManifest
from core.domain.models import IndexInfo, SearchResult


def build_indices_table(indices: list[IndexInfo]) -> Table:
    table = Table(title="Collections")
    table.add_column("Index", style="cyan", no_wrap=True)
    table.add_column("Health", style="green")
    table.add_column("Status", style="white")
    table.add_column("Docs", style="magenta", justify="right")
    table.add_column("Size", style="dim", justify="right")
    for info in sorted(indices, key=lambda i: i.index):
        table.add_row(
            Text(info.index),
            Text(info.health or "-"),
            Text(info.status or "-"),
            "-" if info.docs_count is None else str(info.docs_count),
            Text(info.store_size or "-"),
        )
    return table


def build_matches_table(result: SearchResult) -> Table:
    """Tabla de matches; el título resume query, k y threshold."""

    threshold = "off" if result.threshold is None else f"{result.threshold:.2f}"
    table = Table(title=f"Matches for {escape(repr(result.query))} (k={result.top_k}, threshold={threshold})")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Score", style="green", justify="right")
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Content", style="white")
    for pos, hit in enumerate(result.hits, start=1):
        table.add_row(str(pos), f"{hit.score:.4f}", Text(hit.id), Text(hit.content or ""))
    return table


def build_migrations_table(statuses: list[MigrationStatus]) -> Table:
    table = Table(title="Migrations")
    table.add_column("Migration", style="cyan", no_wrap=True)
    table.add_column("Status", style="white")
    for status in statuses:
        table.add_row(Text(status.name), "[green]applied[/green]" if status.applied else "[yellow]pending[/yellow]")
    return table


def build_manifest_panel(manifest: ComposeManifest, problems: list[str]) -> Panel:
    """Resumen legible del manifiesto + problemas de validación."""

    body = Text()
    for name, service in manifest.services.items():
        body.append(f"{name}", style="bold cyan")
        body.append(f"  {service.image}\n")
        if service.command:
            body.append(f"  command: {' '.join(service.command)}\n")
        for key in sorted(service.environment):
            body.append(f"  env: {key}=***\n")
        for mount in service.volumes:
            body.append(f"  volume: {mount.source or '(anonymous)'} -> {mount.target}\n")
        for mapping in service.ports:
            host = "-" if mapping.host_port is None else str(mapping.host_port)
            body.append(f"  port: {host} -> {mapping.container_port}/{mapping.protocol}\n")
        if service.healthcheck is not None:
            check = service.healthcheck
            body.append(
                f"  healthcheck: {' '.join(check.test)} (every {check.interval}, timeout {check.timeout})\n"
            )
    if manifest.volumes:
        body.append("volumes: ", style="bold")
        body.append(", ".join(sorted(manifest.volumes)) + "\n")

    if problems:
        body.append("\nProblems:\n", style="bold red")
        for problem in problems:
            body.append(f"- {problem}\n", style="red")
        border = "red"
    else:
        body.append("\nValid.", style="green")
        border = "green"
    return Panel(body, title="Deployment manifest", border_style=border)
