"""CLI principal (Typer).

Comandos:
- `collections`: índices de Elasticsearch.
- `create CONTENT`: embebe, persiste en PostgreSQL e indexa en Elasticsearch.
- `count`: filas en PostgreSQL.
- `search QUERY`: búsqueda k-NN.
- `migrate ...` / `doctor ...`: sub-aplicaciones.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from adapters.json_exporter import dumps_stable, export_json
from cli import bootstrap, doctor, migrate
from cli.bootstrap import CliState, console, get_state
from cli.ui_components import build_indices_table, build_matches_table
from core.config import AppSettings
from core.log import configure_logging
from core.services.search_service import DEFAULT_TOP_K

app = typer.Typer(
    no_args_is_help=True,
    help="Semantic search over PostgreSQL/pgvector and Elasticsearch k-NN.",
)
app.add_typer(migrate.app, name="migrate")
app.add_typer(doctor.app, name="doctor")


@app.callback()
def main(
    ctx: typer.Context,
    database_url: Optional[str] = typer.Option(
        None,
        "--database-url",
        "-d",
        help="PostgreSQL DSN. Defaults to $DATABASE_URL, then to the compose manifest.",
    ),
    elastic_url: Optional[str] = typer.Option(
        None,
        "--elastic-url",
        "-e",
        help="Elasticsearch URL. Defaults to $ELASTIC_URL.",
    ),
    threshold: Optional[float] = typer.Option(
        None,
        "--threshold",
        "-t",
        min=0.0,
        max=1.0,
        help="Minimum score kept in search results [default: 0.6].",
    ),
    no_threshold: bool = typer.Option(False, "--no-threshold", help="Keep every k-NN hit."),
    json_output: bool = typer.Option(False, "--json", help="Machine-readable output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging and tracebacks."),
) -> None:
    settings = AppSettings()
    configure_logging("DEBUG" if verbose else settings.log_level)

    overrides: dict[str, object] = {}
    if database_url:
        overrides["database_url"] = database_url
    if elastic_url:
        overrides["elastic_url"] = elastic_url
    if threshold is not None:
        overrides["threshold"] = threshold
    if no_threshold:
        overrides["threshold"] = None
    if overrides:
        settings = settings.model_copy(update=overrides)

    ctx.obj = CliState(settings=settings, json_output=json_output, verbose=verbose)


@app.command()
def collections(ctx: typer.Context) -> None:
    """List Elasticsearch indices."""

    state = get_state(ctx)
    indices = bootstrap.run_with_service(state, lambda service: service.collections())
    if state.json_output:
        console.print_json(dumps_stable(indices))
        return
    console.print(build_indices_table(indices))


@app.command()
def create(
    ctx: typer.Context,
    content: str = typer.Argument(..., help="Text to embed and store."),
) -> None:
    """Embed CONTENT, store it in PostgreSQL and index it in Elasticsearch."""

    state = get_state(ctx)
    document = bootstrap.run_with_service(state, lambda service: service.create(content))
    if state.json_output:
        console.print_json(json.dumps({"id": str(document.id), "dims": len(document.vector)}))
        return
    console.print(f"[dim]{document.id}[/dim]")
    console.print("done.")


@app.command()
def count(ctx: typer.Context) -> None:
    """Count stored rows."""

    state = get_state(ctx)
    rows = bootstrap.run_with_service(state, lambda service: service.count())
    if state.json_output:
        console.print_json(json.dumps({"rows": rows}))
        return
    console.print(f"rows: {rows}")


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Free-text query."),
    top_k: int = typer.Option(DEFAULT_TOP_K, "--top-k", "-k", min=1, help="Number of neighbours."),
    raw: bool = typer.Option(False, "--raw", help="Print the untouched backend response."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Also write the result as JSON."),
) -> None:
    """k-NN search for QUERY."""

    state = get_state(ctx)
    result = bootstrap.run_with_service(state, lambda service: service.search(query, top_k=top_k))

    if output is not None:
        path = export_json(payload=result, output_path=output)
        bootstrap.err_console.print(f"[green]Saved:[/green] {escape(str(path))}")

    if raw:
        console.print_json(dumps_stable(result.raw))
    elif state.json_output:
        console.print_json(dumps_stable(result.model_dump(mode="json", exclude={"raw"})))
    elif result.hits:
        console.print(build_matches_table(result))
    else:
        console.print("[yellow]No matches above threshold.[/yellow]")


def run() -> None:
    app(prog_name="vsearch")


if __name__ == "__main__":
    run()
