"""Schema migration commands."""

from __future__ import annotations

from typing import Optional

import typer
from rich.markup import escape

from cli import bootstrap
from cli.bootstrap import console, get_state
from cli.ui_components import build_migrations_table
from core.errors import VSearchError

app = typer.Typer(no_args_is_help=True, help="Apply or revert database schema migrations.")


def _report(names: list[str], verb: str) -> None:
    if not names:
        console.print("[dim]Nothing to do.[/dim]")
        return
    for name in names:
        console.print(f"[green]{verb}[/green] {escape(name)}")


@app.command()
def up(
    ctx: typer.Context,
    steps: Optional[int] = typer.Option(None, "--steps", "-n", min=1, help="Apply at most N pending migrations."),
) -> None:
    """Apply pending migrations."""

    state = get_state(ctx)
    try:
        names = bootstrap.build_migrator(state.settings).up(steps)
    except VSearchError as exc:
        bootstrap.fail(state, exc)
    _report(names, "applied")


@app.command()
def down(
    ctx: typer.Context,
    steps: int = typer.Option(1, "--steps", "-n", min=1, help="Revert the N most recent migrations."),
    all_: bool = typer.Option(False, "--all", help="Revert every applied migration."),
) -> None:
    """Revert applied migrations (most recent first)."""

    state = get_state(ctx)
    try:
        names = bootstrap.build_migrator(state.settings).down(None if all_ else steps)
    except VSearchError as exc:
        bootstrap.fail(state, exc)
    _report(names, "reverted")


@app.command()
def status(ctx: typer.Context) -> None:
    """Show applied and pending migrations."""

    state = get_state(ctx)
    try:
        statuses = bootstrap.build_migrator(state.settings).status()
    except VSearchError as exc:
        bootstrap.fail(state, exc)
    console.print(build_migrations_table(statuses))


@app.command()
def fresh(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Revert everything and re-apply all migrations (drops data)."""

    state = get_state(ctx)
    if not yes:
        typer.confirm("This drops the search table and all its rows. Continue?", abort=True)
    try:
        names = bootstrap.build_migrator(state.settings).fresh()
    except VSearchError as exc:
        bootstrap.fail(state, exc)
    _report(names, "applied")
