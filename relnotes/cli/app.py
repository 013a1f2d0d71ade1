"""Typer CLI for relnotes."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from relnotes.errors import RelnotesError

if TYPE_CHECKING:
    from relnotes.config import RelnotesConfig

console = Console()
app = typer.Typer(
    name="relnotes",
    help="Insert release notes into changelogs and open a docs pull request.",
    add_completion=False,
    no_args_is_help=True,
)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load_config(cwd: str, **overrides: Any) -> RelnotesConfig:
    """``resolve_config``, turning bad settings into a clean exit."""
    from relnotes.config import resolve_config

    try:
        return resolve_config(cwd, **overrides)
    except ValueError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def release(
    tag: str | None = typer.Argument(
        None,
        help="Release tag, e.g. elements_v1.2.0 (default: $GH_RELEASE)",
    ),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Documentation checkout"),
    owner: str | None = typer.Option(None, "--owner", help="Owner of the releasing repository"),
    repo: str | None = typer.Option(None, "--repo", help="Releasing repository"),
    docs_owner: str | None = typer.Option(None, "--docs-owner", help="Docs repository owner"),
    docs_repo: str | None = typer.Option(None, "--docs-repo", help="Docs repository for the PR"),
    base: str | None = typer.Option(None, "--base", help="Base branch of the pull request"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Only update the changelog; no commit, push or PR"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Add the notes for a release to its changelog and open a pull request."""
    from dotenv import load_dotenv

    from relnotes.config import default_tag
    from relnotes.pipeline import ReleasePipeline, ReleaseStage

    load_dotenv()
    _setup_logging(verbose)

    tag = tag or default_tag()
    if not tag:
        console.print("[red]No release tag given and GH_RELEASE is not set.[/red]")
        raise typer.Exit(code=1)

    cfg = _load_config(
        cwd,
        owner=owner,
        repo=repo,
        docs_owner=docs_owner,
        docs_repo=docs_repo,
        base_branch=base,
    )

    console.print(
        Panel(
            f"[bold]Tag:[/bold] {tag}\n"
            f"[bold]Source:[/bold] {cfg.owner or '?'}/{cfg.repo or '?'}\n"
            f"[bold]Docs:[/bold] {cfg.docs_owner or '?'}/{cfg.docs_repo or '?'} "
            f"→ {cfg.base_branch}" + ("  [yellow](dry run)[/yellow]" if dry_run else ""),
            title="[bold cyan]relnotes[/bold cyan]",
            border_style="cyan",
        )
    )

    async def _on_stage(stage: ReleaseStage) -> None:
        console.print(f"  [green]✓[/green] {stage.replace('_', ' ')}")

    pipeline = ReleasePipeline(cfg, dry_run=dry_run, on_stage=_on_stage)
    try:
        result = asyncio.run(pipeline.run(tag))
    except (RelnotesError, OSError, ValueError) as e:
        console.print(f"[red]✗ Release notes for {tag} failed: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    if result.status == "partial":
        console.print(
            f"[yellow]⚠ {result.changelog_path} was updated but "
            f"{result.failed_stage} failed: {escape(result.error or '')}[/yellow]"
        )
        raise typer.Exit(code=2)

    if result.status == "dry_run":
        console.print(f"\n[bold green]Updated {result.changelog_path}[/bold green]")
    else:
        console.print(f"\n[bold green]Pull request opened:[/bold green] {result.pr_url}")


@app.command()
def insert(
    path: str = typer.Argument(..., help="File to edit"),
    line: int = typer.Argument(..., min=1, help="1-indexed line to insert before"),
    content: str | None = typer.Argument(None, help="Text to insert (default: read stdin)"),
    newline: str = typer.Option("crlf", "--newline", help="Line terminator: crlf or lf"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Insert text before LINE of PATH without loading the file into memory."""
    from relnotes.config import parse_line_terminator
    from relnotes.tools.line_insert import insert_into_line

    _setup_logging(verbose)

    try:
        terminator = parse_line_terminator(newline)
    except ValueError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    if content is None or content == "-":
        content = sys.stdin.read().rstrip("\n")

    try:
        written = asyncio.run(insert_into_line(path, line, content, terminator))
    except OSError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"[green]✓ Inserted before line {line} of {written}[/green]")


@app.command()
def lookup(
    name: str = typer.Argument(..., help="Package name or release tag"),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Directory holding .relnotes.yml"),
) -> None:
    """Show which changelog a package or release tag maps to."""
    from relnotes.packages import resolve_target

    cfg = _load_config(cwd)
    try:
        target = resolve_target(name, cfg.packages)
    except (LookupError, ValueError) as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"[bold]{target.package}[/bold] → {target.path}:{target.line}")


@app.command()
def packages(
    cwd: str = typer.Option(".", "--cwd", "-C", help="Directory holding .relnotes.yml"),
) -> None:
    """List every package with a registered changelog."""
    from relnotes.packages import list_changelogs

    cfg = _load_config(cwd)
    try:
        targets = list_changelogs(cfg.packages)
    except ValueError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    table = Table(title="Changelogs", show_lines=False)
    table.add_column("Package", style="cyan")
    table.add_column("Path")
    table.add_column("Line", justify="right")
    for target in targets:
        table.add_row(target.package, target.path, str(target.line))
    console.print(table)


if __name__ == "__main__":
    app()
