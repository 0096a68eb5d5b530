"""Command line interface for docrag."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from docrag.config import AppConfig, default_cache_path, read_env_file
from docrag.errors import DocRagError
from docrag.service import RetrievalService
from docrag.web.app import app as web_app


console = Console()
app = typer.Typer(help="docrag - semantic retrieval over repository documentation")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load_config(cache: Path | None) -> AppConfig:
    try:
        config = AppConfig.from_env()
    except DocRagError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    if cache is not None:
        config.cache_path = cache
    return config


@app.command()
def index(
    cache: Path = typer.Option(None, "--cache", help="Embeddings snapshot path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Load the snapshot or build it from the repository archive."""
    _setup_logging(verbose)
    config = _load_config(cache)
    service = RetrievalService.from_config(config)
    try:
        stats = service.initialize()
    except DocRagError as exc:
        console.print(f"[red]Initialization failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        service.close()

    start = "warm start" if stats.source == "snapshot" else "cold start"
    console.print(f"Loaded [bold]{stats.documents}[/bold] documents ({start}) into {config.cache_path}")
    if not stats.persisted:
        console.print("[yellow]Snapshot could not be saved; running in memory only.[/yellow]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    cache: Path = typer.Option(None, "--cache", help="Embeddings snapshot path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Show the documents most relevant to a query."""
    _setup_logging(verbose)
    config = _load_config(cache)
    service = RetrievalService.from_config(config)
    try:
        service.initialize()
        results = service.search(query)
    except DocRagError as exc:
        console.print(f"[red]Search failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        service.close()

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Document")
    table.add_column("Snippet")

    for result in results:
        snippet = result.document.content.replace("\n", " ")
        table.add_row(f"{result.score:.4f}", result.document.path, snippet[:180])

    console.print(table)


@app.command("clear-cache")
def clear_cache(
    cache: Path = typer.Option(None, "--cache", help="Embeddings snapshot path"),
) -> None:
    """Delete the embeddings snapshot so the next start rebuilds it."""
    if cache is None:
        read_env_file()
    path = cache if cache is not None else default_cache_path()
    if not path.exists():
        console.print("[yellow]No snapshot found, nothing to clear.[/yellow]")
        return
    path.unlink()
    console.print(f"Removed {path}")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP search API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    console.print(f"Starting search API on http://{host}:{port}")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
