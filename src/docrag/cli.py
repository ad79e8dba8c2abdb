"""Command line interface for docrag."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from docrag.config import AppConfig
from docrag.service import RetrievalService


console = Console()
app = typer.Typer(help="docrag - semantic retrieval over markdown documentation")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _build_config(
    db: Optional[Path] = None,
    docs: Optional[Path] = None,
    model: Optional[str] = None,
    **overrides: object,
) -> AppConfig:
    defaults = AppConfig()
    return AppConfig(
        db_path=db if db is not None else defaults.db_path,
        docs_dir=docs if docs is not None else defaults.docs_dir,
        model_name=model or defaults.model_name,
        **overrides,
    )


@app.command()
def index(
    docs: Path = typer.Argument(Path("docs"), help="Directory with markdown documents."),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    model: str = typer.Option(None, help="Sentence-transformer model name"),
    chunk_chars: int = typer.Option(AppConfig().chunk_chars, help="Chunk size in characters"),
    overlap: int = typer.Option(AppConfig().overlap, help="Chunk overlap"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Index new and changed documents."""
    _setup_logging(verbose)
    if not docs.is_dir():
        console.print(f"[yellow]Directory not found: {docs}[/yellow]")
        raise typer.Exit(code=1)

    config = _build_config(db, docs, model, chunk_chars=chunk_chars, overlap=overlap)
    console.print(f"Indexing into [bold]{config.resolve_db_path(Path.cwd())}[/bold]...")
    with RetrievalService(config) as service:
        stats = service.make_indexer().refresh(config.docs_dir)

    console.print(
        f"Inserted: {stats.inserted}, updated: {stats.updated}, "
        f"skipped: {stats.skipped}, removed: {stats.removed}, failed: {stats.failed}"
    )


@app.command()
def rebuild(
    docs: Path = typer.Argument(Path("docs"), help="Directory with markdown documents."),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    model: str = typer.Option(None, help="Sentence-transformer model name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Clear the index and re-index every document."""
    _setup_logging(verbose)
    config = _build_config(db, docs, model)
    with RetrievalService(config) as service:
        ok = service.refresh_index(docs)

    if not ok:
        console.print("[red]Index rebuild failed.[/red]")
        raise typer.Exit(code=1)
    console.print("[green]Index rebuilt.[/green]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    docs: Path = typer.Option(Path("docs"), "--docs", help="Directory with markdown documents"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    model: str = typer.Option(None, help="Sentence-transformer model name"),
    top_k: int = typer.Option(AppConfig().top_k, help="Number of results to display"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Execute a semantic search and show the ranked chunks."""
    _setup_logging(verbose)
    config = _build_config(db, docs, model)
    with RetrievalService(config) as service:
        results = service.search(query, top_k=top_k)

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Document")
    table.add_column("Chunk")
    table.add_column("Snippet")

    for result in results:
        snippet = result.text.replace("\n", " ")
        table.add_row(f"{result.score:.4f}", str(result.path), str(result.chunk_index), snippet[:180])

    console.print(table)


@app.command()
def ask(
    query: str = typer.Argument(..., help="Question about the documentation"),
    docs: Path = typer.Option(Path("docs"), "--docs", help="Directory with markdown documents"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    model: str = typer.Option(None, help="Sentence-transformer model name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Print the retrieval payload an agent would receive."""
    _setup_logging(verbose)
    config = _build_config(db, docs, model)
    with RetrievalService(config) as service:
        console.print(service.retrieve(query), markup=False, highlight=False)


@app.command()
def stats(
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Show how many chunks and files are indexed."""
    config = _build_config(db)
    if not config.resolve_db_path(Path.cwd()).exists():
        console.print("[yellow]Database not found.[/yellow]")
        return

    with RetrievalService(config) as service:
        counts = service.stats()
    console.print(f"Chunks: {counts['chunk_count']}, files: {counts['file_count']}")


@app.command()
def prune(
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Remove documents that no longer exist on disk."""
    config = _build_config(db)
    if not config.resolve_db_path(Path.cwd()).exists():
        console.print("[yellow]Database not found, nothing to prune.[/yellow]")
        return

    with RetrievalService(config) as service:
        removed = service.store.remove_missing_files()
    console.print(f"Removed {removed} orphaned documents.")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP tool server."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    from docrag.web.app import app as web_app

    console.print(f"Starting tool server on http://{host}:{port}")
    uvicorn.run(web_app, host=host, port=port, reload=False, log_level="info")


if __name__ == "__main__":  # pragma: no cover
    app()
