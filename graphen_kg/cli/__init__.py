"""
Command-Line Interface

CLI commands for Graphen operations.

Commands:
    graphen ingest  - Ingest a document into a graph store
    graphen chunk   - Preview chunking and the size guard (no LLM calls)
    graphen info    - Display graph store information

Usage:
    # Ingest a PDF
    graphen ingest report.pdf --storage ./graph

    # Re-extract everything, ignoring the cache
    graphen ingest report.pdf --force

    # Use pre-extracted text instead of parsing the file
    graphen ingest report.pdf --text-file report.txt

    # Check how a document would be chunked
    graphen chunk notes.md --chunk-size 1000

    # Show stats
    graphen info --storage ./graph
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from graphen_kg.config import GraphenConfig
from graphen_kg.errors import GraphenError

__all__ = ["main", "app"]

app = typer.Typer(
    name="graphen",
    help="Turn documents into a knowledge graph",
    no_args_is_help=True,
)
console = Console()


def _load_config(config_path: Optional[Path], **overrides) -> GraphenConfig:
    config = GraphenConfig.from_file(config_path) if config_path else GraphenConfig()
    overrides = {key: value for key, value in overrides.items() if value is not None}
    return config.with_overrides(**overrides) if overrides else config


@app.callback()
def setup(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Turn documents into a knowledge graph."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@app.command()
def ingest(
    path: Path = typer.Argument(
        ...,
        help="Document to ingest (.pdf, .md, .txt)",
        exists=True,
        dir_okay=False,
    ),
    storage: Optional[Path] = typer.Option(
        None,
        "--storage", "-s",
        help="Graph store directory (default: from config)",
    ),
    cache_dir: Optional[Path] = typer.Option(
        None,
        "--cache-dir",
        help="Pipeline cache directory (default: from config)",
    ),
    force: bool = typer.Option(
        False,
        "--force", "-f",
        help="Ignore cached chunks and extractions",
    ),
    text_file: Optional[Path] = typer.Option(
        None,
        "--text-file",
        help="Use this file's text instead of parsing the document",
        exists=True,
        dir_okay=False,
    ),
    document_id: Optional[str] = typer.Option(
        None,
        "--document-id",
        help="Reuse a document id (resumes from its cache)",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="TOML configuration file",
        exists=True,
    ),
) -> None:
    """Ingest a document into a graph store."""

    async def _run() -> None:
        from graphen_kg.api.convenience import ingest_file
        from graphen_kg.providers import create_embedding_provider, create_llm_provider
        from graphen_kg.storage import ParquetGraphStore
        from graphen_kg.types import ProcessOptions

        config = _load_config(
            config_path,
            storage_path=str(storage) if storage else None,
            cache_dir=str(cache_dir) if cache_dir else None,
        )
        options = ProcessOptions(
            raw_text=text_file.read_text(encoding="utf-8") if text_file else None,
            force_rebuild=force,
        )
        llm = create_llm_provider(config)
        embeddings = create_embedding_provider(config)

        async with ParquetGraphStore(config.storage_path, config) as store:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
            ) as progress:
                task = progress.add_task(f"Ingesting {path.name}...", total=100)

                def _on_status(event) -> None:
                    description = event.phase.value.capitalize()
                    if event.message:
                        description = f"{description}: {event.message}"
                    progress.update(task, completed=event.progress, description=description)

                result = await ingest_file(
                    path,
                    store,
                    llm,
                    embeddings,
                    config,
                    options=options,
                    document_id=document_id,
                    on_status=_on_status,
                )

        document = result.document
        console.print()
        console.print(Panel(
            f"[green]Successfully ingested {document.filename}[/]\n\n"
            f"  Document ID: {document.id}\n"
            f"  Chunks: {document.metadata.chunk_count}\n"
            f"  Entities: {document.metadata.entity_count}\n"
            f"  Edges: {document.metadata.edge_count}\n"
            f"  Estimated tokens: {result.estimated_tokens}",
            title="Ingestion Complete",
        ))

        if result.resolved_graph.nodes:
            table = Table(title="Top Entities")
            table.add_column("Name", style="cyan")
            table.add_column("Type", style="dim")
            table.add_column("Mentions", justify="right", style="green")
            ranked = sorted(
                result.resolved_graph.nodes,
                key=lambda n: len(n.source_chunk_ids),
                reverse=True,
            )
            for node in ranked[:10]:
                table.add_row(node.name, node.type, str(len(node.source_chunk_ids)))
            console.print(table)

    try:
        asyncio.run(_run())
    except GraphenError as e:
        console.print(f"[red]Ingestion failed:[/] {e}")
        raise typer.Exit(code=1) from e


@app.command()
def chunk(
    path: Path = typer.Argument(
        ...,
        help="Document to chunk (.pdf, .md, .txt)",
        exists=True,
        dir_okay=False,
    ),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", help="Characters per chunk"),
    chunk_overlap: Optional[int] = typer.Option(None, "--chunk-overlap", help="Overlap in characters"),
    show: int = typer.Option(3, "--show", "-n", help="Number of chunks to preview"),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="TOML configuration file",
        exists=True,
    ),
) -> None:
    """Preview chunking and the size guard without calling any model."""
    from graphen_kg.ingestion.chunking import chunk_document
    from graphen_kg.ingestion.parsing import get_parser, validate_upload
    from graphen_kg.utils.token_count import count_text_tokens

    try:
        config = _load_config(
            config_path, chunk_size=chunk_size, chunk_overlap=chunk_overlap
        ).validate()
        content = path.read_bytes()
        upload = validate_upload(path.name, content, max_size=config.max_upload_size)
        parsed = get_parser(upload.file_type).parse(content)
        chunks = chunk_document(
            "preview",
            parsed.text,
            chunk_size=config.chunk_size,
            chunk_overlap=config.chunk_overlap,
        )
    except GraphenError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(code=1) from e

    estimated_tokens = sum(count_text_tokens(c.content, config.llm_model) for c in chunks)

    table = Table(title=f"Chunks: {path.name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("Words", str(parsed.word_count))
    table.add_row("Pages", str(parsed.page_count) if parsed.page_count is not None else "-")
    table.add_row("Chunks", f"{len(chunks)} / {config.max_chunks_per_document}")
    table.add_row("Estimated tokens", f"{estimated_tokens} / {config.max_estimated_tokens}")
    console.print(table)

    for c in chunks[:show]:
        lines = f"lines {c.metadata.start_line}-{c.metadata.end_line}"
        console.print(Panel(c.content, title=f"Chunk {c.index} ({lines})", title_align="left"))

    too_large = (
        len(chunks) > config.max_chunks_per_document
        or estimated_tokens > config.max_estimated_tokens
    )
    if too_large:
        console.print("[yellow]This document exceeds the size limits and would be rejected.[/]")
        raise typer.Exit(code=1)


@app.command()
def info(
    storage: Optional[Path] = typer.Option(
        None,
        "--storage", "-s",
        help="Graph store directory (default: from config)",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="TOML configuration file",
        exists=True,
    ),
) -> None:
    """Display graph store information."""

    async def _run() -> None:
        from graphen_kg.storage import ParquetGraphStore

        config = _load_config(config_path, storage_path=str(storage) if storage else None)
        store_path = Path(config.storage_path)
        if not store_path.exists():
            console.print(f"[red]No graph store at {store_path}[/]")
            raise typer.Exit(code=1)

        async with ParquetGraphStore(store_path, config) as store:
            documents = await store.get_documents()
            node_count = await store.count_nodes()
            edge_count = await store.count_edges()

        table = Table(title=f"Graph Store: {store_path}")
        table.add_column("Metric", style="cyan")
        table.add_column("Count", justify="right", style="green")
        table.add_row("Documents", str(len(documents)))
        table.add_row("Nodes", str(node_count))
        table.add_row("Edges", str(edge_count))
        console.print(table)

        if documents:
            doc_table = Table(title="Documents")
            doc_table.add_column("ID", style="dim")
            doc_table.add_column("Filename", style="cyan")
            doc_table.add_column("Status")
            doc_table.add_column("Chunks", justify="right")
            for document in documents:
                status = document.status.value
                if document.error_message:
                    status = f"{status}: {document.error_message}"
                doc_table.add_row(
                    document.id,
                    document.filename,
                    status,
                    str(document.metadata.chunk_count or 0),
                )
            console.print(doc_table)

    asyncio.run(_run())


def main() -> None:
    """Entry point for the CLI."""
    from dotenv import load_dotenv

    load_dotenv()
    app()
