"""Command line interface for kartka."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from kartka.config import AppConfig, load_config
from kartka.errors import EmptyBatchError, KartkaError
from kartka.index.indexer import ArchiveBuilder
from kartka.index.reconcile import ReconciliationEngine
from kartka.index.search import RipgrepSearcher, build_links
from kartka.index.storage import ContentStore
from kartka.ingestion.ocr import TesseractExtractor
from kartka.ingestion.rasterize import PyMuPDFRasterizer
from kartka.remote import RcloneRemote
from kartka.web.app import create_app


console = Console()
app = typer.Typer(help="kartka - OCR'd scan archive with full-text search")

CONFIG_HELP = "Config file (default: $KARTKA_CONFIG or ~/.config/kartka.toml)"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _abort(exc: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(str(exc))}")
    raise typer.Exit(code=1)


def _load_config(config_path: Optional[Path]) -> AppConfig:
    try:
        return load_config(config_path)
    except KartkaError as exc:
        _abort(exc)


def _build_archive_builder(config: AppConfig) -> ArchiveBuilder:
    return ArchiveBuilder(
        TesseractExtractor(language=config.ocr_language, timeout=config.ocr_timeout),
        ContentStore(config.index_dir),
        PyMuPDFRasterizer(dpi=config.raster_dpi),
        RcloneRemote(config.remote, binary=config.rclone_binary, timeout=config.command_timeout),
        scan_dir=config.scan_dir,
        delete_policy=config.delete_scans,
    )


def _confirm_delete() -> bool:
    return typer.confirm("Delete files in scan dir?", default=False)


@app.command()
def scan(
    config_path: Path = typer.Option(None, "--config", help=CONFIG_HELP),
    delete: Optional[bool] = typer.Option(
        None,
        "--delete/--keep",
        help="Delete scanned pages after upload (default: the delete_scans setting)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """OCR the scan directory, archive it as a PDF and upload it."""
    _setup_logging(verbose)
    config = _load_config(config_path)
    if delete is not None:
        config.delete_scans = "always" if delete else "never"

    console.print(f"Scanning [bold]{config.scan_dir}[/bold]...")
    try:
        builder = _build_archive_builder(config)
        result = builder.scan(confirm_delete=_confirm_delete)
    except EmptyBatchError:
        console.print("[yellow]No scans found.[/yellow]")
        return
    except KartkaError as exc:
        _abort(exc)

    console.print(f"Archived [bold]{result.identifier}[/bold] ({len(result.pages)} page(s))")
    if result.deleted_sources:
        console.print(f"Removed scanned pages from {config.scan_dir}")
    console.print("done!")


@app.command()
def search(
    query: str = typer.Argument(..., help="Text to look for (case-insensitive)"),
    config_path: Path = typer.Option(None, "--config", help=CONFIG_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Search the extracted text of every archived document."""
    _setup_logging(verbose)
    config = _load_config(config_path)

    searcher = RipgrepSearcher(
        config.index_dir, binary=config.rg_binary, timeout=config.command_timeout
    )
    try:
        identifiers = searcher.query(query)
    except KartkaError as exc:
        _abort(exc)

    if not identifiers:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Document")
    table.add_column("Link")
    for identifier, link in zip(sorted(identifiers), build_links(identifiers, config.preview_url)):
        table.add_row(identifier, link)
    console.print(table)


@app.command()
def hydrate(
    config_path: Path = typer.Option(None, "--config", help=CONFIG_HELP),
    keep_going: bool = typer.Option(
        False, "--keep-going", help="Continue with the next document when one fails"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Pull and index remote archives missing from the local index."""
    _setup_logging(verbose)
    config = _load_config(config_path)

    try:
        builder = _build_archive_builder(config)
        engine = ReconciliationEngine(builder.remote, builder.store, builder.rasterizer, builder)
        report = engine.hydrate(continue_on_error=keep_going)
    except KartkaError as exc:
        _abort(exc)

    console.print(f"Pulled: {report.count}, failed: {len(report.failed)}")
    if report.failed:
        table = Table(show_header=True, header_style="bold red")
        table.add_column("Document")
        table.add_column("Error")
        for identifier, error in report.failed:
            table.add_row(identifier, error)
        console.print(table)
        raise typer.Exit(code=1)
    console.print("done!")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    config_path: Path = typer.Option(None, "--config", help=CONFIG_HELP),
) -> None:
    """Serve search and upload over HTTP."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install it with \"python -m pip install uvicorn\""
        ) from exc

    config = _load_config(config_path)
    try:
        web_app = create_app(config)
    except KartkaError as exc:
        _abort(exc)

    console.print(f"Starting web interface on http://{host}:{port} (index: {config.index_dir})")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )


def main() -> None:
    app()
