"""Command line interface for findex."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from findex.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from findex.errors import ConfigurationError, PathNotFoundError, UnknownIndexError
from findex.index.browse import BrowseResolver
from findex.index.crawler import Crawler
from findex.index.filters import build_query_spec
from findex.index.search import Searcher
from findex.index.stats import StatsAggregator
from findex.index.storage import IndexStore
from findex.models import Entry
from findex.utils.files import format_size
from findex.web.app import app as web_app


console = Console()
app = typer.Typer(help="findex - index file trees and search them by name")


def _config_option() -> Any:
    return typer.Option(
        DEFAULT_CONFIG_PATH, "--config", "-config", "-c", help="Path to the YAML index configuration"
    )


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _load(config_path: Path) -> AppConfig:
    try:
        return load_config(config_path)
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc


def _open_store(config: AppConfig) -> IndexStore:
    db_path = Path(config.db_path)
    _ensure_db_parent(db_path)
    return IndexStore(db_path, index_names=config.index_names)


def _format_time(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")


def _entries_table(entries: List[Entry], *, show_index: bool) -> Table:
    table = Table(show_header=True, header_style="bold magenta")
    if show_index:
        table.add_column("Index")
    table.add_column("Path")
    table.add_column("Size", justify="right")
    table.add_column("Modified")

    for entry in entries:
        label = f"{entry.path}/" if entry.is_dir else entry.path
        row = [label, format_size(entry.size_bytes), _format_time(entry.modified_at)]
        if show_index:
            row.insert(0, entry.index_name)
        table.add_row(*row)
    return table


@app.command()
def index(
    config_path: Path = _config_option(),
    force: bool = typer.Option(False, "--force", "-f", help="Ignore refresh_interval"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Crawl every configured index and publish the results."""
    _setup_logging(verbose)
    config = _load(config_path)
    if not config.indexes:
        console.print("[yellow]No indexes configured.[/yellow]")
        return

    store = _open_store(config)
    console.print(f"Indexing into [bold]{config.db_path}[/bold]...")
    try:
        reports = Crawler(store).run(config.indexes, force=force)
    finally:
        store.close()

    failed = False
    for report in reports:
        if report.status == "published":
            console.print(
                f"{report.index_name}: indexed {report.entries} entries, errors: {report.errors}"
            )
        elif report.status == "skipped":
            console.print(f"[yellow]{report.index_name}: skipped, refresh interval not elapsed[/yellow]")
        else:
            failed = True
            console.print(f"[red]{report.index_name}: failed: {report.message}[/red]")

    if failed:
        raise typer.Exit(code=1)


@app.command()
def search(
    query: str = typer.Argument("", help="Name terms; prefix with '-' to exclude"),
    config_path: Path = _config_option(),
    indexes: Optional[List[str]] = typer.Option(None, "--index", "-i", help="Index to search"),
    ext: Optional[str] = typer.Option(None, help="Comma separated extensions"),
    min_size: Optional[str] = typer.Option(None, help="Minimum size, e.g. 2MB"),
    max_size: Optional[str] = typer.Option(None, help="Maximum size, e.g. 100KB"),
    entry_type: Optional[str] = typer.Option(None, "--type", help="files or dirs"),
    date_from: Optional[str] = typer.Option(None, help="Modified on or after YYYY-MM-DD"),
    date_to: Optional[str] = typer.Option(None, help="Modified on or before YYYY-MM-DD"),
    page: int = typer.Option(1, help="Result page"),
    page_size: int = typer.Option(25, help="Results per page (25, 50 or 100)"),
) -> None:
    """Search entry names across indexes."""
    config = _load(config_path)
    spec = build_query_spec(
        indexes=indexes or config.index_names,
        query=query,
        ext=ext,
        min_size=min_size,
        max_size=max_size,
        entry_type=entry_type,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )

    store = _open_store(config)
    try:
        result = Searcher(store).search(spec)
    except UnknownIndexError as exc:
        raise typer.BadParameter(str(exc), param_hint="--index") from exc
    finally:
        store.close()

    if not result.entries:
        console.print("[yellow]No matches found.[/yellow]")
        return

    console.print(_entries_table(result.entries, show_index=len(spec.indexes) > 1))
    console.print(f"Found {result.total} results (page {result.page} of {result.total_pages})")


@app.command()
def browse(
    index_name: str = typer.Argument(..., help="Index to browse"),
    path: str = typer.Argument("", help="Directory inside the index"),
    config_path: Path = _config_option(),
) -> None:
    """List the direct children of a directory."""
    config = _load(config_path)
    store = _open_store(config)
    try:
        result = BrowseResolver(store).browse(index_name, path)
    except (UnknownIndexError, PathNotFoundError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    finally:
        store.close()

    location = "/".join([index_name, *(crumb.name for crumb in result.breadcrumbs)])
    console.print(
        f"[bold]{location}/[/bold]  Size: {format_size(result.size_bytes)}  Files: {result.file_count}"
    )
    if not result.entries:
        console.print("[yellow]Empty directory.[/yellow]")
        return
    console.print(_entries_table(result.entries, show_index=False))


@app.command()
def stats(
    config_path: Path = _config_option(),
    indexes: Optional[List[str]] = typer.Option(None, "--index", "-i", help="Index to include"),
) -> None:
    """Show totals, extensions and largest files."""
    config = _load(config_path)
    store = _open_store(config)
    try:
        global_stats = StatsAggregator(store).global_stats(indexes)
    except UnknownIndexError as exc:
        raise typer.BadParameter(str(exc), param_hint="--index") from exc
    finally:
        store.close()

    summary = Table(show_header=True, header_style="bold magenta")
    summary.add_column("Index")
    summary.add_column("Files", justify="right")
    summary.add_column("Dirs", justify="right")
    summary.add_column("Size", justify="right")
    summary.add_column("Last scan")
    for index_stats in global_stats.indexes:
        summary.add_row(
            index_stats.index_name,
            str(index_stats.total_files),
            str(index_stats.total_dirs),
            format_size(index_stats.total_size_bytes),
            index_stats.last_scan or "never",
        )
    console.print(summary)
    console.print(
        f"Total: {global_stats.total_files} files, {format_size(global_stats.total_size_bytes)}"
    )

    if global_stats.top_extensions:
        extensions = Table(show_header=True, header_style="bold magenta")
        extensions.add_column("Extension")
        extensions.add_column("Files", justify="right")
        extensions.add_column("Size", justify="right")
        for ext in global_stats.top_extensions:
            extensions.add_row(ext.extension, str(ext.count), format_size(ext.total_size))
        console.print(extensions)

    if global_stats.largest_files:
        console.print("[bold]Largest files[/bold]")
        console.print(_entries_table(global_stats.largest_files, show_index=True))


@app.command()
def prune(config_path: Path = _config_option()) -> None:
    """Remove entries of indexes that are no longer configured."""
    config = _load(config_path)
    if not Path(config.db_path).exists():
        console.print("[yellow]Database not found, nothing to prune.[/yellow]")
        return

    store = IndexStore(Path(config.db_path), index_names=config.index_names)
    try:
        removed = store.prune_unknown()
    finally:
        store.close()
    console.print(f"Removed {removed} entries of unconfigured indexes.")


@app.command()
def web(
    config_path: Path = _config_option(),
    host: Optional[str] = typer.Option(None, help="Host interface (default from config)"),
    port: Optional[int] = typer.Option(None, help="Server port (default from config)"),
) -> None:
    """Start the web interface."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    config = _load(config_path)
    web_app.state.config = config
    host = host or config.host
    port = port or config.port

    console.print(f"Starting web interface on http://{host}:{port} (database: {config.db_path})")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":  # pragma: no cover
    app()
