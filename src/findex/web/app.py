"""FastAPI application backing the findex web UI."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict
from functools import lru_cache
from pathlib import Path
from typing import Any, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from findex.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from findex.errors import PathNotFoundError, UnknownIndexError
from findex.index.browse import BrowseResolver
from findex.index.filters import build_query_spec
from findex.index.search import Searcher
from findex.index.stats import StatsAggregator, StatsCache
from findex.index.storage import IndexStore
from findex.utils.files import format_size, normalize_rel_path, resolve_within
from findex.web.frontend import router as frontend_router

LOGGER = logging.getLogger(__name__)

CONFIG_ENV = "FINDEX_CONFIG"

app = FastAPI(title="findex Web", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(frontend_router)

# Shared across requests; one entry per database and index, replaced after a crawl.
_STATS_CACHE: StatsCache = {}


@lru_cache(maxsize=1)
def _load_default_config() -> AppConfig:
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return load_config(Path(env_path))
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    LOGGER.warning("No configuration found at %s, serving no indexes", DEFAULT_CONFIG_PATH)
    return AppConfig()


def _get_config(request: Request) -> AppConfig:
    config = getattr(request.app.state, "config", None)
    if config is None:
        config = _load_default_config()
    return config


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _open_store(config: AppConfig) -> IndexStore:
    db_path = Path(config.db_path)
    _ensure_db_parent(db_path)
    return IndexStore(db_path, index_names=config.index_names)


def _not_found(exc: LookupError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.get("/api/indexes")
async def list_indexes(request: Request) -> dict[str, Any]:
    """List configured indexes with their last scan time."""
    config = _get_config(request)
    store = _open_store(config)
    try:
        indexes = [
            {"name": name, "last_scan": store.last_scan(name)} for name in config.index_names
        ]
    finally:
        store.close()
    return {"indexes": indexes}


@app.get("/api/browse/{index_name}")
async def browse(request: Request, index_name: str, path: str = "") -> dict[str, Any]:
    config = _get_config(request)
    store = _open_store(config)
    try:
        result = BrowseResolver(store).browse(index_name, path)
    except (UnknownIndexError, PathNotFoundError) as exc:
        raise _not_found(exc) from exc
    finally:
        store.close()

    payload = asdict(result)
    payload["size_human"] = format_size(result.size_bytes)
    return payload


@app.get("/api/search")
async def search(
    request: Request,
    q: str = "",
    selected: Optional[List[str]] = Query(None, alias="index[]"),
    index: Optional[List[str]] = Query(None),
    ext: Optional[str] = None,
    min_size: Optional[str] = None,
    max_size: Optional[str] = None,
    entry_type: Optional[str] = Query(None, alias="type"),
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    page: Optional[str] = None,
    page_size: Optional[str] = None,
) -> dict[str, Any]:
    """Search entry names across the selected indexes (all when none given)."""
    config = _get_config(request)
    names = (selected or []) + (index or [])
    spec = build_query_spec(
        indexes=names or config.index_names,
        query=q,
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
        raise _not_found(exc) from exc
    finally:
        store.close()

    LOGGER.info(
        "Found %d total results, showing page %d of %d", result.total, result.page, result.total_pages
    )
    return {
        "query": q,
        "indexes": spec.indexes,
        "total": result.total,
        "page": result.page,
        "page_size": result.page_size,
        "total_pages": result.total_pages,
        "has_prev": result.has_prev,
        "has_next": result.has_next,
        "pages": result.page_numbers(),
        "results": [asdict(entry) for entry in result.entries],
    }


@app.get("/api/stats")
async def stats(request: Request, index: Optional[List[str]] = Query(None)) -> dict[str, Any]:
    config = _get_config(request)
    names = list(dict.fromkeys(index or config.index_names))
    store = _open_store(config)
    try:
        global_stats = StatsAggregator(store, cache=_STATS_CACHE).global_stats(names)
        history = {name: store.scan_history(name) for name in names}
    except UnknownIndexError as exc:
        raise _not_found(exc) from exc
    finally:
        store.close()

    payload = asdict(global_stats)
    payload["total_size_human"] = format_size(global_stats.total_size_bytes)
    payload["scan_history"] = {
        name: [asdict(summary) for summary in summaries] for name, summaries in history.items()
    }
    return payload


@app.get("/api/download/{index_name}")
async def download(request: Request, index_name: str, path: str) -> FileResponse:
    """Serve an indexed file that still exists below its index root."""
    config = _get_config(request)
    definition = config.get_index(index_name)
    if definition is None:
        raise _not_found(UnknownIndexError(index_name))

    store = _open_store(config)
    try:
        entry = store.get_entry(index_name, normalize_rel_path(path))
    finally:
        store.close()

    if entry is None or entry.is_dir:
        raise HTTPException(status_code=404, detail=f"File not found: {path}")

    target = resolve_within(definition.root_path, entry.path)
    if target is None or not target.is_file():
        raise HTTPException(status_code=404, detail=f"File not found: {path}")
    return FileResponse(target, filename=entry.name)
