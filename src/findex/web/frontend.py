"""Start page of the findex web UI."""

from __future__ import annotations

from functools import lru_cache
from importlib.resources import files

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from findex import __version__

TEMPLATE_NAME = "index.html"
VERSION_MARKER = "{{ version }}"

router = APIRouter()


@lru_cache(maxsize=1)
def _load_template() -> str:
    """Read the page once and stamp the package version into it."""
    html = files(__package__).joinpath("templates", TEMPLATE_NAME).read_text(encoding="utf-8")
    return html.replace(VERSION_MARKER, __version__)


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def start_page() -> str:
    return _load_template()
