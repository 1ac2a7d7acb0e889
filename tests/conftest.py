"""Shared fixtures: a small sample tree and stores built from it."""

from __future__ import annotations

from pathlib import Path

import pytest

from findex.config import AppConfig, IndexDefinition
from findex.index.crawler import Crawler
from findex.index.storage import IndexStore

MB = 1024 * 1024

SAMPLE_FILES = {
    "documents/annual_report_2024.pdf": 3000,
    "documents/contract_draft.pdf": 1200,
    "documents/meeting_notes.txt": 50,
    "documents/budget_2024.xlsx": 800,
    "documents/quarterly_report.pdf": 500,
    "images/logo.png": 100,
    "images/vacation/beach_sunset.jpg": 2048,
    "videos/holiday_2024.mp4": 3 * MB,
    "videos/birthday_party.mkv": 2 * MB + 10,
    "README": 20,
}


def make_file(path: Path, size: int) -> None:
    """Create ``path`` with exactly ``size`` bytes (sparse where supported)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as handle:
        handle.truncate(size)


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    root = tmp_path / "files"
    for rel_path, size in SAMPLE_FILES.items():
        make_file(root / rel_path, size)
    (root / "empty").mkdir()
    return root


@pytest.fixture
def docs_tree(tmp_path: Path) -> Path:
    """``a/report.pdf`` (500 B), ``a/notes.txt`` (50 B) and an empty ``b/``."""
    root = tmp_path / "docs"
    make_file(root / "a" / "report.pdf", 500)
    make_file(root / "a" / "notes.txt", 50)
    (root / "b").mkdir()
    return root


@pytest.fixture
def config(tmp_path: Path, sample_tree: Path, docs_tree: Path) -> AppConfig:
    return AppConfig(
        db_path=tmp_path / "data" / "findex.db",
        indexes=(
            IndexDefinition(name="test-files", root_path=sample_tree),
            IndexDefinition(name="docs", root_path=docs_tree),
        ),
    )


@pytest.fixture
def store(config: AppConfig):
    config.db_path.parent.mkdir(parents=True, exist_ok=True)
    store = IndexStore(config.db_path, index_names=config.index_names)
    yield store
    store.close()


@pytest.fixture
def crawled_store(store: IndexStore, config: AppConfig) -> IndexStore:
    Crawler(store).run(config.indexes)
    return store
