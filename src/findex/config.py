"""Application configuration loading."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from findex.errors import ConfigurationError

DEFAULT_CONFIG_PATH = Path("findex.yaml")
DEFAULT_DB_PATH = Path("data/findex.db")


@dataclass(frozen=True, slots=True)
class IndexDefinition:
    """A named file tree to crawl."""

    name: str
    root_path: Path
    exclude: tuple[str, ...] = ()
    refresh_interval: int = 0


@dataclass(frozen=True, slots=True)
class AppConfig:
    db_path: Path = DEFAULT_DB_PATH
    indexes: tuple[IndexDefinition, ...] = field(default_factory=tuple)
    host: str = "127.0.0.1"
    port: int = 8080

    @property
    def index_names(self) -> list[str]:
        return [definition.name for definition in self.indexes]

    def get_index(self, name: str) -> IndexDefinition | None:
        for definition in self.indexes:
            if definition.name == name:
                return definition
        return None

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path


def load_config(path: Path) -> AppConfig:
    """Read a YAML configuration file.

    Relative ``db_path`` and ``root_path`` values are resolved against the
    directory holding the configuration file.
    """
    path = Path(path).expanduser()
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except OSError as exc:
        raise ConfigurationError(f"Unable to read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Config {path} must be a mapping")
    return parse_config(raw, base_dir=path.parent)


def parse_config(raw: Mapping[str, Any], *, base_dir: Path | None = None) -> AppConfig:
    base = base_dir or Path.cwd()

    server = raw.get("server") or {}
    if not isinstance(server, Mapping):
        raise ConfigurationError("'server' must be a mapping")

    db_path = Path(raw.get("db_path") or DEFAULT_DB_PATH).expanduser()
    if not db_path.is_absolute():
        db_path = base / db_path

    indexes = tuple(_parse_index(item, base) for item in raw.get("indexes") or [])
    names = [definition.name for definition in indexes]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate index names: {', '.join(duplicates)}")

    try:
        port = int(server.get("port", 8080))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid server port: {server.get('port')!r}") from exc

    return AppConfig(
        db_path=db_path,
        indexes=indexes,
        host=str(server.get("host", "127.0.0.1")),
        port=port,
    )


def _parse_index(item: Any, base: Path) -> IndexDefinition:
    if not isinstance(item, Mapping):
        raise ConfigurationError(f"Index entry must be a mapping, got {item!r}")

    name = str(item.get("name") or "").strip()
    if not name:
        raise ConfigurationError("Index entry is missing 'name'")
    if "/" in name:
        raise ConfigurationError(f"Index name {name!r} must not contain '/'")

    root = item.get("root_path")
    if not root:
        raise ConfigurationError(f"Index {name!r} is missing 'root_path'")
    root_path = Path(str(root)).expanduser()
    if not root_path.is_absolute():
        root_path = base / root_path

    exclude = item.get("exclude") or []
    if isinstance(exclude, str):
        exclude = [exclude]

    try:
        refresh_interval = int(item.get("refresh_interval") or 0)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Index {name!r} has an invalid refresh_interval") from exc

    return IndexDefinition(
        name=name,
        root_path=root_path,
        exclude=tuple(str(pattern) for pattern in exclude),
        refresh_interval=max(refresh_interval, 0),
    )
