"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from findex.config import DEFAULT_DB_PATH, AppConfig, IndexDefinition, load_config, parse_config
from findex.errors import ConfigurationError


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    """Tests for load_config."""

    def test_loads_indexes_and_server(self, tmp_path: Path) -> None:
        """Reads indexes, db_path and server settings."""
        config_file = _write(
            tmp_path / "findex.yaml",
            """
db_path: index.db
server:
  host: 0.0.0.0
  port: 9000
indexes:
  - name: docs
    root_path: /srv/docs
    exclude:
      - "*.tmp"
      - cache/
    refresh_interval: 3600
  - name: media
    root_path: media
""",
        )
        config = load_config(config_file)

        assert config.db_path == tmp_path / "index.db"
        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.index_names == ["docs", "media"]

        docs = config.get_index("docs")
        assert docs is not None
        assert docs.root_path == Path("/srv/docs")
        assert docs.exclude == ("*.tmp", "cache/")
        assert docs.refresh_interval == 3600

    def test_relative_root_resolves_against_config_dir(self, tmp_path: Path) -> None:
        """Relative root paths are anchored at the config file."""
        config_file = _write(
            tmp_path / "findex.yaml",
            "indexes:\n  - name: media\n    root_path: media\n",
        )
        config = load_config(config_file)
        assert config.get_index("media").root_path == tmp_path / "media"

    def test_defaults(self, tmp_path: Path) -> None:
        """An empty file yields the default configuration."""
        config = load_config(_write(tmp_path / "findex.yaml", ""))
        assert config.indexes == ()
        assert config.db_path == tmp_path / DEFAULT_DB_PATH
        assert config.host == "127.0.0.1"
        assert config.port == 8080

    def test_exclude_accepts_single_string(self, tmp_path: Path) -> None:
        config_file = _write(
            tmp_path / "findex.yaml",
            "indexes:\n  - name: a\n    root_path: /a\n    exclude: '*.log'\n",
        )
        assert load_config(config_file).indexes[0].exclude == ("*.log",)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Raises ConfigurationError when the file does not exist."""
        with pytest.raises(ConfigurationError, match="Unable to read config"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(_write(tmp_path / "findex.yaml", "indexes: [unclosed\n"))

    def test_non_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            load_config(_write(tmp_path / "findex.yaml", "- just\n- a list\n"))


class TestParseConfig:
    """Validation errors raised by parse_config."""

    def test_duplicate_names(self, tmp_path: Path) -> None:
        raw = {
            "indexes": [
                {"name": "docs", "root_path": "/a"},
                {"name": "docs", "root_path": "/b"},
            ]
        }
        with pytest.raises(ConfigurationError, match="Duplicate index names: docs"):
            parse_config(raw, base_dir=tmp_path)

    def test_missing_name(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="missing 'name'"):
            parse_config({"indexes": [{"root_path": "/a"}]}, base_dir=tmp_path)

    def test_name_with_slash(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="must not contain"):
            parse_config({"indexes": [{"name": "a/b", "root_path": "/a"}]}, base_dir=tmp_path)

    def test_missing_root_path(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="missing 'root_path'"):
            parse_config({"indexes": [{"name": "docs"}]}, base_dir=tmp_path)

    def test_index_must_be_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            parse_config({"indexes": ["docs"]}, base_dir=tmp_path)

    def test_invalid_refresh_interval(self, tmp_path: Path) -> None:
        raw = {"indexes": [{"name": "docs", "root_path": "/a", "refresh_interval": "soon"}]}
        with pytest.raises(ConfigurationError, match="refresh_interval"):
            parse_config(raw, base_dir=tmp_path)

    def test_negative_refresh_interval_is_zero(self, tmp_path: Path) -> None:
        raw = {"indexes": [{"name": "docs", "root_path": "/a", "refresh_interval": -5}]}
        assert parse_config(raw, base_dir=tmp_path).indexes[0].refresh_interval == 0

    def test_invalid_port(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Invalid server port"):
            parse_config({"server": {"port": "http"}}, base_dir=tmp_path)

    def test_server_must_be_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="'server' must be a mapping"):
            parse_config({"server": "localhost"}, base_dir=tmp_path)

    def test_absolute_db_path_kept(self, tmp_path: Path) -> None:
        db_path = tmp_path / "elsewhere" / "x.db"
        config = parse_config({"db_path": str(db_path)}, base_dir=Path("/unused"))
        assert config.db_path == db_path


class TestAppConfig:
    """Tests for AppConfig helpers."""

    def test_get_index_unknown(self) -> None:
        config = AppConfig(indexes=(IndexDefinition("docs", Path("/a")),))
        assert config.get_index("docs").name == "docs"
        assert config.get_index("media") is None

    def test_resolve_db_path(self, tmp_path: Path) -> None:
        config = AppConfig(db_path=Path("data/x.db"))
        assert config.resolve_db_path(tmp_path) == tmp_path / "data" / "x.db"
        assert config.resolve_db_path() == Path("data/x.db")

    def test_resolve_absolute_db_path(self, tmp_path: Path) -> None:
        config = AppConfig(db_path=tmp_path / "x.db")
        assert config.resolve_db_path(Path("/other")) == tmp_path / "x.db"
