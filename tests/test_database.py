"""Tests for database engine creation and the version table definition."""

from pathlib import Path

from sqlalchemy import MetaData, text

from strata.config import Config, DatabaseConfig
from strata.database import (
    DEFAULT_COLUMN_NAME,
    DEFAULT_TABLE_NAME,
    database_url,
    display_url,
    get_engine,
    version_table,
)


class TestVersionTable:
    """Tests for the version table definition."""

    def test_default_names(self) -> None:
        table = version_table(MetaData())

        assert table.name == DEFAULT_TABLE_NAME
        assert [c.name for c in table.primary_key.columns] == [DEFAULT_COLUMN_NAME]
        assert "executed_at" in table.c

    def test_custom_names(self) -> None:
        table = version_table(MetaData(), "history", "ident")

        assert table.name == "history"
        assert "ident" in table.c


class TestUrls:
    """Tests for resolving and displaying database URLs."""

    def test_sqlite_path_in_data_dir(self, tmp_path: Path) -> None:
        config = Config(data_dir=tmp_path, database=DatabaseConfig(path="app.db"))

        assert database_url(config) == f"sqlite:///{tmp_path / 'app.db'}"

    def test_url_takes_precedence(self) -> None:
        config = Config(database=DatabaseConfig(url="postgresql://u:pw@db/app"))

        assert database_url(config) == "postgresql://u:pw@db/app"

    def test_display_hides_password(self) -> None:
        config = Config(database=DatabaseConfig(url="postgresql://u:secret@db/app"))

        shown = display_url(config)

        assert "secret" not in shown
        assert shown.startswith("postgresql://u:")


class TestGetEngine:
    """Tests for engine creation."""

    def test_creates_data_dir(self, tmp_path: Path) -> None:
        config = Config(data_dir=tmp_path / "nested" / "data")

        engine = get_engine(config)
        try:
            with engine.connect() as conn:
                assert conn.execute(text("SELECT 1")).scalar() == 1
        finally:
            engine.dispose()

        assert config.database_path.exists()

    def test_sqlite_foreign_keys_enabled(self, tmp_path: Path) -> None:
        engine = get_engine(Config(data_dir=tmp_path))
        try:
            with engine.connect() as conn:
                assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
        finally:
            engine.dispose()
