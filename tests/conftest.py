"""Pytest configuration and shared fixtures."""

from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace

import pytest
import yaml
from click.testing import CliRunner
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

MIGRATION_TEMPLATE = '''"""{description}"""

from sqlalchemy import text

DESCRIPTION = "{description}"


def upgrade(engine):
    {upgrade_body}
'''

REVERSIBLE_TEMPLATE = '''

def downgrade(engine):
    with engine.begin() as conn:
        conn.execute(text("DROP TABLE {table}"))
'''


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Provide a temporary data directory for tests."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Engine:
    """SQLite engine backed by a file in the temp directory."""
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def write_migration() -> Callable[..., Path]:
    """Factory writing a migration file that creates (and drops) a table."""

    def _write(
        directory: Path,
        version: str,
        slug: str,
        table: str | None = None,
        reversible: bool = True,
        fail: bool = False,
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        table = table or f"t_{slug}"
        if fail:
            upgrade_body = 'raise RuntimeError("boom")'
        else:
            upgrade_body = (
                "with engine.begin() as conn:\n"
                f'        conn.execute(text("CREATE TABLE {table} (id INTEGER PRIMARY KEY)"))'
            )
        source = MIGRATION_TEMPLATE.format(
            description=f"Create {table}", upgrade_body=upgrade_body
        )
        if reversible:
            source += REVERSIBLE_TEMPLATE.format(table=table)

        path = directory / f"{version}_{slug}.py"
        path.write_text(source)
        return path

    return _write


@pytest.fixture
def migrations_dir(tmp_path: Path, write_migration) -> Path:
    """Directory holding three reversible migrations."""
    directory = tmp_path / "migrations"
    write_migration(directory, "20240101000000", "users")
    write_migration(directory, "20240201000000", "posts")
    write_migration(directory, "20240301000000", "comments")
    return directory


@pytest.fixture
def config_file(tmp_path: Path, temp_data_dir: Path, migrations_dir: Path) -> Path:
    """Configuration file pointing at the temp data dir and migrations."""
    config = {
        "data_dir": str(temp_data_dir),
        "log_json": False,
        "log_level": "WARNING",
        "migrations": {
            "name": "Test Migrations",
            "directory": "migrations",
        },
    }
    path = tmp_path / "strata.yaml"
    with open(path, "w") as f:
        yaml.dump(config, f)
    return path


class RecordingMigration:
    """Migration implementation recording every call into a shared journal."""

    def __init__(
        self,
        name: str,
        journal: list[tuple[str, str]],
        reversible: bool = True,
        fail_on: str | None = None,
    ) -> None:
        self.name = name
        self.journal = journal
        self.description = f"Recording {name}"
        self.fail_on = fail_on
        if not reversible:
            self.downgrade = None

    def upgrade(self, engine) -> None:
        if self.fail_on == "up":
            raise RuntimeError(f"{self.name} failed")
        self.journal.append((self.name, "up"))

    def downgrade(self, engine) -> None:
        if self.fail_on == "down":
            raise RuntimeError(f"{self.name} failed")
        self.journal.append((self.name, "down"))


@pytest.fixture
def journal() -> list[tuple[str, str]]:
    """Shared list recording migration calls in order."""
    return []


@pytest.fixture
def noop_migration() -> SimpleNamespace:
    """Minimal migration implementation."""
    return SimpleNamespace(upgrade=lambda engine: None, DESCRIPTION="noop")


@pytest.fixture
def make_recording(journal) -> Callable[..., RecordingMigration]:
    """Factory for RecordingMigration instances sharing the journal fixture."""

    def _make(name: str, reversible: bool = True, fail_on: str | None = None):
        return RecordingMigration(name, journal, reversible=reversible, fail_on=fail_on)

    return _make
