"""Database connection and version table definition for Strata.

Uses SQLAlchemy Core (not ORM) for explicit SQL control. Strata owns a
single table: the applied-version ledger, whose table and column names
come from configuration.
"""

from sqlalchemy import Column, DateTime, MetaData, String, Table, create_engine, event
from sqlalchemy.engine import Engine, make_url

from strata.config import Config

DEFAULT_TABLE_NAME = "strata_migration_versions"
DEFAULT_COLUMN_NAME = "version"


def version_table(
    metadata: MetaData,
    table_name: str = DEFAULT_TABLE_NAME,
    column_name: str = DEFAULT_COLUMN_NAME,
) -> Table:
    """Define the applied-version table.

    Args:
        metadata: Metadata the table is attached to.
        table_name: Name of the ledger table.
        column_name: Name of the version column.

    Returns:
        Table with the version column as primary key and an executed_at stamp.
    """
    return Table(
        table_name,
        metadata,
        Column(column_name, String(255), primary_key=True),
        Column("executed_at", DateTime, nullable=False),
    )


def database_url(config: Config) -> str:
    """Resolve the SQLAlchemy URL for a configuration."""
    if config.database.url:
        return config.database.url
    return f"sqlite:///{config.database_path}"


def display_url(config: Config) -> str:
    """Database URL safe for printing (password hidden)."""
    return make_url(database_url(config)).render_as_string(hide_password=True)


def get_engine(config: Config) -> Engine:
    """Create SQLAlchemy engine from config.

    Args:
        config: Application configuration.

    Returns:
        SQLAlchemy Engine instance.
    """
    url = make_url(database_url(config))

    if url.get_backend_name() == "sqlite" and not config.database.url:
        # Ensure data directory exists
        config.database_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=config.log_level == "DEBUG")

    if url.get_backend_name() == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
