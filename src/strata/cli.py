"""Command-line interface for Strata."""

from pathlib import Path

import click

from strata import __version__
from strata.config import Config
from strata.errors import MigrationError
from strata.logging import get_logger, setup_logging
from strata.models import ZERO_VERSION, Direction, version_datetime

log = get_logger("cli")

DATA_LOSS_WARNING = (
    "WARNING! You are about to execute a database migration that could result "
    "in schema changes and data loss. Are you sure you wish to continue?"
)


@click.group()
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to configuration file.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Set logging level (overrides config).",
)
@click.option(
    "--log-json/--no-log-json",
    default=None,
    help="Output logs as JSON or human-readable format (overrides config).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: Path | None,
    log_level: str | None,
    log_json: bool | None,
) -> None:
    """Strata - database migration ledger.

    Tracks applied migrations and plans the steps between schema versions.
    """
    ctx.ensure_object(dict)

    # Load configuration
    config = Config.load_or_default(config_file)
    ctx.obj["config"] = config
    ctx.obj["config_file"] = config_file

    # Determine logging settings (CLI overrides config)
    effective_log_level = log_level or config.log_level
    effective_log_json = log_json if log_json is not None else config.log_json

    setup_logging(json_output=effective_log_json, level=effective_log_level)


@cli.command()
def version() -> None:
    """Print version information."""
    click.echo(f"strata {__version__}")


# =============================================================================
# Helpers
# =============================================================================


def format_version(version: str | None, missing: str = "") -> str:
    """Render a version for display, with its timestamp when it has one."""
    if version is None:
        return missing
    if version == ZERO_VERSION:
        return ZERO_VERSION
    stamp = version_datetime(version)
    return f"{stamp} ({version})" if stamp else version


def open_ledger(ctx: click.Context, dry_run: bool = False):
    """Build the ledger for the current configuration or exit with an error."""
    from strata.ledger import Ledger

    config = ctx.obj["config"]
    try:
        return Ledger.from_config(config, dry_run=dry_run)
    except (MigrationError, FileNotFoundError, ValueError) as e:
        log.error("ledger_load_failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)


def _echo_info(title: str, value: object) -> None:
    click.echo(f"    >> {title + ':':<40}{value}")


def _unresolved_alias_message(alias: str) -> str:
    if alias == "prev":
        return "Already at first version."
    if alias in ("next", "latest"):
        return "Already at latest version."
    if alias[:1] in ("+", "-"):
        return "The delta couldn't be reached."
    return f"Unknown version: {alias}"


# =============================================================================
# Database Commands
# =============================================================================


@cli.group()
def db() -> None:
    """Database migration commands."""
    pass


@db.command(name="status")
@click.option(
    "--show-versions",
    is_flag=True,
    default=False,
    help="List every available migration and whether it is applied.",
)
@click.pass_context
def db_status(ctx: click.Context, show_versions: bool) -> None:
    """Show database migration status."""
    ledger = open_ledger(ctx, dry_run=True)

    try:
        status = ledger.reporter.report()

        click.echo("\n == Configuration\n")
        _echo_info("Name", status.name or "Strata Migrations")
        _echo_info("Database", status.database)
        _echo_info("Version Table Name", status.table_name)
        _echo_info("Version Column Name", status.column_name)
        _echo_info("Migrations Package", status.package or "")
        _echo_info("Migrations Directory", status.directory or "")
        _echo_info(
            "Previous Version",
            format_version(status.previous_version, "Already at first version"),
        )
        _echo_info("Current Version", format_version(status.current_version))
        _echo_info(
            "Next Version",
            format_version(status.next_version, "Already at latest version"),
        )
        _echo_info("Latest Version", format_version(status.latest_version))
        _echo_info("Executed Migrations", status.executed_count)
        _echo_info("Executed Unavailable Migrations", len(status.executed_unavailable))
        _echo_info("Available Migrations", status.available_count)
        _echo_info("New Migrations", status.new_count)

        if not show_versions:
            return

        rows = ledger.reporter.versions()
        if rows:
            click.echo("\n == Available Migration Versions\n")
            for row in rows:
                state = "migrated" if row.migrated else "not migrated"
                line = f"    >> {format_version(row.version):<50}{state}"
                if row.description:
                    line += f"     {row.description}"
                click.echo(line)

        if status.executed_unavailable:
            click.echo("\n == Previously Executed Unavailable Migration Versions\n")
            for version in status.executed_unavailable:
                click.echo(f"    >> {format_version(version)}")
    finally:
        ledger.close()


@db.command(name="latest")
@click.pass_context
def db_latest(ctx: click.Context) -> None:
    """Print the latest available migration version."""
    ledger = open_ledger(ctx, dry_run=True)
    try:
        click.echo(format_version(ledger.registry.latest()))
    finally:
        ledger.close()


@db.command(name="migrate")
@click.argument("version", default="latest", required=False)
@click.option("--dry-run", is_flag=True, help="Show the plan without executing it.")
@click.option(
    "--allow-no-migration",
    is_flag=True,
    help="Do not fail when there are no migrations to execute.",
)
@click.option(
    "-n",
    "--no-interaction",
    is_flag=True,
    help="Do not ask for confirmation.",
)
@click.pass_context
def db_migrate(
    ctx: click.Context,
    version: str,
    dry_run: bool,
    allow_no_migration: bool,
    no_interaction: bool,
) -> None:
    """Migrate the database to VERSION.

    VERSION may be an exact version, first, prev, current, next, latest
    (the default), or a delta such as +2 or -1.
    """
    ledger = open_ledger(ctx, dry_run=dry_run)

    try:
        target = ledger.navigator.resolve_alias(version)
        if target is None:
            click.echo(_unresolved_alias_message(version), err=True)
            raise SystemExit(1)

        unavailable = ledger.reporter.executed_unavailable()
        if unavailable:
            click.echo(
                f"WARNING! You have {len(unavailable)} previously executed "
                "migrations in the database that are not registered migrations."
            )
            for unavailable_version in unavailable:
                click.echo(f"    >> {format_version(unavailable_version)}")
            if not no_interaction and not click.confirm(
                "Are you sure you wish to continue?", default=False
            ):
                click.echo("Migration cancelled!", err=True)
                raise SystemExit(1)

        if not dry_run and not no_interaction:
            if not click.confirm(DATA_LOSS_WARNING, default=False):
                click.echo("Migration cancelled!", err=True)
                raise SystemExit(1)

        before = ledger.navigator.current()
        executed = ledger.migrator.migrate(
            target, dry_run=dry_run, allow_empty=allow_no_migration
        )
    except MigrationError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    finally:
        ledger.close()

    if not executed:
        click.echo(f"Database already at version {before}")
    elif dry_run:
        click.echo(f"Would execute {len(executed)} migration(s): {', '.join(executed)}")
    else:
        click.echo(f"Migrated from version {before} to {target}")


@db.command(name="execute")
@click.argument("version")
@click.option(
    "--up/--down",
    "up",
    default=True,
    help="Run the migration up (default) or down.",
)
@click.option("--dry-run", is_flag=True, help="Show what would run without executing.")
@click.option(
    "-n",
    "--no-interaction",
    is_flag=True,
    help="Do not ask for confirmation.",
)
@click.pass_context
def db_execute(
    ctx: click.Context,
    version: str,
    up: bool,
    dry_run: bool,
    no_interaction: bool,
) -> None:
    """Execute a single migration VERSION up or down."""
    direction = Direction.UP if up else Direction.DOWN
    ledger = open_ledger(ctx, dry_run=dry_run)

    try:
        if not dry_run and not no_interaction:
            if not click.confirm(DATA_LOSS_WARNING, default=False):
                click.echo("Migration cancelled!", err=True)
                raise SystemExit(1)

        ledger.migrator.execute_version(version, direction, dry_run=dry_run)
    except MigrationError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    finally:
        ledger.close()

    verb = "Would execute" if dry_run else "Executed"
    click.echo(f"{verb} {version} {direction.value}")


@db.command(name="mark")
@click.argument("version", required=False)
@click.option("--add", is_flag=True, help="Mark the version as applied.")
@click.option("--delete", is_flag=True, help="Mark the version as not applied.")
@click.option("--all", "all_versions", is_flag=True, help="Apply to every version.")
@click.pass_context
def db_mark(
    ctx: click.Context,
    version: str | None,
    add: bool,
    delete: bool,
    all_versions: bool,
) -> None:
    """Add or delete versions in the version table without running them."""
    if add == delete:
        raise click.UsageError("Specify exactly one of --add or --delete.")
    if all_versions == (version is not None):
        raise click.UsageError("Specify either a VERSION or --all.")

    ledger = open_ledger(ctx)

    try:
        if all_versions:
            changed = ledger.migrator.mark_all(applied=add)
            click.echo(f"{'Added' if add else 'Deleted'} {len(changed)} version(s)")
        else:
            ledger.migrator.mark(version, applied=add)
            click.echo(f"{'Added' if add else 'Deleted'} version {version}")
    except MigrationError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    finally:
        ledger.close()


# =============================================================================
# Configuration Commands
# =============================================================================


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command(name="check")
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=True, path_type=Path),
    default="strata.yaml",
    help="Path to configuration file.",
)
def config_check(config_file: Path) -> None:
    """Validate configuration file."""
    try:
        cfg = Config.load(config_file)
        click.echo(f"Configuration valid: {config_file}")
        click.echo(f"  Data directory: {cfg.data_dir}")
        if cfg.database.url:
            click.echo("  Database URL: configured")
        else:
            click.echo(f"  Database path: {cfg.database_path}")
        click.echo(f"  Log level: {cfg.log_level}")
        click.echo(f"  Version table: {cfg.migrations.table_name}")

        if cfg.migrations.directory:
            click.echo(f"  Migrations directory: {cfg.migrations.directory}")
        else:
            click.echo("  Migrations directory: not configured")

        if cfg.migrations.declared:
            click.echo(f"  Declared migrations: {len(cfg.migrations.declared)}")

    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    except Exception as e:
        click.echo(f"Configuration error: {e}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
