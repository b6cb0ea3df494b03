"""CLI entry point for the musicreg server."""

from __future__ import annotations

import sys

import click

from musicreg import __version__
from musicreg.config import Settings
from musicreg.logging import setup_logging


def _load_settings() -> Settings:
    try:
        settings = Settings.from_env()
        settings.validate()
    except ValueError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    return settings


@click.group()
@click.version_option(__version__)
def main() -> None:
    """musicreg - registration and scheduling for a music-lesson program."""
    pass


@main.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option("--port", default=8000, type=int, show_default=True, help="Port to listen on")
@click.option("--log-level", default=None, help="Override MUSICREG_LOG_LEVEL")
def serve(host: str, port: int, log_level: str | None) -> None:
    """Run the REST API with uvicorn."""
    import uvicorn  # noqa: PLC0415

    from musicreg.api import create_app  # noqa: PLC0415

    settings = _load_settings()
    setup_logging(level=log_level)
    click.echo(f"Starting musicreg {__version__} ({settings.store_backend} store) on {host}:{port}")
    uvicorn.run(create_app(settings), host=host, port=port, log_level=(log_level or "info").lower())


@main.command("check-config")
def check_config() -> None:
    """Validate MUSICREG_* settings and show the resolved values."""
    settings = _load_settings()
    click.echo("Configuration OK")
    click.echo(f"  Environment: {settings.environment}")
    click.echo(f"  Store: {settings.store_backend}")
    if settings.store_backend == "sql":
        click.echo(f"  Database: {settings.db_path}")
    else:
        click.echo(f"  Spreadsheet: {settings.spreadsheet_id}")
        click.echo(f"  Cache TTL: {settings.cache_ttl_seconds}s")
    click.echo(f"  Waitlist classes: {', '.join(sorted(settings.waitlist_class_ids)) or 'none'}")
    click.echo(f"  Cancellation fee: {settings.cancellation_fee}")


@main.command()
def period() -> None:
    """Show the current enrollment period."""
    from musicreg.services import PeriodService  # noqa: PLC0415
    from musicreg.store import create_store  # noqa: PLC0415

    settings = _load_settings()
    store = create_store(settings)
    try:
        context = PeriodService(store).resolve_context()
    finally:
        store.close()

    if context.current is None:
        click.echo("No active period found", err=True)
        sys.exit(1)
    click.echo(f"Current: {context.current.trimester} {context.current.period_type}")
    if context.next is not None:
        click.echo(f"Next:    {context.next.trimester} {context.next.period_type}")
    click.echo(f"Visible trimesters: {', '.join(t.value for t in context.available_trimesters)}")


if __name__ == "__main__":
    main()
