"""Taskboard CLI — run the server and manage the database.

Usage:
    taskboard serve                  # Start the API with uvicorn
    taskboard serve --reload         # ...with auto-reload for development
    taskboard init-db                # Create missing tables
    taskboard check-config           # Validate settings and print a summary
"""

from __future__ import annotations

import asyncio

import click

from taskboard import __version__


@click.group()
@click.version_option(__version__, prog_name="taskboard")
def cli():
    """Taskboard backend management commands."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Start the HTTP API."""
    import uvicorn

    from taskboard.config import settings

    uvicorn.run(
        "taskboard.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("init-db")
@click.option(
    "--database-url",
    default=None,
    help="Override TASKBOARD_DATABASE_URL for this run",
)
def init_db(database_url: str | None):
    """Create any missing tables."""
    from taskboard.config import settings
    from taskboard.db.engine import build_engine, init_models

    url = database_url or settings.database_url

    async def _run():
        engine = build_engine(url)
        try:
            await init_models(engine)
        finally:
            await engine.dispose()

    asyncio.run(_run())
    click.secho(f"Tables ready ({engine_label(url)})", fg="green")


@cli.command("check-config")
def check_config():
    """Load settings (fails on an unsafe production config) and summarize."""
    from taskboard.config import settings

    click.echo(f"environment:      {settings.environment}")
    click.echo(f"database:         {engine_label(settings.database_url)}")
    click.echo(f"access token TTL: {settings.access_token_expire_minutes} min")
    click.echo(f"refresh token TTL:{settings.refresh_token_expire_days:>3} days")
    click.echo(f"secure cookies:   {settings.cookie_secure}")
    click.echo(f"cookie path:      {settings.cookie_path}")


def engine_label(url: str) -> str:
    """Database URL without credentials, safe to print."""
    scheme, _, rest = url.partition("://")
    host = rest.rsplit("@", 1)[-1]
    return f"{scheme}://{host}"


if __name__ == "__main__":
    cli()
