"""CLI commands for Vellum."""

import asyncio
import json
import sys
from pathlib import Path

import click

from vellum.lib.semver import BUMPS

PACKAGE_DIR = Path(__file__).parent


@click.group()
@click.version_option(package_name="vellum")
def cli():
    """Vellum - page trees, version snapshots and diffs for documentation projects."""
    pass


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8080, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--workers", default=1, type=int, help="Number of worker processes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
)
def serve(host, port, reload, workers, log_level):
    """Run the Vellum API server."""
    import signal

    from hypercorn.asyncio import serve as hypercorn_serve
    from hypercorn.config import Config

    config = Config()
    config.application_path = "vellum.asgi:app"
    config.bind = [f"{host}:{port}"]
    config.workers = 1 if reload else workers
    config.loglevel = log_level.upper()
    config.include_server_header = False

    if reload:
        config.use_reloader = True
        from hypercorn.run import run
        run(config)
        return

    from vellum.asgi import app

    shutdown_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    loop.add_signal_handler(signal.SIGINT, shutdown_event.set)
    loop.add_signal_handler(signal.SIGTERM, shutdown_event.set)
    try:
        loop.run_until_complete(
            hypercorn_serve(app, config, shutdown_trigger=shutdown_event.wait)
        )
    finally:
        loop.close()


def _run_alembic(project_root: Path, args: list[str]) -> None:
    """Build an Alembic Config programmatically and run the given command."""
    from alembic.config import CommandLine, Config

    alembic_ini = project_root / "alembic.ini"
    if not alembic_ini.exists():
        alembic_ini = PACKAGE_DIR / "alembic.ini"
        if not alembic_ini.exists():
            click.echo("Error: Could not find alembic.ini", err=True)
            sys.exit(1)

    cfg = Config(str(alembic_ini))
    cfg.set_main_option("script_location", str(PACKAGE_DIR / "alembic"))
    cfg.set_main_option("version_locations", str(PACKAGE_DIR / "alembic" / "versions"))

    # Parse and run through CommandLine for proper subcommand dispatch
    cmd = CommandLine()
    options = cmd.parser.parse_args(args)
    if not hasattr(options, "cmd"):
        cmd.parser.error("too few arguments")
    else:
        cfg.cmd_opts = options
        fn, positional, kwarg = options.cmd
        fn(
            cfg,
            *[getattr(options, k, None) for k in positional],
            **{k: getattr(options, k, None) for k in kwarg},
        )


@cli.command(
    context_settings=dict(
        ignore_unknown_options=True,
        allow_extra_args=True,
    )
)
@click.pass_context
def db(ctx):
    """Run database migrations via Alembic.

    \b
    Examples:
        vellum db upgrade head     # Apply all migrations
        vellum db downgrade -1     # Rollback one migration
        vellum db current          # Show current revision
        vellum db history          # Show migration history
    """
    args = ctx.args
    if not args:
        click.echo(ctx.get_help())
        return

    _run_alembic(Path.cwd(), args)


async def _with_session(operation):
    """Open a session on the configured database, run ``operation`` and dispose the engine."""
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from vellum.config import get_settings

    engine = create_async_engine(get_settings().db.url)
    try:
        async with async_sessionmaker(engine, expire_on_commit=False)() as session:
            return await operation(session)
    finally:
        await engine.dispose()


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


@cli.group()
def versions():
    """Inspect project versions."""
    pass


@versions.command("suggest")
@click.argument("project_id", type=click.UUID)
@click.option("--bump", type=click.Choice(BUMPS), default=None, help="Component to bump (default from config)")
def suggest(project_id, bump):
    """Print the version number that should follow a project's latest version."""
    from vellum.db.services import version_service

    async def _suggest(session):
        return await version_service.suggest_next_version(session, project_id, bump)

    click.echo(asyncio.run(_with_session(_suggest)))


@versions.command("compare")
@click.argument("version_a", type=click.UUID)
@click.argument("version_b", type=click.UUID)
def compare(version_a, version_b):
    """Print the pages added, removed and modified between two versions as JSON."""
    from vellum.controllers.helpers import serialize_comparison
    from vellum.db.services import version_service
    from vellum.lib.errors import VellumError

    async def _compare(session):
        return serialize_comparison(await version_service.compare_versions(session, version_a, version_b))

    try:
        _echo_json(asyncio.run(_with_session(_compare)))
    except VellumError as exc:
        raise click.ClickException(exc.message) from exc
