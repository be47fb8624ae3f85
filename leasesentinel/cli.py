"""CLI commands for LeaseSentinel."""

import json
import re
import secrets
import sys
from pathlib import Path

import click


@click.group()
@click.version_option(package_name="leasesentinel")
def cli():
    """LeaseSentinel - deadline tracking with a daily notification sweep."""
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
    """Run the HTTP server exposing the cron trigger."""
    import asyncio
    import signal

    from hypercorn.asyncio import serve as hypercorn_serve
    from hypercorn.config import Config

    config = Config()
    config.application_path = "leasesentinel.asgi:app"
    config.bind = [f"{host}:{port}"]
    config.workers = 1 if reload else workers
    config.loglevel = log_level.upper()
    config.include_server_header = False

    if reload:
        config.use_reloader = True
        from hypercorn.run import run
        run(config)
        return

    from leasesentinel.asgi import app

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


@cli.command()
@click.option(
    "--date",
    "on",
    default=None,
    help="Sweep as if today were this UTC date (YYYY-MM-DD)",
)
@click.option(
    "--catch-up-days",
    default=None,
    type=click.IntRange(min=0),
    help="Also retry records still pending from this many previous days",
)
def sweep(on, catch_up_days):
    """Run one dispatch sweep against the configured database."""
    import asyncio
    import logging

    from leasesentinel.config import get_settings
    from leasesentinel.db.session import create_db_config
    from leasesentinel.lib.dates import parse_date
    from leasesentinel.lib.exceptions import SweepError
    from leasesentinel.lib.sweep import run_daily_sweep

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        today = parse_date(on) if on else None
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--date") from None

    settings = get_settings()
    if catch_up_days is not None:
        settings = settings.model_copy(
            update={"sweep": settings.sweep.model_copy(update={"catch_up_days": catch_up_days})}
        )

    db_config = create_db_config(settings)

    async def _run():
        try:
            return await run_daily_sweep(db_config.get_session, settings, today=today)
        finally:
            await db_config.get_engine().dispose()

    try:
        result = asyncio.run(_run())
    except SweepError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo(json.dumps(result.to_dict()))


@cli.command()
@click.argument("owner")
@click.option(
    "--days",
    default=None,
    type=click.IntRange(min=0),
    help="Notice window in days (defaults to sweep.notice_window_days)",
)
@click.option("--date", "on", default=None, help="Reference UTC date (YYYY-MM-DD)")
def upcoming(owner, days, on):
    """List OWNER's pending sentinels due within the notice window."""
    import asyncio

    from leasesentinel.config import get_settings
    from leasesentinel.db.services.sentinel_service import list_upcoming
    from leasesentinel.db.session import create_db_config
    from leasesentinel.lib.dates import parse_date

    try:
        today = parse_date(on) if on else None
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--date") from None

    settings = get_settings()
    window = settings.sweep.notice_window_days if days is None else days
    db_config = create_db_config(settings)

    async def _run():
        try:
            async with db_config.get_session() as session:
                return await list_upcoming(session, owner, window, today=today)
        finally:
            await db_config.get_engine().dispose()

    for sentinel in asyncio.run(_run()):
        click.echo(
            json.dumps(
                {
                    "id": str(sentinel.id),
                    "event": sentinel.event_name,
                    "date": sentinel.trigger_date.isoformat(),
                    "method": sentinel.notification_method,
                }
            )
        )


@cli.command()
@click.option(
    "--write",
    type=click.Path(),
    default=None,
    help="Write CRON_SECRET to a .env file",
)
@click.option("--length", default=32, type=int, help="Number of random bytes")
def secret(write, length):
    """Generate a bearer secret for the cron trigger."""
    key = secrets.token_urlsafe(length)

    if not write:
        click.echo(key)
        return

    env_path = Path(write)
    env_content = env_path.read_text() if env_path.exists() else ""

    pattern = re.compile(r"^CRON_SECRET=.*$", re.MULTILINE)
    new_line = f"CRON_SECRET={key}"

    if pattern.search(env_content):
        env_content = pattern.sub(new_line, env_content)
    else:
        if env_content and not env_content.endswith("\n"):
            env_content += "\n"
        env_content += new_line + "\n"

    env_path.write_text(env_content)
    click.echo(f"CRON_SECRET written to {env_path}")


def _run_alembic(args: list[str]) -> None:
    """Build an Alembic Config programmatically and run the given command."""
    from alembic.config import CommandLine, Config

    package_dir = Path(__file__).parent
    alembic_ini = Path.cwd() / "alembic.ini"
    if not alembic_ini.exists():
        alembic_ini = package_dir / "alembic.ini"

    cfg = Config(str(alembic_ini))
    cfg.set_main_option("script_location", str(package_dir / "alembic"))

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
        leasesentinel db upgrade head     # Create or update the tables
        leasesentinel db downgrade -1     # Roll back one migration
        leasesentinel db current          # Show current revision
    """
    if not ctx.args:
        click.echo(ctx.get_help())
        return

    _run_alembic(ctx.args)


if __name__ == "__main__":
    cli()
