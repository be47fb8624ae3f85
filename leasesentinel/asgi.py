"""ASGI application factory for LeaseSentinel.

The app only exposes the cron trigger; the daily sweep itself lives in
``leasesentinel.lib.sweep`` and can also be run from the CLI.
"""

import logging
from functools import partial
from typing import Any

from advanced_alchemy.extensions.litestar import SQLAlchemyPlugin
from litestar import Litestar
from litestar.exceptions import HTTPException

from leasesentinel.config import Settings, get_settings
from leasesentinel.controllers.cron import CronController, FailedAuthLimiter
from leasesentinel.db.session import create_db_config
from leasesentinel.lib import observability
from leasesentinel.lib.exceptions import (
    SweepError,
    http_exception_handler,
    internal_server_error_handler,
    sweep_error_handler,
)
from leasesentinel.lib.sweep import run_daily_sweep

logger = logging.getLogger(__name__)

EXCEPTION_HANDLERS: dict[type[Exception], Any] = {
    HTTPException: http_exception_handler,
    SweepError: sweep_error_handler,
    Exception: internal_server_error_handler,
}


def create_app(settings: Settings | None = None) -> Litestar:
    """Create the Litestar application."""
    settings = settings or get_settings()

    observability.configure(settings)
    observability.instrument_httpx()

    db_config = create_db_config(settings)
    observability.instrument_sqlalchemy(db_config.get_engine())
    session_maker = db_config.get_session

    if not settings.cron_secret:
        logger.warning("CRON_SECRET is not set; the cron trigger will answer 404")

    app = Litestar(
        route_handlers=[CronController],
        plugins=[SQLAlchemyPlugin(config=db_config)],
        exception_handlers=EXCEPTION_HANDLERS,
        debug=settings.debug,
    )
    app.state.cron_secret = settings.cron_secret
    app.state.failed_auth_limiter = FailedAuthLimiter(
        max_failures=settings.cron.max_failed_auth,
        window=settings.cron.failed_auth_window,
    )
    app.state.sweep = partial(run_daily_sweep, session_maker, settings)

    return observability.instrument_app(app)


app = create_app()
