"""Async SQLAlchemy configuration shared by the web app and the CLI."""

from advanced_alchemy.config import EngineConfig
from advanced_alchemy.extensions.litestar import AsyncSessionConfig, SQLAlchemyAsyncConfig

from leasesentinel.config import Settings
from leasesentinel.db.base import Base


def create_db_config(settings: Settings) -> SQLAlchemyAsyncConfig:
    """Build the async SQLAlchemy config from the ``db`` settings section.

    SQLite ignores pool sizing, so those options are only passed for
    server databases.
    """
    if "sqlite" in settings.db.url:
        engine_config = EngineConfig(echo=settings.db.echo)
    else:
        engine_config = EngineConfig(
            pool_size=settings.db.pool_size,
            max_overflow=settings.db.pool_overflow,
            pool_timeout=settings.db.pool_timeout,
            pool_pre_ping=True,
            echo=settings.db.echo,
        )

    return SQLAlchemyAsyncConfig(
        connection_string=settings.db.url,
        metadata=Base.metadata,
        create_all=False,
        session_config=AsyncSessionConfig(expire_on_commit=False),
        engine_config=engine_config,
    )


__all__ = ["create_db_config"]
