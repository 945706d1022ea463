"""Async database wiring.

Builds the SQLAlchemy async engine and session factory from settings and
holds the declarative base every persistence model derives from.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from courier.core.config import Settings, get_settings
from courier.core.errors import InfrastructureError
from courier.core.logging import get_logger

logger = get_logger(__name__)

DB_INIT_ERROR_MSG = "Failed to initialize database schema"

Base = declarative_base()


def create_engine(settings: Settings | None = None, **engine_kwargs) -> AsyncEngine:
    """Create the async engine for ``settings.database_url``."""
    settings = settings or get_settings()
    engine = create_async_engine(
        settings.database_url, echo=settings.database_echo, **engine_kwargs
    )

    logger.info(
        "Database engine created",
        dialect=engine.dialect.name,
        echo=settings.database_echo,
    )
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """
    Create all tables registered on ``Base``.

    Raises:
        InfrastructureError: If the schema cannot be created
    """
    # Registers the notification tables on Base.metadata
    import courier.modules.notification.infrastructure.models  # noqa: F401

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except SQLAlchemyError as e:
        logger.exception("Database schema creation failed", error=str(e))
        raise InfrastructureError(DB_INIT_ERROR_MSG, cause=e) from e

    logger.info("Database schema ready", tables=sorted(Base.metadata.tables))


__all__ = ["Base", "create_engine", "create_session_factory", "init_models"]
