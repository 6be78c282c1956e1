"""ASGI application factory for Vellum.

The app is a thin JSON layer over the services: controllers receive a
request-scoped ``db_session`` from the advanced-alchemy plugin and the acting
user's id from the ``X-Actor-Id`` header.
"""

import logging
from typing import Any

from advanced_alchemy.config import EngineConfig
from advanced_alchemy.extensions.litestar import (
    AsyncSessionConfig,
    SQLAlchemyAsyncConfig,
    SQLAlchemyPlugin,
)
from litestar import Litestar
from litestar.di import Provide

from vellum.config import Settings, get_settings
from vellum.controllers.helpers import provide_actor_id
from vellum.controllers.pages import PageController
from vellum.controllers.projects import ProjectController
from vellum.controllers.public import PublicController
from vellum.controllers.versions import VersionController
from vellum.db.base import Base
from vellum.lib import observability
from vellum.lib.exceptions import EXCEPTION_HANDLERS

logger = logging.getLogger(__name__)

ROUTE_HANDLERS = [ProjectController, PageController, VersionController, PublicController]


def create_db_config(settings: Settings) -> SQLAlchemyAsyncConfig:
    """Build the advanced-alchemy config from the ``db`` settings section."""
    if "sqlite" in settings.db.url:
        engine_config = EngineConfig(echo=settings.db.echo)
    else:
        engine_kwargs: dict[str, Any] = dict(
            pool_size=settings.db.pool_size,
            max_overflow=settings.db.pool_overflow,
            pool_timeout=settings.db.pool_timeout,
            pool_pre_ping=settings.db.pool_pre_ping,
            echo=settings.db.echo,
        )
        engine_config = EngineConfig(**engine_kwargs)

    return SQLAlchemyAsyncConfig(
        connection_string=settings.db.url,
        metadata=Base.metadata,
        create_all=settings.db.create_all,
        session_config=AsyncSessionConfig(expire_on_commit=False),
        engine_config=engine_config,
    )


def create_app(settings: Settings | None = None) -> Litestar:
    """Create and configure the Litestar application."""
    settings = settings or get_settings()

    logging.getLogger("vellum").setLevel(settings.log_level.upper())
    observability.configure(settings)

    db_config = create_db_config(settings)

    async def on_startup(_app: Litestar) -> None:
        observability.instrument_sqlalchemy(db_config.get_engine())
        logger.info("Vellum started with database %s", db_config.get_engine().url.render_as_string())

    return Litestar(
        on_startup=[on_startup],
        route_handlers=ROUTE_HANDLERS,
        dependencies={"actor_id": Provide(provide_actor_id)},
        plugins=[SQLAlchemyPlugin(config=db_config)],
        exception_handlers=EXCEPTION_HANDLERS,
        debug=settings.debug,
    )


app = observability.instrument_app(create_app())
