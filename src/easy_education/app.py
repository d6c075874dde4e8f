"""Litestar application factory."""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from pathlib import Path

import structlog
from advanced_alchemy.config.asyncio import AsyncSessionConfig
from litestar import Litestar
from litestar.config.csrf import CSRFConfig
from litestar.contrib.jinja import JinjaTemplateEngine
from litestar.contrib.sqlalchemy.plugins import SQLAlchemyAsyncConfig, SQLAlchemyPlugin
from litestar.middleware.session.server_side import ServerSideSessionConfig
from litestar.openapi import OpenAPIConfig
from litestar.stores.memory import MemoryStore
from litestar.template.config import TemplateConfig
from sqlalchemy.ext.asyncio import AsyncEngine

from easy_education import __version__
from easy_education.admin import admin_router
from easy_education.api import api_routers
from easy_education.core.config import settings
from easy_education.core.database import close_database, engine, init_database
from easy_education.core.firebase import init_firebase
from easy_education.services.dispatcher import NotificationDispatcher, set_dispatcher
from easy_education.web import web_routes

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def make_lifespan(
    db_engine: AsyncEngine,
) -> Callable[[Litestar], AbstractAsyncContextManager[None]]:
    """Build the application lifespan for a database engine."""

    @asynccontextmanager
    async def lifespan(app: Litestar) -> AsyncIterator[None]:
        """Application lifespan manager.

        Handles startup and shutdown tasks:
        - Check database migrations on startup
        - Initialize Firebase (login and push)
        - Start and stop the notification dispatcher
        - Close database connections on shutdown
        """
        logger.info("Starting easy-education", version=__version__)

        await init_database(db_engine)
        init_firebase()

        dispatcher = NotificationDispatcher()
        set_dispatcher(dispatcher)
        dispatcher.start()

        try:
            yield
        finally:
            dispatcher.stop()
            set_dispatcher(None)
            await close_database(db_engine)
            logger.info("Shutdown complete")

    return lifespan


def create_app(engine_instance: AsyncEngine | None = None) -> Litestar:
    """Create Litestar application.

    Args:
        engine_instance: Database engine (defaults to the configured one)

    Returns:
        Configured Litestar app instance
    """
    db_engine = engine_instance or engine
    templates_dir = Path(__file__).parent / "templates"

    # Session store for sign-in and header UI state
    # In production with multiple instances, use Redis instead
    session_store = MemoryStore()

    # Note: We don't set secure=True because the reverse proxy terminates SSL
    # and forwards HTTP internally.
    session_config = ServerSideSessionConfig(
        key=settings.get_session_secret(),
        store="session_store",
        max_age=7 * 86400,  # 7 days
        httponly=True,
        samesite="lax",
    )

    # HTMX sends the token from the csrf_token cookie in X-CSRF-Token
    csrf_config = CSRFConfig(
        secret=settings.get_session_secret(),
        cookie_name="csrf_token",
        header_name="X-CSRF-Token",
        cookie_httponly=False,  # JS needs to read this cookie to send in header
        exclude=[
            # Entry point (no session yet); the ID token is the credential
            "/auth/session",
            # JSON API: gateway callbacks, internal calls and fetch() from pages
            "/api/",
            "/health",
        ],
    )

    return Litestar(
        route_handlers=[*web_routes, *api_routers, admin_router],
        lifespan=[make_lifespan(db_engine)],
        openapi_config=OpenAPIConfig(
            title="easy-education API",
            version=__version__,
            description="Online course platform",
        ),
        template_config=TemplateConfig(
            directory=templates_dir,
            engine=JinjaTemplateEngine,
        ),
        plugins=[
            SQLAlchemyPlugin(
                config=SQLAlchemyAsyncConfig(
                    engine_instance=db_engine,
                    session_dependency_key="session",
                    session_config=AsyncSessionConfig(expire_on_commit=False),
                ),
            ),
        ],
        middleware=[session_config.middleware],
        csrf_config=csrf_config,
        stores={"session_store": session_store},
        debug=settings.log_level == "DEBUG",
    )


# Application instance
app = create_app()
