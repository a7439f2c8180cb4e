"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Everything a request needs that isn't per-request (settings,
the token issuer, the database engine and its session factory) is built
here once and stored on app.state, where the dependencies in auth/,
db/engine.py and api/deps.py pick it up. Lifespan manages
startup/shutdown (database engine).
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from marketplace import __version__
from marketplace.api import build_api_router
from marketplace.api.errors import register_exception_handlers
from marketplace.api.health import router as health_router
from marketplace.auth.tokens import TokenIssuer
from marketplace.config import Settings, settings as default_settings
from marketplace.db.engine import build_engine, build_session_factory
from marketplace.middleware.request_id import RequestIdMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs
    at shutdown.
    """
    config: Settings = app.state.settings
    logger.info(
        "marketplace.starting",
        version=__version__,
        environment=config.environment,
        port=config.port,
    )

    yield

    logger.info("marketplace.shutdown")

    # Close database engine
    await app.state.engine.dispose()


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    config = config or default_settings

    app = FastAPI(
        title="AI Assistant Marketplace",
        description="Marketplace API — accounts, assistant catalog, orders and reviews",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.token_issuer = TokenIssuer.from_settings(config)
    app.state.engine = build_engine(config)
    app.state.session_factory = build_session_factory(app.state.engine)

    app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(app, config)

    # Health lives at the root so probes don't depend on the API prefix
    app.include_router(health_router, tags=["health"])
    app.include_router(build_api_router(config.api_prefix))

    return app


# Default app instance (used by uvicorn: marketplace.main:app)
app = create_app()
