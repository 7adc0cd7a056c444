from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from workorder_access.db import filters as _filters  # noqa: F401  (register SQLAlchemy row scoping)
from workorder_access.db.init_db import init_db
from workorder_access.db.session import build_engine, build_session_factory
from workorder_access.identity.tokens import TokenConfig, TokenVerifier
from workorder_access.logging_config import configure_app_logging
from workorder_access.permissions.loader import PolicyConfigLoader
from workorder_access.routers import auth, permissions, work_orders
from workorder_access.security.events import LoggingSecurityEventSink, SecurityEventSink
from workorder_access.security.responses import register_rejection_handlers
from workorder_access.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, events: SecurityEventSink | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings or get_settings()
        configure_app_logging(resolved.log_level)
        logger.info("App startup beginning environment=%s", resolved.environment)

        # A bad permission source raises ConfigError here and aborts startup.
        loader = PolicyConfigLoader(resolved.resolved_permissions_path())
        config = loader.load()

        engine = build_engine(resolved.resolved_db_url())
        session_factory = build_session_factory(engine)
        init_db(engine, session_factory, config, seed_demo=not resolved.is_production)
        logger.info("Database initialized (tables ensured, roles synced)")

        app.state.settings = resolved
        app.state.permissions_loader = loader
        app.state.session_factory = session_factory
        app.state.token_verifier = TokenVerifier(TokenConfig.from_settings(resolved))
        app.state.security_events = events or LoggingSecurityEventSink()

        if resolved.dev_auth_allowed:
            logger.warning("Internal-test authentication is ENABLED (environment=%s)", resolved.environment)

        yield

        engine.dispose()

    app = FastAPI(title="workorder-access", lifespan=lifespan)
    register_rejection_handlers(app)

    app.include_router(auth.router)
    app.include_router(permissions.router)
    app.include_router(work_orders.router)

    return app


app = create_app()
