from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from sqlalchemy import Engine

from saddle_authz.db import session as db_session
from saddle_authz.db.filters import protected_tables
from saddle_authz.db.init_db import init_db
from saddle_authz.logging_config import configure_app_logging
from saddle_authz.routers import admin, customers, health, logs, me, orders
from saddle_authz.security.dependencies import register_exception_handlers
from saddle_authz.security.evaluator import PolicyEvaluator
from saddle_authz.security.hierarchy import load_role_hierarchy
from saddle_authz.security.indexes import missing_scope_indexes
from saddle_authz.settings import Settings, get_settings
from saddle_authz.token_util import TokenConfig, TokenValidator

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, engine: Engine | None = None) -> FastAPI:
    settings = settings or get_settings()
    engine = engine or db_session.engine
    session_factory = db_session.SessionLocal if engine is db_session.engine else db_session.make_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        hierarchy_path = settings.resolved_role_hierarchy_path()
        app.state.evaluator = PolicyEvaluator(load_role_hierarchy(hierarchy_path))

        if settings.jwt_secret:
            app.state.token_validator = TokenValidator(TokenConfig.from_settings(settings))
        else:
            logger.warning("SADDLE_JWT_SECRET is not set; authenticated routes cannot verify tokens")

        init_db(engine, session_factory)
        logger.info("Database initialized (tables ensured + seed if needed)")
        missing_scope_indexes(engine, protected_tables())

        yield
        # Shutdown (nothing to clean up)

    app = FastAPI(lifespan=lifespan)
    app.state.session_factory = session_factory
    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(me.router)
    app.include_router(customers.router)
    app.include_router(orders.router)
    app.include_router(logs.router)
    app.include_router(admin.router)

    return app


app = create_app()
