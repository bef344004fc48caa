"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from taskweave import __version__
from taskweave.api.routes import dependencies, projects, tasks, workflows
from taskweave.engine import Engine, build_engine

log = structlog.get_logger()


def create_app(engine: Engine | None = None) -> FastAPI:
    """Build the HTTP app.

    With no ``engine`` the app opens the configured database on startup and
    serves a SQL-backed engine; tests pass an in-memory one.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if engine is not None:
            app.state.engine = engine
            app.state.uses_database = False
            yield
            return

        from taskweave.db import async_session_factory, close_db
        from taskweave.store.sql import SqlTaskStore

        app.state.engine = build_engine(SqlTaskStore(async_session_factory()))
        app.state.uses_database = True
        log.info("Engine ready", store="sql")
        try:
            yield
        finally:
            await close_db()

    app = FastAPI(title="Taskweave", version=__version__, lifespan=lifespan)
    if engine is not None:
        app.state.engine = engine
        app.state.uses_database = False

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        if getattr(app.state, "uses_database", False):
            from taskweave.db import check_database_health

            if not await check_database_health():
                return {"status": "degraded", "database": "unreachable"}
        return {"status": "healthy"}

    app.include_router(dependencies.router)
    app.include_router(tasks.router)
    app.include_router(projects.router)
    app.include_router(workflows.router)
    return app
