"""
Main FastAPI application (entrypoint).

Responsibilities:
- Wire the /accounts router
- Register centralized exception handlers
- Provide request-id logging middleware
- Add health endpoint
- Build services on startup (DB engine, document store, smart notifications
  client) and close them on shutdown
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import uvicorn

from api import routes_accounts
from config.settings import Settings, settings as default_settings
from core.exception_handlers import register_exception_handlers
from core.logging import configure_logging, request_logging_middleware
from core.response import ok
from core.services import Services, build_services

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the application. When `services` is given (tests) it is attached as-is
    and startup does not build another set.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        On startup:
        - Build services once for the process
        - Create DB tables when DB_CREATE_ALL is set (development convenience; use Alembic in production)
        On shutdown: close the HTTP client and dispose the engine.
        """
        configure_logging(settings.LOG_LEVEL)
        if app.state.services is None:
            app.state.services = build_services(settings)
        if settings.DB_CREATE_ALL:
            await app.state.services.database.create_all()
        logger.info("Accounts API started")
        yield
        await app.state.services.close()

    app = FastAPI(title=settings.API_TITLE, version=settings.API_VERSION, lifespan=lifespan)
    app.state.services = services

    # CORS - adjust origins for production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routes_accounts.router, prefix="/accounts", tags=["accounts"])

    # Register centralized exception handlers
    register_exception_handlers(app)

    # Add request logging middleware (adds X-Request-ID header and logs)
    app.middleware("http")(request_logging_middleware)

    @app.get("/health")
    async def health():
        """Simple health endpoint used by load balancers and orchestrators."""
        return ok({"status": "ok"})

    return app


app = create_app()

if __name__ == "__main__":
    # Run with: python main.py for local dev. For production use uvicorn/gunicorn with workers.
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
