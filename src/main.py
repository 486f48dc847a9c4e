"""tarefas - share short tasks and talk about them."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.cache_client import cache_client
from src.core.config import settings
from src.core.db_client import close_connection, init_db
from src.core.logging import configure_logfire, instrument_fastapi
from src.interface.auth_router import router as auth_router
from src.interface.pages_router import router as pages_router


logger = logging.getLogger(__name__)


def validate_startup_configuration() -> None:
    """Validate required credentials, failing fast with a clear message.

    Raises:
        SystemExit: If a required credential is missing
    """
    logger.info("startup_validation_begin")

    try:
        settings.require_credential("secret_key", "Secret key for session signing")
        settings.require_credential("oauth_client_id", "OAuth client ID")
        settings.require_credential("oauth_client_secret", "OAuth client secret")
        logger.info("startup_validation", extra={"stage": "credentials", "status": "ok"})
    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\nStartup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so validation logs are captured
    configure_logfire()
    validate_startup_configuration()

    await init_db()
    logger.info("Database initialized")
    yield
    await cache_client.close()
    await close_connection()


app = FastAPI(
    title="tarefas",
    description="Create, share and comment on short tasks",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(auth_router)
app.include_router(pages_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy", "cache": cache_client.get_health_status()}, status_code=200)
