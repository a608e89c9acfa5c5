"""
FastAPI application entry point.

Run with: uvicorn belief_chat.main:app --reload
"""

from contextlib import asynccontextmanager
import uuid

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from belief_chat.core.config import settings
from belief_chat.core.logging import configure_logging, get_logger, bind_context, clear_context
from belief_chat.api.dependencies import get_shared_reply_generator
from belief_chat.api.exception_handlers import setup_exception_handlers
from belief_chat.api.routes import admin, chat_alias, conversations, health, survey
from belief_chat.persistence.json_store import check_storage_health

# Configure logging before anything else
configure_logging()
log = get_logger(__name__)


# =============================================================================
# Correlation ID Middleware
# =============================================================================


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique correlation ID to each request.

    - Reuses an incoming X-Request-ID or generates a UUID4
    - Binds it to structlog context for all logs in that request
    - Adds X-Request-ID header to responses
    """

    async def dispatch(self, request: Request, call_next):
        """Process request and add correlation ID."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        bind_context(request_id=request_id)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    log.info(
        "application_starting",
        debug=settings.debug,
        data_dir=str(settings.data_dir),
        generator_provider=settings.generator_provider,
    )

    # Fail fast if the Reply Generator is misconfigured
    get_shared_reply_generator()

    storage = check_storage_health(settings.data_dir)
    if storage["status"] != "healthy":
        raise RuntimeError(f"Data directory not usable: {storage.get('error')}")

    log.info("application_started")

    yield

    log.info("application_shutting_down")


app = FastAPI(
    title="Belief Chat",
    description="Belief-change interview service for climate-attitude research",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware for development
if settings.debug:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(CorrelationIDMiddleware)

setup_exception_handlers(app)

app.include_router(health.router, tags=["system"])
app.include_router(survey.router)
app.include_router(conversations.router)
app.include_router(chat_alias.router)
app.include_router(admin.router)


@app.get("/")
async def root():
    """Root endpoint with basic info."""
    return {"name": "Belief Chat", "version": "0.1.0", "status": "running"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "belief_chat.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
