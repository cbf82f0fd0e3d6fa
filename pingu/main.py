"""PingU API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map PingUError → structured JSON responses
    - Every request is bounded by request_timeout_seconds; expiry cancels in-flight
      work (rolling back any open unit) and returns 504
    - Every client IP gets rate_limit_per_minute requests per minute across all routes
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Timeout and rate limit are pure ASGI middleware, so the route runs in the
      request's own task and can be cancelled
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIASGIMiddleware

from pingu.api.error_handlers import register_error_handlers
from pingu.api.rate_limit import limiter
from pingu.api.request_timeout import RequestTimeoutMiddleware
from pingu.api.routes import authentication, health, users
from pingu.config import get_settings
from pingu.infrastructure.database import init_db
from pingu.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        query_timeout_seconds=settings.query_timeout_seconds,
    )
    logger.info("PingU API started")
    yield
    await manager.close()
    logger.info("PingU API shutting down")


app = FastAPI(title="PingU API", version="1.0.0", lifespan=lifespan)
app.state.limiter = limiter

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SlowAPIASGIMiddleware)
app.add_middleware(
    RequestTimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds,
)

app.include_router(health.router)
app.include_router(users.router)
app.include_router(authentication.router)

register_error_handlers(app)
