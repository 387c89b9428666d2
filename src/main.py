"""FastAPI application entry point — wires everything together.

Usage:
    python -m src.main

Serves the staff pages and a health check.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from src.admin.events import emit, event_bus, subscribe
from src.admin.web import router as web_router
from src.config import settings
from src.db.engine import async_session_factory, db_lifespan
from src.schemas.events import EventType, SystemEvent
from src.security.audit import audit_on_event
from src.shop.queries import check_database

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting %s (env=%s)", settings.shop.shop_name, settings.environment)
    app.state.started_at = datetime.now(UTC)

    async with db_lifespan():
        logger.info("Database initialized")

        # Audit logging is always active (global subscriber)
        subscribe(audit_on_event)
        await event_bus.start()
        await emit(SystemEvent(event_type=EventType.SYSTEM_STARTUP, actor_id="system", actor_role="system"))

        if not settings.security.admin_web_password:
            logger.warning("ADMIN_WEB_PASSWORD not set — staff pages will answer 503")

        try:
            yield
        finally:
            logger.info("Shutting down...")
            await emit(SystemEvent(event_type=EventType.SYSTEM_SHUTDOWN, actor_id="system", actor_role="system"))
            await event_bus.stop()

    logger.info("Shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title=f"{settings.shop.shop_name} API",
    description="Quotes, orders, and margins for a fabrication shop",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(web_router)


@app.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint with a database ping."""
    async with async_session_factory() as db:
        database = await check_database(db)
    return {
        "status": "ok" if database["status"] == "ok" else "degraded",
        "environment": settings.environment,
        "database": database,
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
