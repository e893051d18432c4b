"""
FastAPI Application

Entry point for the lineage API:
- Logging setup from Settings.log_level
- Relation backend selection (in-memory or SQL) at startup
- Request statistics, /health and /metrics
- Lineage routes under /api/v1
"""

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from src.config import Settings, get_settings

# Configure root logger BEFORE any other imports
logging.basicConfig(
    level=get_settings().log_level,
    format="%(levelname)s  %(name)s  %(message)s",
)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes import (
    get_lineage_service,
    router,
    set_lineage_service,
    set_uid_mappings,
)
from src.identity.legacy import SqlUidMappingStore
from src.lineage.relation_store import SqlRelationStore
from src.lineage.service import LineageService
from src.storage.database import get_engine, init_db

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


@dataclass
class RequestStats:
    """Counters updated by the stats middleware."""
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    requests: int = 0
    client_errors: int = 0
    server_errors: int = 0
    total_seconds: float = 0.0

    def record(self, status_code: int, elapsed: float) -> None:
        self.requests += 1
        self.total_seconds += elapsed
        if status_code >= 500:
            self.server_errors += 1
        elif status_code >= 400:
            self.client_errors += 1

    def snapshot(self) -> dict[str, Any]:
        uptime = datetime.now(timezone.utc) - self.started_at
        return {
            "uptime_seconds": uptime.total_seconds(),
            "request_count": self.requests,
            "client_error_count": self.client_errors,
            "server_error_count": self.server_errors,
            "mean_latency_ms": (
                1000 * self.total_seconds / self.requests if self.requests else 0.0
            ),
        }


async def install_sql_backend() -> None:
    """Create the relation tables and point the routes at SQL-backed stores."""
    await init_db()
    set_lineage_service(LineageService(relation_store=SqlRelationStore()))
    set_uid_mappings(SqlUidMappingStore())
    logger.info("SQL relation backend ready")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = get_settings()
    app.state.stats = RequestStats()
    if settings.relation_backend == "sql":
        await install_sql_backend()

    yield

    if settings.relation_backend == "sql":
        await get_engine().dispose()
        logger.info("Database engine disposed")


app = FastAPI(
    title="Business Lineage API",
    description="Business entity UIDs, status state machine and lineage tracing",
    version=API_VERSION,
    lifespan=lifespan,
)
app.state.stats = RequestStats()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def stats_middleware(request: Request, call_next):
    """Count requests by outcome and accumulate latency."""
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        app.state.stats.record(500, time.perf_counter() - started)
        raise
    app.state.stats.record(response.status_code, time.perf_counter() - started)
    return response


@app.get("/health")
async def health_check() -> dict[str, Any]:
    """Liveness plus the active relation backend."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": API_VERSION,
        "relation_backend": get_settings().relation_backend,
    }


@app.get("/metrics")
async def metrics() -> dict[str, Any]:
    """Request statistics and the number of stored relations."""
    data = app.state.stats.snapshot()
    data["relation_count"] = await get_lineage_service().relation_store.count()
    return data


app.include_router(router, prefix="/api/v1")
