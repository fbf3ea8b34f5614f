"""FastAPI application for the FPL Dashboard.

Serves the configuration views and player insights as JSON for the
frontend. APScheduler runs in-process to keep the bootstrap cache warm.
"""

import asyncio
import logging
import sys
import threading
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Ensure project root is importable
_project_root = str(Path(__file__).parent.parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from dashboard.backend.refresh_log import get_refresh_status, _dumps
from dashboard.backend.scheduler import start_scheduler, shutdown_scheduler
from etl.errors import TransportFailure
from reports.fpl_report.data_fetcher import init_data_layer
from utils.config import HOST, LOG_LEVEL, PORT

logging.basicConfig(
    level=getattr(logging, str(LOG_LEVEL).upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# HTTP status per upstream failure kind
FAILURE_STATUS = {
    "rate_limited": 429,
    "server_unavailable": 503,
    "timeout": 504,
    "network_unreachable": 502,
    "not_found": 404,
    "unexpected": 500,
}

# Set once the first bootstrap attempt has finished
_warmup_complete = threading.Event()


def _run_blocking_jobs():
    """Fill the cache on startup so the first request does not wait."""
    from dashboard.backend.jobs.bootstrap_job import run_bootstrap_job
    try:
        run_bootstrap_job()
    except Exception:
        logger.exception("Startup bootstrap job failed")
    _warmup_complete.set()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_data_layer()
    logger.info("Data layer initialized")

    # Run blocking startup jobs in a thread
    loop = asyncio.get_event_loop()
    loop.run_in_executor(None, _run_blocking_jobs)

    # Start scheduler for periodic refreshes
    start_scheduler()

    yield

    # Shutdown
    shutdown_scheduler()
    logger.info("Scheduler stopped")


class SafeJSONResponse(JSONResponse):
    """JSONResponse that handles NaN/Inf floats."""

    def render(self, content: Any) -> bytes:
        return _dumps(content).encode("utf-8")


app = FastAPI(
    title="FPL Insights Dashboard",
    version="1.0.0",
    lifespan=lifespan,
    default_response_class=SafeJSONResponse,
)

# CORS for Vite dev server (localhost:5173)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(TransportFailure)
async def transport_failure_handler(request: Request, exc: TransportFailure):
    """Upstream failed and nothing was cached: tell the client which way."""
    logger.warning("Request %s failed upstream: %s", request.url.path, exc.kind)
    headers = {}
    if getattr(exc, "retry_after", None):
        headers["Retry-After"] = str(int(exc.retry_after))
    return SafeJSONResponse(
        status_code=FAILURE_STATUS.get(exc.kind, 500),
        content=exc.to_dict(),
        headers=headers,
    )


# --- Routers ---
from dashboard.backend.routers.meta import router as meta_router
from dashboard.backend.routers.players import router as players_router
from dashboard.backend.routers.fixtures import router as fixtures_router

app.include_router(meta_router)
app.include_router(players_router)
app.include_router(fixtures_router)


@app.get("/api/health")
def health():
    """Startup readiness check."""
    return {
        "ready": _warmup_complete.is_set(),
        "jobs": get_refresh_status(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=HOST, port=PORT)
