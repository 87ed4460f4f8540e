"""
============================================================================
Project Exposure Desk v1.0.0
FastAPI Application Entry Point
============================================================================

Reliability Level: L4 Supporting
Input Constraints: JSON over HTTP
Side Effects: Database reads (leg repository, database price source)

Serves the exposure report, MTM and formula tooling routes plus
Prometheus metrics. Configuration comes from the environment (.env is
loaded first).

============================================================================
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

# Load environment variables first
load_dotenv()

from app.api.exposure import router as exposure_router
from app.database.session import check_database_connection, reset_engine
from services.exposure_config import ExposureConfigurationError, get_exposure_config

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


# ============================================================================
# APPLICATION LIFESPAN
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
        - Load and validate configuration (CFG-001 aborts startup)
        - Ping the database when MTM prices come from it (non-blocking)

    Shutdown:
        - Dispose of the shared engine
    """
    logger.info("[STARTUP] Exposure Desk starting | time=%s", datetime.now(timezone.utc).isoformat())

    try:
        config = get_exposure_config()
    except ExposureConfigurationError as e:
        logger.critical(f"[{e.error_code}] Cannot start with invalid configuration | {e.message}")
        raise

    if config.price_source == "database":
        try:
            check_database_connection()
            logger.info("[STARTUP] Database connection verified")
        except Exception as e:
            logger.warning(f"[DB-001] Database unreachable, MTM prices unavailable | error={e}")

    yield

    reset_engine()
    logger.info("[SHUTDOWN] Database connections closed")


# ============================================================================
# FASTAPI APPLICATION
# ============================================================================

app = FastAPI(
    title="Exposure Desk",
    description="Exposure reporting, mark-to-market and pricing formula tools.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    error_code = "SYS-500"
    logger.exception(f"[{error_code}] Unhandled exception | path={request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "error_code": error_code,
            "message": "Internal server error. This incident has been logged.",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )


app.include_router(
    exposure_router,
    prefix="/api/exposure",
    tags=["Exposure"]
)


@app.get(
    "/metrics",
    summary="Prometheus Metrics",
    description="Exposes Prometheus metrics for observability.",
    tags=["Observability"]
)
async def metrics():
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")), log_level="info")
