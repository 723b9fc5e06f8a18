"""
Main FastAPI Application
=======================

Entry point for the sketchiness tile and analysis API server.
"""

import logging
import sys
import threading
import time

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()  # Load .env file before settings are read

from api.logs import router as logs_router
from api.router import api_router
from config import settings
from services.logging_service import init_logging
from services.snapshot import SnapshotPersistenceService, get_snapshot_store


# Custom colored formatter for better log readability
class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors and emojis for better log readability"""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'      # Reset
    }

    EMOJIS = {
        'DEBUG': '🔍',
        'INFO': 'ℹ️',
        'WARNING': '⚠️',
        'ERROR': '❌',
        'CRITICAL': '🚨'
    }

    def format(self, record):
        emoji = self.EMOJIS.get(record.levelname, '')
        color = self.COLORS.get(record.levelname, '')
        reset = self.COLORS['RESET']
        record.levelname = f"{color}{emoji} {record.levelname}{reset}"
        return super().format(record)


def setup_logging():
    """Console logging with visual indicators"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColoredFormatter("%(levelname)s %(name)s: %(message)s"))

    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(console_handler)

    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.error').setLevel(logging.WARNING)


setup_logging()
try:
    # Add rotating file + ring buffer handlers
    init_logging()
except OSError as e:
    logging.getLogger(__name__).warning(f"⚠️ File logging unavailable: {e}")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Sketchiness API",
    description="Street segment distance-to-crossing analysis and vector tiles",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)
app.include_router(logs_router)


def _run_startup_analysis():
    from api.endpoints.sketchiness import get_pipeline

    pipeline = get_pipeline()
    if pipeline is None:
        logger.warning("⚠️ RUN_ANALYSIS_ON_STARTUP is set but no feature source is configured")
        return
    try:
        pipeline.run()
    except Exception as e:
        # Failure is recorded on the snapshot store and reported by /api/health
        logger.error(f"❌ Startup analysis failed: {e}")


@app.on_event("startup")
async def startup_event():
    """Publish the last persisted snapshot, optionally start a fresh analysis"""
    logger.info("🚀 Starting Sketchiness API Server")

    store = get_snapshot_store()
    try:
        snapshot = SnapshotPersistenceService().load_current()
        if snapshot is not None:
            store.publish(snapshot)
        else:
            logger.info("ℹ️ No persisted snapshot found; tiles unavailable until an analysis runs")
    except Exception as e:
        logger.error(f"❌ Failed to load persisted snapshot: {e}")
        store.record_failure(f"load failed: {e}")

    if settings.RUN_ANALYSIS_ON_STARTUP:
        threading.Thread(target=_run_startup_analysis, name="startup-analysis", daemon=True).start()
        logger.info("🚦 Startup analysis scheduled")

    logger.info("✅ Sketchiness API Server started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("🛑 Shutting down Sketchiness API Server")


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to responses"""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if app.debug else "An unexpected error occurred"
        }
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Sketchiness API v1.0",
        "status": "running",
        "docs": "/docs",
        "health": "/api/health"
    }


if __name__ == "__main__":
    logger.info("🔧 Starting Sketchiness API Server in development mode")
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=False,
        log_level="info",
        access_log=True
    )
