"""
Binary Log Decoder - FastAPI Backend

Main application entry point and configuration.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from binlog.api.logs import router as logs_router
from binlog.services.repository import init_repository, get_repository


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


DATA_FOLDER_ENV = "BINLOG_DATA_FOLDER"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Binary Log Decoder")

    repo = get_repository()
    if repo.data_folder is None and os.getenv(DATA_FOLDER_ENV):
        data_folder = Path(os.environ[DATA_FOLDER_ENV])
        init_repository(data_folder)
        logger.info(f"Resolving relative log paths against: {data_folder}")

    yield

    logger.info("Shutting down Binary Log Decoder")


app = FastAPI(
    title="Binary Log Decoder",
    description="""
    Decodes self-describing binary autopilot flight logs.

    ## Data Flow
    1. Decode a log via POST /logs
    2. Inspect loading status and record types via GET /logs/{id}
    3. Get decoded rows via GET /logs/{id}/messages/{name}
    """,
    version="0.1.0",
    lifespan=lifespan,
)


# CORS middleware (allow all origins for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(logs_router)


@app.get("/")
async def root():
    """Root endpoint - basic health check."""
    return {
        "name": "Binary Log Decoder",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    repo = get_repository()

    return {
        "status": "healthy",
        "data_folder": str(repo.data_folder) if repo.data_folder else None,
        "log_count": len(repo),
    }
