"""FastAPI application for the device-lending ledger.

This is the main entry point for the ledger API server.
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..api.database import check_database_health
from .adapters.field_mapper import ledger_tables
from .api.dependencies import close_db_pool, get_db_pool, init_db_pool
from .api.router import router
from .api.schemas import HealthResponse

load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Handles startup and shutdown events:
    - Startup: Initialize database pool
    - Shutdown: Close database pool
    """
    logger.info("Starting Ledger API...")

    try:
        await init_db_pool()
        logger.info("Database pool initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise

    yield

    logger.info("Shutting down Ledger API...")
    await close_db_pool()


# Create FastAPI application
app = FastAPI(
    title="Device-Lending Ledger API",
    description="""
    API for bulk spreadsheet import and record updates of the lending ledger.

    ## Features

    - **Import**: Upload a tablet, iPhone, feature phone, router or address sheet
    - **Update**: Change a record; device hand-overs are kept in usage history
    - **History**: List a device's previous holders
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
cors_origins = os.getenv("CORS_ORIGINS", "*").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)

app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Device-Lending Ledger API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check including database connectivity and the ledger schema."""
    database = await check_database_health(get_db_pool(), tables=ledger_tables())
    return HealthResponse(
        status="healthy" if database.get("healthy") else "degraded",
        database=database,
    )


# Entry point for running with uvicorn
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.ledger.importing.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
