"""PRD extraction service FastAPI application."""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from src.shared.config import ExtractionConfig
from src.shared.constants import EXTRACTION_PORT, EXTRACTION_SERVICE_NAME, VERSION
from src.shared.errors import register_exception_handlers
from src.shared.logging import TraceIDMiddleware, setup_logging

config = ExtractionConfig()
logger = setup_logging(EXTRACTION_SERVICE_NAME, config.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - record start time and log lifecycle events."""
    app.state.start_time = time.time()

    logger.info(
        "Service started: name=%s version=%s port=%d max_document_bytes=%d",
        EXTRACTION_SERVICE_NAME, VERSION, EXTRACTION_PORT, config.max_document_bytes,
    )
    yield

    logger.info("Service stopped: name=%s", EXTRACTION_SERVICE_NAME)


app = FastAPI(
    title="PRD Extraction Service",
    version=VERSION,
    lifespan=lifespan,
)
app.state.config = config

app.add_middleware(TraceIDMiddleware)
register_exception_handlers(app)

# Register all routers
from src.prd_extraction.routers.health import router as health_router
from src.prd_extraction.routers.extraction import router as extraction_router

app.include_router(health_router)
app.include_router(extraction_router)
