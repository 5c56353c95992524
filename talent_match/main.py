from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from talent_match.dependencies import build_services
from talent_match.routers import candidates, jobs, matches

# Import logging and middleware
from talent_match.utils.logging_config import configure_for_environment, get_logger
from talent_match.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    RequestLoggingMiddleware,
    PerformanceMiddleware,
    validation_exception_handler,
)
from talent_match.models.settings import load_settings

VERSION = "1.0.0"

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    from talent_match.services.db import close_client, get_database, init_indexes

    logger.info("Talent Match API starting up...")
    settings = load_settings()
    db = get_database(settings.database)

    try:
        await init_indexes(db)
    except Exception as e:
        logger.warning(f"Database index initialization had issues: {e}")
        logger.info("Application will continue - some operations may be slower without indexes")

    app.state.settings = settings
    app.state.services = build_services(settings, db)
    logger.info(
        f"Talent Match API startup completed (embedding model: {settings.embedding.model_name}, "
        f"judge model: {settings.llm.model_name})"
    )

    yield

    logger.info("Talent Match API shutting down...")
    close_client()
    logger.info("Talent Match API shutdown completed")


app = FastAPI(title="Talent Match API", version=VERSION, lifespan=lifespan)

app.add_exception_handler(RequestValidationError, validation_exception_handler)

# LIFO: the last middleware added runs first
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(PerformanceMiddleware, slow_request_threshold=2.0)
app.add_middleware(ExceptionHandlerMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allows all origins
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)


@app.get("/")
@app.head("/")
async def root():
    """Root endpoint - handles both GET and HEAD requests for health checks"""
    logger.debug("Root endpoint accessed")
    return {"message": "Welcome to the Talent Match API", "version": VERSION, "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    """Health check endpoint - handles both GET and HEAD requests"""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


# Include routers
app.include_router(matches.router, prefix="/api/match", tags=["matching"])
app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
app.include_router(candidates.router, prefix="/api/candidates", tags=["candidates"])

logger.info("Talent Match API initialized successfully")
