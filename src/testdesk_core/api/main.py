"""testdesk Resource Store FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import get_settings
from .routers import (
    auth,
    comments,
    failures,
    notifications,
    test_cases,
    test_plans,
    test_results,
    test_runs,
    test_suites,
)

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("testdesk-core")

logger.info("Starting testdesk Resource Store API")

# Create FastAPI app
app = FastAPI(
    title="testdesk API",
    description="Test management - test cases, runs, failures and comments",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

prefix = settings.api_prefix
app.include_router(test_runs.router, prefix=f"{prefix}/test-runs")
app.include_router(test_suites.router, prefix=f"{prefix}/test-suites")
app.include_router(test_cases.router, prefix=f"{prefix}/test-cases")
app.include_router(test_results.router, prefix=f"{prefix}/test-results")
app.include_router(failures.router, prefix=f"{prefix}/failures")
app.include_router(test_plans.router, prefix=f"{prefix}/test-plans")
app.include_router(comments.router, prefix=f"{prefix}/comments")
app.include_router(notifications.router, prefix=f"{prefix}/notifications")
app.include_router(auth.router, prefix=f"{prefix}/auth")


@app.get("/")
def root():
    """Root endpoint with server info."""
    return {
        "name": "testdesk API",
        "version": __version__,
        "docs": "/docs",
        "api_prefix": prefix,
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
