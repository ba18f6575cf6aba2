"""
Monera Talent Marketplace - Main Application

FastAPI backend with:
- PostgreSQL (any SQLAlchemy database) for all marketplace data
- JWT authentication via bearer header or http-only cookie
- Talent review workflow for admins
- Local uploads served from /uploads

Run: uvicorn monera.main:app --reload
"""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from monera import __version__
from monera.api.routes import api_router
from monera.core.config import get_settings
from monera.core.logging import setup_logging
from monera.db import init_schema, test_postgres_connection
from monera.db.postgres import engine

logger = logging.getLogger(__name__)

settings = get_settings()

os.makedirs(settings.upload_dir, exist_ok=True)

# Create FastAPI app
app = FastAPI(
    title="Monera Talent Marketplace",
    description="""
    Marketplace connecting vetted talents with client companies.

    ## Features
    - **Authentication**: e-mail verification codes, password reset, Google sign-in
    - **Talents**: profile submission, readiness check, job matching, applications
    - **Clients**: company profile, job posting, applicant tracking
    - **Messaging & notifications**
    - **Admin**: talent review, user management, stats, audit log, settings
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")

# Uploaded avatars and intro videos
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    message = str(exc.orig).lower()
    if "foreign key" in message:
        return JSONResponse(
            status_code=400,
            content={"detail": "Invalid reference. Please check related records exist."},
        )
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=409,
        content={"detail": "This record already exists. Please check for duplicates."},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Startup event
@app.on_event("startup")
async def startup_event():
    """Configure logging and create missing tables."""
    setup_logging()
    init_schema(engine)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "Monera Talent Marketplace", "version": __version__}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected" if test_postgres_connection() else "disconnected",
    }
