"""FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from .config import settings
from .database import SessionLocal
from .domain_errors import DomainError
from .problem_details import domain_error_handler
from .routers import almacen, documents, notifications, reposition_timers, repositions, transfers

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Create app
app = FastAPI(
    title="JN Repositions",
    version="1.0.0",
    description="Backend API for reposition (rework) requests moving between production areas"
)

if settings.ENV.lower() == "production" and any(origin.strip() == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard when using credentials).")

# CORS
cors_methods = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
cors_headers = ["Authorization", "Content-Type"]
if settings.ENV.lower() != "production":
    cors_headers = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=cors_methods,
    allow_headers=cors_headers,
)

app.add_exception_handler(DomainError, domain_error_handler)

# Include routers
app.include_router(repositions.router, prefix="/api/v1")
app.include_router(transfers.router, prefix="/api/v1")
app.include_router(reposition_timers.router, prefix="/api/v1")
app.include_router(documents.router, prefix="/api/v1")
app.include_router(almacen.router, prefix="/api/v1")
app.include_router(notifications.router, prefix="/api/v1")


@app.get("/api/v1/system/health")
def health_check():
    """Health check endpoint."""
    database = "ok"
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check: database unreachable")
        database = "error"
    finally:
        db.close()
    return {
        "status": "ok" if database == "ok" else "degraded",
        "version": "1.0.0",
        "database": database,
        "timezone": settings.BUSINESS_TIMEZONE,
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "JN Repositions API",
        "version": "1.0.0",
        "docs": "/docs"
    }
