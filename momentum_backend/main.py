from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os
from pathlib import Path

from momentum_backend.database import engine, Base, SessionLocal
from momentum_backend import models  # Import all models to register them with Base
from momentum_backend.exceptions import MomentumException
from momentum_backend.services.catalog_service import CatalogService
from momentum_backend.routes import activities, catalog, goals, profiles, settings, social

# Configure logging
from momentum_backend.constants import DEFAULT_LOG_DIRECTORY_PROD, DEFAULT_LOG_DIRECTORY_DEV

LOG_DIR = os.getenv("MOMENTUM_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("MOMENTUM_LOG_FILE", "app.log")

# Create log directory if it doesn't exist (for development)
try:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE
except PermissionError:
    # Fallback to local directory if no permissions for /var/log
    LOG_DIR = DEFAULT_LOG_DIRECTORY_DEV
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_path),
        logging.StreamHandler()  # Also log to console
    ]
)

logger = logging.getLogger("momentum")

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Momentum API",
    description="Social fitness tracking with goals, momentum and a follow graph",
    version="1.0.0"
)

from momentum_backend.constants import CORS_ALLOWED_ORIGINS

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(catalog.router)
app.include_router(goals.router)
app.include_router(activities.router)
app.include_router(social.router)
app.include_router(profiles.router)
app.include_router(profiles.users_router)
app.include_router(settings.router)


@app.exception_handler(MomentumException)
async def momentum_exception_handler(request: Request, exc: MomentumException):
    """Domain errors carry their own HTTP status and error code"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc), "error": exc.error_code},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "error": "internal_error"},
    )


# Startup event
@app.on_event("startup")
async def startup_event():
    logger.info(f"Momentum API started. Logging to: {log_path}")
    db = SessionLocal()
    try:
        CatalogService(db).seed_defaults()
    finally:
        db.close()


# Health check (no auth required)
@app.get("/")
async def root():
    return {"message": "Momentum API", "status": "active"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("momentum_backend.main:app", host="0.0.0.0", port=8000, reload=False)
