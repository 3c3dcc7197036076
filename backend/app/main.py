"""
Encrypted Upload API

Accepts raw upload bodies, buffers them through encrypting deferred buffers
and serves the plaintext back until the upload is deleted.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.middleware import ErrorHandlerMiddleware
from app.routes import download, upload
from app.services.cleanup_scheduler import (
    get_scheduler_status,
    start_cleanup_scheduler,
    stop_cleanup_scheduler,
)
from app.services.upload_store import upload_store

API_VERSION = "1.0.0"
SERVICE_NAME = "Encrypted Upload API"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the orphan sweep while serving; delete every live upload on exit."""
    start_cleanup_scheduler()
    try:
        yield
    finally:
        stop_cleanup_scheduler()
        upload_store.clear()


app = FastAPI(
    title=SERVICE_NAME,
    description="Upload buffering service that encrypts everything it spills to disk",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
# Turns UploadApiError into JSON bodies
app.add_middleware(ErrorHandlerMiddleware)

app.include_router(upload.router, prefix="/api", tags=["Upload"])
app.include_router(download.router, prefix="/api", tags=["Download"])


@app.get("/")
async def root():
    """Service identity."""
    return {"status": "ok", "service": SERVICE_NAME, "version": API_VERSION}


@app.get("/health")
async def health_check():
    """Liveness plus the state of the backing-file cleanup job."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": API_VERSION,
        "cleanup": get_scheduler_status(),
    }
