"""FastAPI application: routers, middleware, metrics and health."""
import json
import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.orm import Session

from plantcards import __version__
from plantcards.config import get_settings
from plantcards.database import get_db
from plantcards.ratelimit import limiter
from plantcards.routers import (
    auth_router,
    collections_router,
    dashboard_router,
    favorites_router,
    flashcards_router,
    images_router,
    plants_router,
    practice_router,
    profile_router,
    quiz_router,
    settings_router,
    sightings_router,
)
from plantcards.schemas import HealthResponse
from plantcards.storage import ImageStorage, get_storage

settings = get_settings()
logger = logging.getLogger("plantcards.api")
logging.basicConfig(level=settings.log_level.upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan for startup/shutdown events."""
    if settings.storage_ensure_buckets:
        storage = get_storage()
        for bucket in (settings.admin_image_bucket, settings.user_image_bucket):
            try:
                storage.ensure_bucket(bucket)
            except Exception:
                logger.exception("Could not verify bucket %s", bucket)
    yield


app = FastAPI(
    title="Plant Flashcards API",
    description="Plant catalog with flashcards, quizzes, collections and image management",
    version=__version__,
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Set basic security headers for all API responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"
    return response


@app.middleware("http")
async def structured_logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    req_id = request.headers.get("X-Request-ID", str(uuid4()))
    request.state.request_id = req_id

    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-ID"] = req_id
        return response
    finally:
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        payload = {
            "request_id": req_id,
            "path": request.url.path,
            "method": request.method,
            "status": status_code,
            "duration_ms": duration_ms,
        }
        logger.info(json.dumps(payload))


app.include_router(auth_router)
app.include_router(settings_router)
app.include_router(profile_router)
app.include_router(plants_router)
app.include_router(images_router)
app.include_router(dashboard_router)
app.include_router(collections_router)
app.include_router(favorites_router)
app.include_router(sightings_router)
app.include_router(flashcards_router)
app.include_router(practice_router)
app.include_router(quiz_router)

Instrumentator().instrument(app).expose(app, include_in_schema=False, should_gzip=True)


@app.get("/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db), storage: ImageStorage = Depends(get_storage)):
    """Database and object storage reachability."""
    db_ok = "ok"
    storage_ok = "ok"

    try:
        db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check: database unreachable")
        db_ok = "error"

    try:
        storage.ping(settings.admin_image_bucket)
    except Exception:
        logger.exception("Health check: storage unreachable")
        storage_ok = "error"

    if db_ok == "error" or storage_ok == "error":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=HealthResponse(status="degraded", db=db_ok, storage=storage_ok).model_dump(),
        )

    return HealthResponse(status="ok", db=db_ok, storage=storage_ok)


@app.get("/")
def root():
    """Root endpoint with API information."""
    return {
        "name": "Plant Flashcards API",
        "version": __version__,
        "docs": "/docs",
        "auth": {
            "signup": "/auth/signup",
            "login": "/auth/login",
            "google": "/auth/oauth/google",
        },
        "study": {
            "deck": "/flashcards/deck",
            "quiz": "/quiz/multiple-choice",
            "practice": "/practice",
        },
    }
