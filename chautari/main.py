import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Registers every table on Base.metadata
from . import models  # noqa: F401
from .config import FRONTEND_URL
from .database import Base, engine
from .domain.admin.router import router as admin_router
from .domain.agencies.router import router as agencies_router
from .domain.agency_portal.router import router as agency_portal_router
from .domain.documents.router import router as documents_router
from .domain.messaging.router import router as messaging_router
from .domain.notifications.router import router as notifications_router
from .domain.profiles.router import router as profiles_router
from .domain.switch_requests.router import router as switch_requests_router
from .rate_limiter import get_redis_client
from .security_headers import SecurityHeadersMiddleware

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

for noisy in ("httpx", "httpcore", "botocore", "boto3"):
    logging.getLogger(noisy).setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", f"{FRONTEND_URL},http://localhost:5173").split(",")
    if origin.strip()
]
CORS_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")

ROUTERS = (
    profiles_router,
    agencies_router,
    agency_portal_router,
    switch_requests_router,
    documents_router,
    messaging_router,
    notifications_router,
    admin_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Chautari API starting")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("✅ Database schema ready")
    except Exception as e:
        # Concurrent workers may race on CREATE TABLE
        if "already exists" in str(e) or "duplicate key" in str(e):
            logger.info("Database schema already present")
        else:
            logger.error(f"❌ Could not create database schema: {e}")

    try:
        get_redis_client()
        logger.info("✅ Redis reachable")
    except Exception as e:
        logger.warning(f"⚠️ Redis unavailable, rate limits are per-process and realtime fan-out is off: {e}")

    yield
    logger.info("Chautari API shutting down")


app = FastAPI(title="Chautari API", version="0.1.0", lifespan=lifespan)


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors with ctx values rendered as text"""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """A malformed Authorization header is an authentication failure, not a 422"""
    if any("authorization" in str(error.get("loc", "")).lower() for error in exc.errors()):
        logger.warning(f"🔒 Rejected {request.method} {request.url.path}: bad Authorization header")
        return JSONResponse(status_code=401, content={"detail": "Not authenticated"})

    logger.info(f"Validation failed for {request.method} {request.url.path}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"❌ {request.method} {request.url.path} failed: {e}")
        raise
    elapsed_ms = (time.time() - started) * 1000
    if response.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f}ms)")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])
else:
    logger.warning("⚠️ Security headers disabled")

logger.info(f"CORS origins: {ALLOWED_ORIGINS}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=list(CORS_METHODS),
    allow_headers=["Authorization", "Content-Type"],
)

for router in ROUTERS:
    app.include_router(router)


@app.get("/")
def root():
    return {"message": "Chautari API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
def redis_health():
    try:
        client = get_redis_client()
        started = time.time()
        client.ping()
        return {
            "status": "healthy",
            "redis": {"connected": True, "response_time_ms": round((time.time() - started) * 1000, 2)},
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
