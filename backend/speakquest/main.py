"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from speakquest.api.dependencies import Ledger, Transcriber
from speakquest.api.routes import progress, speech, words
from speakquest.config import settings
from speakquest.core.exceptions import ProgressCorruptError, ProgressStoreError
from speakquest.middleware.rate_limiter import limiter
from speakquest.middleware.request_id import RequestIDMiddleware
from speakquest.models.envelope import error_response
from speakquest.services.redis_client import close_redis

logger = logging.getLogger(__name__)

# Configure logging format based on dev_mode
if not settings.dev_mode:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='{"time":"%(asctime)s","level":"%(levelname)s","name":"%(name)s","message":"%(message)s"}',
    )
else:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    logger.info("Progress backend: %s", settings.progress_backend)
    yield
    await close_redis()  # No-op unless the redis backend opened a pool

app = FastAPI(
    title="SpeakQuest API",
    description="Pronunciation practice: transcribe, grade and track spoken words",
    version="0.1.0",
    openapi_url="/api/v1/openapi.json",
    docs_url="/docs" if settings.dev_mode else None,
    redoc_url="/redoc" if settings.dev_mode else None,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.state.limiter = limiter

app.add_middleware(RequestIDMiddleware)


# ---------------------------------------------------------------------------
# Global exception handlers
# ---------------------------------------------------------------------------

_STATUS_CODES = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    413: "PAYLOAD_TOO_LARGE",
    502: "PROVIDER_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def _validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:]) or None
    return JSONResponse(
        status_code=422,
        content=error_response("VALIDATION_ERROR", first.get("msg", "Invalid request"), field),
    )


@app.exception_handler(RateLimitExceeded)
async def _rate_limit_handler(_request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content=error_response("RATE_LIMITED", str(exc.detail)),
    )


@app.exception_handler(Exception)
async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=True)
    detail = str(exc) if settings.dev_mode else "Internal server error"
    return JSONResponse(
        status_code=500,
        content=error_response("INTERNAL_ERROR", detail),
    )


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "X-Request-ID"],
)


# ---------------------------------------------------------------------------
# Routers, all under /api/v1/
# ---------------------------------------------------------------------------

app.include_router(speech.router, prefix="/api/v1/speech", tags=["speech"])
app.include_router(progress.router, prefix="/api/v1/progress", tags=["progress"])
app.include_router(words.router, prefix="/api/v1/words", tags=["words"])

# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@app.get("/health")
async def health_check(transcriber: Transcriber) -> dict:
    """Liveness check: verifies the API process is alive."""
    return {
        "status": "healthy",
        "services": {
            "transcription": "ok" if transcriber.is_configured else "not_configured",
            "progress_backend": settings.progress_backend,
        },
    }


@app.get("/health/ready")
async def readiness_check(ledger: Ledger, transcriber: Transcriber) -> JSONResponse:
    """Readiness check: the progress store is readable and the provider circuit is not open."""
    checks: dict[str, str] = {}

    try:
        await ledger.store.load()
        checks["progress_store"] = "ok"
    except ProgressCorruptError:
        # Readable; the next write replaces the bad payload
        checks["progress_store"] = "ok"
    except ProgressStoreError:
        checks["progress_store"] = "unavailable"

    breaker = transcriber.breaker.snapshot()
    checks["transcription"] = "ok" if breaker["state"] != "open" else "unavailable"

    all_ok = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ready" if all_ok else "degraded",
            "services": checks,
            "circuit": breaker,
        },
    )


@app.get("/api/v1/version")
async def version() -> dict:
    """Return build / version metadata."""
    return {
        "version": app.version,
        "title": app.title,
        "api_prefix": "/api/v1",
    }


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {"message": "SpeakQuest API", "docs": "/docs"}
