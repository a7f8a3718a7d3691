"""
NodeFlow - FastAPI Application Entry Point.

Backend for the visual LLM workflow builder.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import time

from nodeflow.config import settings
from nodeflow.errors import UpstreamError, WorkflowError
from nodeflow.log import configure_logging
from nodeflow.api.routes import pipelines, workflow
from nodeflow.llm.client import GeminiClient
from nodeflow.middleware.rate_limit import RateLimitMiddleware, SlidingWindowLimiter
from nodeflow.storage.cache import ResponseCache


configure_logging(settings)
logger = logging.getLogger(__name__)


# Limiters are module-level so their windows can be inspected and reset
_window_seconds = settings.RATE_LIMIT_WINDOW_MS / 1000
general_limiter = SlidingWindowLimiter(_window_seconds, settings.RATE_LIMIT_MAX_REQUESTS)
execution_limiter = SlidingWindowLimiter(_window_seconds, settings.EXECUTION_RATE_LIMIT_MAX_REQUESTS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")
    if not settings.GOOGLE_API_KEY:
        logger.warning(
            "GOOGLE_API_KEY is not set; clients must provide their own API key"
        )
    
    app.state.cache = ResponseCache(
        ttl_seconds=settings.CACHE_TTL_SECONDS,
        max_entries=settings.CACHE_MAX_ENTRIES,
    )
    app.state.client = GeminiClient(
        base_url=settings.GEMINI_API_BASE,
        timeout=settings.UPSTREAM_TIMEOUT,
        max_retries=settings.UPSTREAM_MAX_RETRIES,
        retry_delay=settings.UPSTREAM_RETRY_DELAY,
    )
    
    yield
    
    # Shutdown
    logger.info("Shutting down...")
    await app.state.client.aclose()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="""
## Workflow Execution API

Executes graphs built in the visual workflow builder.

### Endpoints
- `POST /run-workflow`: substitute inputs into the LLM prompts, generate, return text per output node
- `POST /pipelines/parse`: count nodes/edges and check the graph is a DAG
- `GET /health`: liveness probe
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Middleware (last added runs first)
app.add_middleware(
    RateLimitMiddleware,
    general=general_limiter,
    path_limiters=[("/run-workflow", execution_limiter)],
    exempt_paths=("/health",),
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every HTTP request with its outcome and duration."""
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"({duration_ms:.1f}ms) origin={request.headers.get('origin')}"
    )
    return response


# Include routers
app.include_router(workflow.router)
app.include_router(pipelines.router)


# ============================================================
# Root Endpoints
# ============================================================

@app.get("/", tags=["Root"])
async def root():
    """API root - returns basic info and links."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "endpoints": {
            "run_workflow": "POST /run-workflow",
            "parse_pipeline": "POST /pipelines/parse",
            "health": "GET /health",
            "test": "GET /test",
        },
    }


@app.get("/health", tags=["Root"])
async def health(request: Request):
    """Health check endpoint."""
    cache = getattr(request.app.state, "cache", None)
    return {
        "status": "OK",
        "message": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "hasGoogleApiKey": bool(settings.GOOGLE_API_KEY),
        "cacheEntries": len(cache) if cache is not None else 0,
    }


@app.get("/test", tags=["Root"])
async def cors_test(request: Request):
    """Echo the request origin; used to check CORS configuration."""
    return {
        "message": "CORS is working!",
        "origin": request.headers.get("origin"),
    }


# ============================================================
# Error Handlers
# ============================================================

def _error_content(error: str, details=None) -> dict:
    content = {"success": False, "error": error}
    if details is not None:
        content["details"] = details
    return content


def _log_failure(level: int, message: str, exc: BaseException) -> None:
    """Log a failure, with its traceback outside production."""
    logger.log(level, message, exc_info=None if settings.is_production else exc)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    """Convert workflow failures into the standard error shape."""
    if isinstance(exc, UpstreamError):
        _log_failure(
            logging.ERROR,
            f"Generation failed: {exc.message} (upstream status {exc.upstream_status})",
            exc,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_content(
                "AI generation failed. Please try again.",
                None if settings.is_production else exc.message,
            ),
        )
    
    if exc.status_code >= 500:
        _log_failure(logging.ERROR, f"Workflow execution error: {exc.message}", exc)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_content(
                "Internal server error",
                None if settings.is_production else exc.message,
            ),
        )
    
    _log_failure(logging.WARNING, f"Rejected request to {request.url.path}: {exc.message}", exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(exc.message, exc.details),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Schema failures are client errors (400), not 422."""
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    _log_failure(logging.WARNING, f"Validation failed for {request.url.path}: {details}", exc)
    return JSONResponse(
        status_code=400,
        content=_error_content("Validation failed", details),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        content = _error_content("Endpoint not found")
        content["path"] = request.url.path
    else:
        content = _error_content(str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    _log_failure(logging.ERROR, f"Unhandled error: {exc}", exc)
    return JSONResponse(
        status_code=500,
        content=_error_content(
            "Internal server error",
            str(exc) if settings.DEBUG else None,
        ),
    )
