import json
import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from metamorfose import __version__
from metamorfose.config import get_settings
from metamorfose.dependencies import get_dashboard_service, shutdown_dashboard_service
from metamorfose.errors import register_exception_handlers
from metamorfose.exceptions import GatewayError
from metamorfose.routers import dashboard_router, monitoring_router
from metamorfose.scheduler import start_scheduler, stop_scheduler
from metamorfose.schemas import HealthResponse
from metamorfose.services import DashboardService

settings = get_settings()
logger = logging.getLogger("metamorfose")
logging.basicConfig(level=settings.log_level.upper())

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit],
    enabled=settings.rate_limit_enabled,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan for startup/shutdown events."""
    start_scheduler()
    yield
    stop_scheduler()
    shutdown_dashboard_service()


app = FastAPI(
    title="Metamorfose API",
    description="Plant monitoring REST API backed by PL/SQL procedures",
    version=__version__,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)

register_exception_handlers(app)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Set basic security headers for all API responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
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
        payload = {
            "request_id": req_id,
            "path": request.url.path,
            "method": request.method,
            "status": status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
        }
        logger.info(json.dumps(payload))


app.include_router(dashboard_router, prefix=settings.api_prefix)
app.include_router(monitoring_router, prefix=settings.api_prefix)

Instrumentator().instrument(app).expose(app, include_in_schema=False, should_gzip=True)


@app.get("/health", response_model=HealthResponse)
@limiter.exempt
def health_check(service: DashboardService = Depends(get_dashboard_service)):
    """Health check endpoint for Docker."""
    try:
        service.gateway.ping()
    except GatewayError:
        logger.warning("Health check could not reach the database", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=HealthResponse(status="degraded", database="error").model_dump(),
        )
    return HealthResponse(status="healthy", database="ok")


@app.get("/")
def root():
    """Root endpoint with API information."""
    return {
        "name": "Metamorfose API",
        "version": __version__,
        "docs": "/docs",
        "api_base": settings.api_prefix,
        "dashboard": f"{settings.api_prefix}/dashboard/plants",
        "monitoring": f"{settings.api_prefix}/monitoring",
    }
