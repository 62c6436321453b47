from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
import logging
import uuid

from . import __version__
from .config import settings
from .database import create_tables
from .utils.exceptions import WayfareError
from .utils.logging_config import setup_logging, set_request_context, clear_request_context
from .utils.rate_limiter import limiter
from .services.scheduler import start_status_scheduler, stop_status_scheduler

from .routers import inventory, availability, search, reservations, chat, health

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging(level=settings.log_level, json_format=settings.log_json)

    logger.info("Starting wayfare-backend...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"CORS Origins: {settings.cors_origins}")

    create_tables()
    logger.info("Database ready")

    start_status_scheduler()

    yield

    logger.info("Shutting down wayfare-backend...")
    stop_status_scheduler()


# Create FastAPI app
app = FastAPI(
    title="Wayfare Backend API",
    description="Availability engine and chat for rooms, rental vehicles and transfers",
    version=__version__,
    lifespan=lifespan
)

# Rate limiter state
app.state.limiter = limiter


# ================================
# CORS MIDDLEWARE - MUST BE FIRST!
# ================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# Request ID Middleware
class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response


# Add other middleware AFTER CORS
app.add_middleware(RequestIdMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


# Domain errors -> JSON
@app.exception_handler(WayfareError)
async def wayfare_error_handler(request: Request, exc: WayfareError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Rate limit handler
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests, try again later", "error_code": "RateLimitExceeded"}
    )


# Include routers
app.include_router(inventory.router)
app.include_router(availability.router)
app.include_router(search.router)
app.include_router(reservations.router)
app.include_router(chat.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {
        "message": "Wayfare Backend API",
        "version": __version__,
        "docs": "/docs"
    }
