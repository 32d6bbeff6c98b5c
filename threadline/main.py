"""
Threadline Check Service
Main FastAPI application with PydanticAI integration
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from threadline.agents.threadline_agent import initialize_threadline_agent
from threadline.api import checks, health
from threadline.api.middleware import RequestTracingMiddleware, SecurityMiddleware
from threadline.config.settings import settings
from threadline.exceptions import (
    AIProviderException,
    CheckNotFoundException,
    CheckValidationException,
    ConfigurationException,
    SecurityException,
    ThreadlineException,
)
from threadline.services.check_service import CheckService
from threadline.services.check_store import InMemoryCheckStore
from threadline.services.threadline_evaluator import ThreadlineEvaluator
from threadline.utils.version import get_version

# Configure structured logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """Whether startup finished; read by the root endpoint"""

    initialized: bool = False

    def mark_initialized(self) -> None:
        self.initialized = True

    def clear(self) -> None:
        self.initialized = False


# Global application state instance
app_state = AppState()


async def initialize_resources(app: FastAPI) -> None:
    """Build the generation client and the check service on top of it"""
    logger.info("Initializing application resources")

    try:
        agent = await initialize_threadline_agent()
    except Exception as e:
        logger.error(f"Failed to initialize resources: {e}")
        raise ConfigurationException(
            message="Application startup failed",
            details={"initialization_stage": "threadline_agent"},
            original_error=e,
        )

    app.state.check_service = CheckService(
        evaluator=ThreadlineEvaluator(agent), timeout=settings.threadline_timeout
    )
    app_state.mark_initialized()
    logger.info(f"Check service ready with model: {settings.ai_model}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    logger.info(f"Starting Threadline Check Service in {settings.environment} mode")
    logger.info(
        f"Rate limiting: {'enabled' if settings.rate_limit_enabled else 'disabled'}"
    )

    await initialize_resources(app)

    yield

    logger.info("Shutting down Threadline Check Service")
    app.state.check_service = None
    app_state.clear()
    logger.info("Graceful shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Threadline Check Service",
    version=get_version(),
    description="Evaluates code changes against user-authored threadlines",
    lifespan=lifespan,
)
app.state.limiter = checks.limiter
app.state.check_store = InMemoryCheckStore()
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def _error_content(error: str, message: str, error_type: str) -> dict:
    return {
        "error": error,
        "message": message,
        "type": error_type,
        "timestamp": str(asyncio.get_event_loop().time()),
    }


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle FastAPI HTTPException with enhanced logging"""
    if exc.status_code >= 500:
        log_method = logger.error
    elif exc.status_code >= 400:
        log_method = logger.warning
    else:
        log_method = logger.info

    log_method(
        f"HTTP {exc.status_code}: {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": str(request.url.path),
            "method": request.method,
            "client_host": request.client.host if request.client else None,
        },
    )

    if isinstance(exc.detail, dict):
        content = dict(exc.detail)
        content.setdefault("timestamp", str(asyncio.get_event_loop().time()))
    else:
        content = _error_content("HTTP Error", str(exc.detail), "http_error")

    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(CheckValidationException)
async def check_validation_exception_handler(
    request: Request, exc: CheckValidationException
):
    """Malformed check request; nothing was dispatched"""
    logger.warning(
        f"Check validation failed: {exc.message}",
        extra={
            "exception_type": "CheckValidationException",
            "details": exc.details,
            "path": str(request.url.path),
        },
    )
    content = _error_content("Invalid Check Request", exc.message, "validation_error")
    if exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(SecurityException)
async def security_exception_handler(request: Request, exc: SecurityException):
    """Handle security-related exceptions"""
    logger.warning(
        f"Security exception: {exc.message}",
        extra={
            "exception_type": "SecurityException",
            "details": exc.details,
            "path": str(request.url.path),
            "client_host": request.client.host if request.client else None,
        },
    )
    return JSONResponse(
        status_code=401
        if "authentication" in exc.details.get("security_context", "")
        else 403,
        content=_error_content("Security Error", "Access denied", "security_error"),
    )


@app.exception_handler(CheckNotFoundException)
async def check_not_found_exception_handler(
    request: Request, exc: CheckNotFoundException
):
    logger.info(
        f"Not found: {exc.message}",
        extra={"details": exc.details, "path": str(request.url.path)},
    )
    return JSONResponse(
        status_code=404,
        content=_error_content("Not Found", exc.message, "not_found"),
    )


@app.exception_handler(AIProviderException)
async def ai_provider_exception_handler(request: Request, exc: AIProviderException):
    """Handle AI provider exceptions"""
    logger.error(
        f"AI provider error: {exc.message}",
        extra={
            "exception_type": "AIProviderException",
            "details": exc.details,
            "provider": exc.provider,
            "model": exc.model,
            "path": str(request.url.path),
        },
    )
    return JSONResponse(
        status_code=503,
        content=_error_content(
            "AI Service Unavailable",
            "Generation service is temporarily unavailable",
            "service_unavailable",
        ),
    )


@app.exception_handler(ConfigurationException)
async def configuration_exception_handler(
    request: Request, exc: ConfigurationException
):
    """Handle configuration exceptions"""
    logger.error(
        f"Configuration error: {exc.message}",
        extra={
            "exception_type": "ConfigurationException",
            "details": exc.details,
            "path": str(request.url.path),
        },
    )
    return JSONResponse(
        status_code=503,
        content=_error_content(
            "Service Configuration Error",
            "Service is misconfigured. Please contact administrator.",
            "configuration_error",
        ),
    )


@app.exception_handler(ThreadlineException)
async def threadline_exception_handler(request: Request, exc: ThreadlineException):
    """Handle any other ThreadlineException (catch-all)"""
    logger.error(
        f"Threadline service error: {exc.message}",
        extra={
            "exception_type": type(exc).__name__,
            "details": exc.details,
            "path": str(request.url.path),
        },
    )
    return JSONResponse(
        status_code=500,
        content=_error_content(
            "Internal Service Error",
            "An error occurred while processing your request",
            "internal_error",
        ),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle any unexpected exceptions"""
    logger.error(
        f"Unexpected error: {str(exc)}",
        extra={
            "exception_type": type(exc).__name__,
            "path": str(request.url.path),
            "client_host": request.client.host if request.client else None,
        },
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content=_error_content(
            "Internal Server Error", "An unexpected error occurred", "unexpected_error"
        ),
    )


if settings.allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Correlation-ID"],
    )
    logger.info(f"CORS enabled for origins: {settings.allowed_origins}")
else:
    logger.warning("No CORS origins configured - CORS middleware not added")

# Added last runs first: tracing wraps the size check
app.add_middleware(SecurityMiddleware)
app.add_middleware(RequestTracingMiddleware)

app.include_router(checks.router, prefix="/api", tags=["checks"])
app.include_router(health.router, prefix="/health", tags=["health"])


@app.get("/")
async def root():
    """Root endpoint with system status"""
    return {
        "service": "Threadline Check Service",
        "version": get_version(),
        "status": "running" if app_state.initialized else "starting",
        "environment": settings.environment,
        "features": {
            "rate_limiting": settings.rate_limit_enabled,
            "cors": len(settings.allowed_origins) > 0,
            "api_key_required": settings.threadline_api_key is not None,
        },
    }


if __name__ == "__main__":
    uvicorn.run(
        "threadline.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
