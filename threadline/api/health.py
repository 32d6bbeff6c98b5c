"""
Health check endpoints
"""

from datetime import datetime, timezone
from typing import Any, Dict
import logging

from fastapi import APIRouter, HTTPException

from threadline.config.settings import settings
from threadline.utils.version import get_version

logger = logging.getLogger(__name__)
router = APIRouter()

SERVICE_NAME = "Threadline Check Service"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/live")
async def liveness_check() -> Dict[str, Any]:
    """
    Liveness probe - checks if the service is running
    Used by Kubernetes/Docker to determine if container should be restarted
    """
    return {
        "status": "healthy",
        "timestamp": _timestamp(),
        "service": SERVICE_NAME,
    }


@router.get("/ready")
async def readiness_check() -> Dict[str, Any]:
    """
    Readiness probe - checks that the configured generation model can be built
    """
    checks = {}
    all_healthy = True

    try:
        from threadline.agents.providers import get_llm_model

        model = get_llm_model(settings.ai_model)
        checks["ai_model"] = {
            "status": "healthy",
            "model": settings.ai_model,
            "provider_type": type(model).__name__,
        }
    except Exception as e:
        logger.warning(f"AI model configuration check failed: {e}")
        checks["ai_model"] = {
            "status": "unhealthy",
            "error": str(e),
            "model": settings.ai_model,
        }
        all_healthy = False

    result = {
        "status": "healthy" if all_healthy else "unhealthy",
        "timestamp": _timestamp(),
        "checks": checks,
    }

    if not all_healthy:
        raise HTTPException(status_code=503, detail=result)

    return result


@router.get("/status")
async def status() -> Dict[str, Any]:
    """
    Detailed status endpoint for monitoring and debugging
    """
    return {
        "service": SERVICE_NAME,
        "version": get_version(),
        "timestamp": _timestamp(),
        "environment": settings.environment,
        "configuration": {
            "ai_model": settings.ai_model,
            "threadline_timeout": settings.threadline_timeout,
            "rate_limiting": settings.rate_limit_enabled,
            "debug_mode": settings.debug,
        },
    }
