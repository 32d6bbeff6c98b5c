"""
Threadline check and fix-detection endpoints
"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from threadline.api.middleware import get_correlation_id
from threadline.config.settings import settings
from threadline.exceptions import (
    CheckValidationException,
    ConfigurationException,
    SecurityException,
)
from threadline.models.threadline_models import ThreadlineCheckRequest
from threadline.services.check_service import (
    CheckService,
    log_audit_statistics,
    validate_check_request,
)
from threadline.services.check_store import CheckStore, build_check_record
from threadline.services.fix_detector import FixDetector

logger = logging.getLogger(__name__)
router = APIRouter()

# Rate limiter for check submissions
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


def get_check_service(request: Request) -> CheckService:
    """Check service created at startup"""
    check_service = getattr(request.app.state, "check_service", None)
    if check_service is None:
        raise ConfigurationException(
            message="Check service not initialized", config_key="check_service"
        )
    return check_service


def get_check_store(request: Request) -> CheckStore:
    check_store = getattr(request.app.state, "check_store", None)
    if check_store is None:
        raise ConfigurationException(
            message="Check store not initialized", config_key="check_store"
        )
    return check_store


def get_fix_detector(store: CheckStore = Depends(get_check_store)) -> FixDetector:
    return FixDetector(store)


def _verify_api_key(provided: Optional[str]) -> None:
    expected_key = settings.threadline_api_key
    if not expected_key:
        logger.warning("Threadline API key not configured - accepting all requests")
        return
    if provided is None or not hmac.compare_digest(
        provided.encode("utf-8"), expected_key.encode("utf-8")
    ):
        raise SecurityException(
            message="Invalid API key", security_context="authentication"
        )


def verify_api_key_header(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> None:
    """Verify the X-API-Key header on endpoints that carry no request body"""
    _verify_api_key(x_api_key)


def verify_check_credentials(check_request: ThreadlineCheckRequest) -> None:
    """Verify the body API key and account against configured values"""
    _verify_api_key(check_request.api_key)

    expected_account = settings.threadline_account
    if expected_account and check_request.account != expected_account:
        raise SecurityException(
            message="Account does not match configured account",
            security_context="authentication",
            details={"account": check_request.account},
        )


@router.post("/threadline-check")
@limiter.limit(settings.check_rate_limit)
async def run_threadline_check(
    request: Request,
    check_service: CheckService = Depends(get_check_service),
    store: CheckStore = Depends(get_check_store),
):
    """
    Evaluate every submitted threadline against the diff

    Returns the visible (non not_relevant) results, the outcome counters and
    the id under which the check was stored.
    """
    try:
        payload = await request.json()
    except ValueError as e:
        logger.error(f"JSON parsing failed: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    check_request = validate_check_request(payload)
    verify_check_credentials(check_request)

    if len(check_request.diff.encode("utf-8")) > settings.max_diff_size:
        raise CheckValidationException(
            message=f"Diff exceeds maximum size of {settings.max_diff_size} bytes",
            field="diff",
        )

    log_audit_statistics(check_request)
    report = await check_service.process_threadlines(check_request)

    record = build_check_record(check_request, report)
    try:
        await store.save_check(record)
        report.check_id = record.id
    except Exception as e:
        # The verdicts are still returned when audit storage fails
        logger.error(
            f"Failed to store check: {e}",
            extra={
                "correlation_id": get_correlation_id(),
                "error_type": type(e).__name__,
                "operation": "check_store_failed",
            },
            exc_info=True,
        )

    return JSONResponse(
        content=report.model_dump(mode="json", by_alias=True, exclude_none=True)
    )


@router.post(
    "/checks/{check_id}/detect-fixes", dependencies=[Depends(verify_api_key_header)]
)
@limiter.limit(settings.check_rate_limit)
async def detect_fixes(
    request: Request,
    check_id: str,
    detector: FixDetector = Depends(get_fix_detector),
):
    """Record fixes for violations of the previous check that are gone in this one"""
    result = await detector.detect_fixes(check_id)
    return JSONResponse(
        content=result.model_dump(mode="json", by_alias=True, exclude_none=True)
    )


@router.get("/fixes/{fix_id}/diff", dependencies=[Depends(verify_api_key_header)])
@limiter.limit(settings.check_rate_limit)
async def get_fix_diff(
    request: Request,
    fix_id: str,
    detector: FixDetector = Depends(get_fix_detector),
):
    result = await detector.get_fix_diff(fix_id)
    return JSONResponse(content=result.model_dump(mode="json", by_alias=True))
