"""
Admin Routes for Database Maintenance

Daily counter reset for cron. Protected by API key authentication.
"""

import logging
import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel

from braindump.api.dependencies import QuotaServiceDep, SettingsDep


logger = logging.getLogger(__name__)


# =============================================================================
# Admin API Key Authentication
# =============================================================================

async def verify_admin_api_key(
    settings: SettingsDep,
    x_admin_key: str = Header(..., description="Admin API key for protected operations"),
) -> bool:
    """Verify the X-Admin-Key header against ADMIN_API_KEY."""
    expected_key = settings.admin_api_key

    if not expected_key:
        logger.error("ADMIN_API_KEY environment variable not set")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin authentication not configured"
        )

    if not secrets.compare_digest(x_admin_key, expected_key):
        logger.warning("Invalid admin API key attempt")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin API key"
        )

    return True


router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(verify_admin_api_key)]
)


class ResetDailyCountsResult(BaseModel):
    success: bool
    profiles_reset: int


@router.post("/reset-daily-counts", response_model=ResetDailyCountsResult)
async def reset_daily_counts(quota: QuotaServiceDep):
    """
    Zero every counter dated before today.

    Checks already treat those counters as zero; this only tidies the
    stored values.
    """
    count = await quota.reset_stale_counters()
    logger.info(f"Admin reset of daily dump counts: {count} profiles")
    return ResetDailyCountsResult(success=True, profiles_reset=count)
