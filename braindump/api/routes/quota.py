"""
Quota Routes

Read-only daily limit check. Calling it never consumes a dump.
"""

from fastapi import APIRouter

from braindump.api.dependencies import CurrentUserId, QuotaServiceDep
from braindump.domain.quota import DumpLimit


router = APIRouter()


@router.get("/quota", response_model=DumpLimit)
async def check_daily_limit(user_id: CurrentUserId, quota: QuotaServiceDep):
    """Same contract as the old ``check_daily_limit`` RPC."""
    return await quota.check_limit(user_id)
