"""
Daily Quota State Machine

Pure decision logic for the freemium allowance. Free users get a fixed
number of brain dumps per calendar day; premium users are unlimited.

A stored counter only counts for the date in ``last_dump_date``: a counter
from an earlier date is stale and reads as zero, so no reset has to run
before a check is correct.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field

from braindump.domain.subscription import SubscriptionStatus, is_premium_active


UNLIMITED = -1


class QuotaState(str, Enum):
    """Per-profile quota states."""
    FREE_UNDER_LIMIT = "free_under_limit"
    FREE_AT_LIMIT = "free_at_limit"
    PREMIUM = "premium"


class DumpLimit(BaseModel):
    """Result of a limit check (same shape as the old check_daily_limit RPC)."""
    can_dump: bool
    remaining_dumps: int = Field(description="-1 means unlimited")
    is_premium: bool


@dataclass(frozen=True)
class QuotaSnapshot:
    """The profile fields the quota rules read."""
    subscription_status: SubscriptionStatus = SubscriptionStatus.FREE
    subscription_end: Optional[datetime] = None
    last_dump_date: Optional[date] = None
    daily_dump_count: int = 0

    @classmethod
    def from_profile(cls, profile) -> "QuotaSnapshot":
        """Build a snapshot from a Profile row; a missing row is a fresh free profile."""
        if profile is None:
            return cls()
        return cls(
            subscription_status=SubscriptionStatus.parse(profile.subscription_status),
            subscription_end=profile.subscription_end,
            last_dump_date=profile.last_dump_date,
            daily_dump_count=profile.daily_dump_count or 0,
        )


def dumps_used_on(snapshot: QuotaSnapshot, today: date) -> int:
    """Dumps counted against ``today``."""
    if snapshot.last_dump_date is None or snapshot.last_dump_date < today:
        return 0
    return max(snapshot.daily_dump_count, 0)


def evaluate_limit(
    snapshot: QuotaSnapshot,
    daily_limit: int,
    today: date,
    now: datetime,
) -> DumpLimit:
    """
    Decide whether another dump is allowed today.

    Never mutates anything; calling it repeatedly gives the same answer
    until the counter or the date changes.
    """
    if is_premium_active(snapshot.subscription_status, snapshot.subscription_end, now):
        return DumpLimit(can_dump=True, remaining_dumps=UNLIMITED, is_premium=True)

    used = dumps_used_on(snapshot, today)
    remaining = max(daily_limit - used, 0)
    return DumpLimit(
        can_dump=used < daily_limit,
        remaining_dumps=remaining,
        is_premium=False,
    )


def advance_counter(snapshot: QuotaSnapshot, today: date) -> Tuple[date, int]:
    """
    Counter values after one accepted dump batch.

    Returns:
        (last_dump_date, daily_dump_count) to persist
    """
    if snapshot.last_dump_date == today:
        return today, max(snapshot.daily_dump_count, 0) + 1
    return today, 1


def quota_state(
    snapshot: QuotaSnapshot,
    daily_limit: int,
    today: date,
    now: datetime,
) -> QuotaState:
    limit = evaluate_limit(snapshot, daily_limit, today, now)
    if limit.is_premium:
        return QuotaState.PREMIUM
    if limit.can_dump:
        return QuotaState.FREE_UNDER_LIMIT
    return QuotaState.FREE_AT_LIMIT
