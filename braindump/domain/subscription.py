"""
Subscription Domain Models

Enums, DTOs and status mapping for the premium subscription billed
through PayPal. Profiles only know two states: free and premium.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Tuple
from urllib.parse import parse_qs, urlparse

from pydantic import BaseModel, Field, field_validator


class SubscriptionStatus(str, Enum):
    """Local subscription status stored on the profile."""
    FREE = "free"
    PREMIUM = "premium"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SubscriptionStatus":
        """Read a stored value; anything unrecognised counts as free."""
        try:
            return cls(value) if value else cls.FREE
        except ValueError:
            return cls.FREE


# PayPal reports APPROVAL_PENDING, APPROVED, ACTIVE, SUSPENDED, CANCELLED, EXPIRED
PAYPAL_ACTIVE_STATUS = "ACTIVE"

# Query keys PayPal may use when redirecting back to /payment-success
RETURN_URL_SUBSCRIPTION_KEYS = ("subscription_id", "token")

# Seconds to wait after the redirect before verifying, so PayPal can settle
PAYMENT_VERIFICATION_DELAY = 3.0

PREMIUM_FEATURES = [
    "Unlimited daily brain dumps",
    "Advanced AI processing",
    "Priority support",
]


# =============================================================================
# Status Rules
# =============================================================================

def is_premium_active(
    status: SubscriptionStatus,
    subscription_end: Optional[datetime],
    now: datetime,
) -> bool:
    """
    Premium is evaluated lazily on read.

    Nothing downgrades a profile when the billing period ends, so a premium
    row whose ``subscription_end`` has passed is treated as free.
    """
    if status != SubscriptionStatus.PREMIUM:
        return False
    if subscription_end is None:
        return True
    if subscription_end.tzinfo is None:
        subscription_end = subscription_end.replace(tzinfo=timezone.utc)
    return subscription_end > now


def parse_paypal_time(value: Optional[str]) -> Optional[datetime]:
    """Parse PayPal's RFC 3339 timestamps (``2025-08-08T10:00:00Z``)."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def map_remote_status(
    remote_status: Optional[str],
    next_billing_time: Optional[str],
    now: datetime,
    fallback_days: int = 30,
) -> Tuple[SubscriptionStatus, Optional[datetime]]:
    """
    Map a PayPal subscription status onto local profile state.

    ACTIVE -> premium until the next billing time (or ``fallback_days``
    from now when PayPal does not report one). Anything else -> free.
    """
    if remote_status != PAYPAL_ACTIVE_STATUS:
        return SubscriptionStatus.FREE, None

    subscription_end = parse_paypal_time(next_billing_time)
    if subscription_end is None:
        subscription_end = now + timedelta(days=fallback_days)
    return SubscriptionStatus.PREMIUM, subscription_end


def subscription_id_from_return_url(url: str) -> Optional[str]:
    """Pull the subscription id out of PayPal's return URL."""
    params = parse_qs(urlparse(url).query)
    for key in RETURN_URL_SUBSCRIPTION_KEYS:
        values = params.get(key)
        if values and values[0]:
            return values[0]
    return None


# =============================================================================
# Request/Response DTOs
# =============================================================================

class CreateSubscriptionResponse(BaseModel):
    """Response DTO for create-paypal-subscription."""
    approval_url: str
    subscription_id: str


class VerifySubscriptionRequest(BaseModel):
    """Request DTO for verify-paypal-subscription."""
    subscription_id: str = Field(..., min_length=1, max_length=100)

    @field_validator("subscription_id")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Subscription ID is required")
        return v.strip()


class VerifySubscriptionResponse(BaseModel):
    """Response DTO for verify-paypal-subscription."""
    success: bool = True
    subscription_status: SubscriptionStatus
    subscription_end: Optional[datetime] = None


class SubscriptionStatusResponse(BaseModel):
    """Current subscription and usage for the signed-in user."""
    subscription_status: SubscriptionStatus
    subscription_end: Optional[datetime] = None
    paypal_subscription_id: Optional[str] = None
    is_premium: bool = Field(description="Premium and not past subscription_end")
    daily_dump_count: int
    remaining_dumps: int
    daily_limit: int
    features: list[str] = Field(default_factory=lambda: list(PREMIUM_FEATURES))
