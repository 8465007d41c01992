"""
Profile SQLModel

One row per user: display info, subscription state and the daily dump
counter. Table name matches the Supabase table 'profiles'.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from braindump.domain.subscription import SubscriptionStatus
from braindump.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class Profile(UUIDMixin, TimestampMixin, table=True):
    """Profile database table model."""

    __tablename__ = "profiles"

    # Owning auth.users row
    user_id: UUID = Field(
        ...,
        unique=True,
        index=True,
        description="Reference to authenticated user"
    )

    display_name: Optional[str] = Field(default=None, max_length=100)
    avatar_url: Optional[str] = Field(default=None)

    # Subscription
    subscription_status: str = Field(
        default=SubscriptionStatus.FREE.value,
        description="free | premium"
    )
    subscription_end: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),
    )
    paypal_subscription_id: Optional[str] = Field(default=None)

    # Quota counter, only meaningful for last_dump_date
    last_dump_date: Optional[date] = Field(default=None)
    daily_dump_count: int = Field(default=0, ge=0)


class ProfileUpdate(SQLModel):
    """User-editable profile fields (all optional)."""

    display_name: Optional[str] = Field(default=None, max_length=100)
    avatar_url: Optional[str] = Field(default=None, max_length=2048)
