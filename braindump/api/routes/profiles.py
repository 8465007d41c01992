"""
Profile Routes

The signed-in user's profile. The first GET creates the profile for
accounts that predate the ``handle_new_user`` trigger.
"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from braindump.api.dependencies import CurrentUser, SessionDep
from braindump.infrastructure.db.dependencies import ProfileRepoDep
from braindump.infrastructure.db.models import ProfileUpdate
from braindump.infrastructure.exceptions import NotFoundError


router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================

class ProfileUpdateRequest(BaseModel):
    display_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=2048)


class ProfileResponse(BaseModel):
    id: str
    user_id: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    subscription_status: str
    subscription_end: Optional[datetime] = None
    last_dump_date: Optional[date] = None
    daily_dump_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, profile) -> "ProfileResponse":
        return cls(
            id=str(profile.id),
            user_id=str(profile.user_id),
            display_name=profile.display_name,
            avatar_url=profile.avatar_url,
            subscription_status=profile.subscription_status,
            subscription_end=profile.subscription_end,
            last_dump_date=profile.last_dump_date,
            daily_dump_count=profile.daily_dump_count,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )


# ============================================================================
# Endpoints
# ============================================================================

@router.get("/profiles/me", response_model=ProfileResponse)
async def get_current_profile(user: CurrentUser, repo: ProfileRepoDep, session: SessionDep):
    """Get the current user's profile, creating it on first access."""
    display_name = user.email.split("@")[0] if user.email else None
    profile, created = await repo.get_or_create(user.id, display_name=display_name)
    if created:
        await session.commit()
    return ProfileResponse.from_model(profile)


@router.patch("/profiles/me", response_model=ProfileResponse)
async def update_current_profile(
    request: ProfileUpdateRequest,
    user: CurrentUser,
    repo: ProfileRepoDep,
):
    """Update display name and/or avatar."""
    profile = await repo.update_by_user_id(
        user.id, ProfileUpdate(**request.model_dump(exclude_unset=True))
    )
    if profile is None:
        raise NotFoundError("Profile not found", operation="update", table="profiles")
    return ProfileResponse.from_model(profile)
