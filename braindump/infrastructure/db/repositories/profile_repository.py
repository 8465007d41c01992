"""
Profile Repository for BrainDump

Profile lookups, the quota counter and subscription fields. Profiles
are normally created by the ``handle_new_user`` trigger; the methods
here create one on demand for users that predate it.
"""

import logging
from datetime import date, datetime
from typing import Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy import or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from braindump.infrastructure.db.models.base import utcnow
from braindump.infrastructure.db.models.profile import Profile, ProfileUpdate
from braindump.infrastructure.db.repositories.base_repository import BaseRepository


logger = logging.getLogger(__name__)


class ProfileRepository(BaseRepository[Profile]):
    """
    Repository for Profile queries.

    - get_by_user_id / get_or_create: profile lookup
    - lock_for_update: row lock for the counter increment
    - upsert_subscription: written after PayPal calls
    - reset_stale_counters: daily maintenance
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Profile, session)

    async def get_by_user_id(
        self,
        user_id: UUID,
        for_update: bool = False,
    ) -> Optional[Profile]:
        """
        Get a profile by the authenticated user's ID.

        Args:
            user_id: The auth user's UUID (not profile ID)
            for_update: Hold a row lock until the transaction ends
        """
        stmt = self._owned(user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_for_user(
        self,
        user_id: UUID,
        display_name: Optional[str] = None,
    ) -> Profile:
        now = utcnow()
        profile = Profile(
            user_id=user_id,
            display_name=display_name,
            created_at=now,
            updated_at=now,
        )
        return await self.add(profile)

    async def get_or_create(
        self,
        user_id: UUID,
        display_name: Optional[str] = None,
    ) -> Tuple[Profile, bool]:
        """
        Get existing profile or create a new one.

        Returns:
            Tuple of (Profile, was_created)
        """
        existing = await self.get_by_user_id(user_id)
        if existing:
            return existing, False

        created = await self.create_for_user(user_id, display_name)
        logger.info(f"Created missing profile for user {user_id}")
        return created, True

    async def lock_for_update(self, user_id: UUID) -> Profile:
        """
        Lock the user's profile row, inserting a fresh one if needed.

        The insert ignores conflicts so two first-ever dumps racing each
        other still end up on the same row.
        """
        now = utcnow()
        stmt = pg_insert(Profile).values(
            id=uuid4(),
            user_id=user_id,
            daily_dump_count=0,
            created_at=now,
            updated_at=now,
        ).on_conflict_do_nothing(index_elements=["user_id"])
        await self.session.execute(stmt)

        profile = await self.get_by_user_id(user_id, for_update=True)
        # Populated by the insert above unless the row vanished in between
        if profile is None:
            raise RuntimeError(f"Profile for user {user_id} disappeared during lock")
        return profile

    async def set_dump_counter(
        self,
        profile: Profile,
        last_dump_date: date,
        daily_dump_count: int,
    ) -> Profile:
        profile.last_dump_date = last_dump_date
        profile.daily_dump_count = daily_dump_count
        profile.updated_at = utcnow()
        self.session.add(profile)
        await self.session.flush()
        return profile

    async def update_by_user_id(
        self,
        user_id: UUID,
        data: ProfileUpdate,
    ) -> Optional[Profile]:
        """Apply user-editable fields. Returns None if there is no profile."""
        profile = await self.get_by_user_id(user_id)
        if not profile:
            return None

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(profile, field, value)
        profile.updated_at = utcnow()

        self.session.add(profile)
        await self.session.flush()
        await self.session.refresh(profile)
        return profile

    async def upsert_subscription(
        self,
        user_id: UUID,
        *,
        paypal_subscription_id: Optional[str] = None,
        subscription_status: Optional[str] = None,
        subscription_end: Optional[datetime] = None,
        set_status: bool = False,
    ) -> Profile:
        """
        Write subscription fields, creating the profile when missing.

        ``paypal_subscription_id`` is only written when given. Status and
        end are written together when ``set_status`` is true, so a
        non-active verification can clear ``subscription_end``.
        """
        now = utcnow()
        values = {"user_id": user_id, "updated_at": now}
        if paypal_subscription_id is not None:
            values["paypal_subscription_id"] = paypal_subscription_id
        if set_status:
            values["subscription_status"] = subscription_status
            values["subscription_end"] = subscription_end

        stmt = pg_insert(Profile).values(
            id=uuid4(),
            created_at=now,
            daily_dump_count=0,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={key: getattr(stmt.excluded, key) for key in values if key != "user_id"},
        )
        await self.session.execute(stmt)

        profile = await self.get_by_user_id(user_id)
        await self.session.refresh(profile)
        return profile

    async def reset_stale_counters(self, today: date) -> int:
        """
        Zero every counter not dated ``today``.

        Returns:
            Number of profiles reset
        """
        stmt = (
            update(Profile)
            .where(or_(Profile.last_dump_date < today, Profile.last_dump_date.is_(None)))
            .values(daily_dump_count=0, last_dump_date=today, updated_at=utcnow())
        )
        result = await self.session.execute(stmt)
        count = result.rowcount or 0
        logger.info(f"Reset daily dump counters for {count} profiles")
        return count
