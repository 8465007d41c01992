"""
Application Services

Business flows composed from repositories and gateways:

- QuotaService: read-only limit check and the per-batch counter increment
- DumpService: submit (check -> categorize -> insert -> increment -> push),
  list, update, delete and stats
- SubscriptionService: PayPal checkout creation, verification and the
  subscription/usage view

Services never commit implicitly. A flow that publishes a realtime event
commits first, so subscribers are never told about rows that could
still roll back.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from braindump.domain.auth import AuthenticatedUser
from braindump.domain.categories import ProcessedItem
from braindump.domain.dumps import (
    DumpChangeEvent,
    DumpResponse,
    DumpStatsResponse,
    DumpUpdateRequest,
    SubmitDumpResponse,
    compute_stats,
)
from braindump.domain.quota import (
    DumpLimit,
    QuotaSnapshot,
    advance_counter,
    dumps_used_on,
    evaluate_limit,
)
from braindump.domain.subscription import (
    CreateSubscriptionResponse,
    SubscriptionStatusResponse,
    VerifySubscriptionResponse,
    map_remote_status,
)
from braindump.infrastructure.ai.categorization_service import CategorizationService
from braindump.infrastructure.db.repositories import (
    BrainDumpRepository,
    ProfileRepository,
)
from braindump.infrastructure.exceptions import (
    DatabaseError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)
from braindump.infrastructure.payments import PayPalService
from braindump.infrastructure.realtime.broker import RealtimeBroker


logger = logging.getLogger(__name__)


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Quota
# =============================================================================

class QuotaService:
    """
    Daily quota on top of the profile row.

    Dates are UTC calendar days.
    """

    def __init__(
        self,
        profiles: ProfileRepository,
        daily_limit: int,
        clock: Optional[Clock] = None,
    ):
        self.profiles = profiles
        self.daily_limit = daily_limit
        self._clock = clock or utc_now

    def now(self) -> datetime:
        return self._clock()

    async def snapshot(self, user_id: UUID) -> QuotaSnapshot:
        profile = await self.profiles.get_by_user_id(user_id)
        return QuotaSnapshot.from_profile(profile)

    async def check_limit(self, user_id: UUID) -> DumpLimit:
        """Whether the user may dump now. Never writes."""
        now = self.now()
        snapshot = await self.snapshot(user_id)
        return evaluate_limit(snapshot, self.daily_limit, now.date(), now)

    async def increment_dump(self, user_id: UUID) -> int:
        """
        Count one accepted batch against today.

        Locks the profile row (creating it when absent) so concurrent
        submissions by the same user cannot lose an increment.

        Returns:
            The counter value for today after the increment
        """
        today = self.now().date()
        profile = await self.profiles.lock_for_update(user_id)
        last_dump_date, count = advance_counter(QuotaSnapshot.from_profile(profile), today)
        await self.profiles.set_dump_counter(profile, last_dump_date, count)
        logger.debug(f"User {user_id} dump counter now {count} for {today}")
        return count

    async def reset_stale_counters(self) -> int:
        """Maintenance: persist the zero that stale counters already read as."""
        count = await self.profiles.reset_stale_counters(self.now().date())
        await self.profiles.commit()
        return count


# =============================================================================
# Dumps
# =============================================================================

class DumpService:
    """Brain dump flows for one request."""

    def __init__(
        self,
        dumps: BrainDumpRepository,
        quota: QuotaService,
        categorizer: CategorizationService,
        broker: RealtimeBroker,
    ):
        self.dumps = dumps
        self.quota = quota
        self.categorizer = categorizer
        self.broker = broker

    async def categorize(self, text: str) -> List[ProcessedItem]:
        return await self.categorizer.categorize(text)

    async def submit(self, user_id: UUID, text: str) -> SubmitDumpResponse:
        """
        Categorize and save one submission.

        Raises:
            QuotaExceededError: Free user already at today's limit
            DatabaseError: The rows could not be saved
        """
        limit = await self.quota.check_limit(user_id)
        if not limit.can_dump:
            logger.info(f"User {user_id} hit the daily dump limit")
            raise QuotaExceededError(daily_limit=self.quota.daily_limit)

        # No connection may stay checked out while the model call is pending
        await self.quota.profiles.release()
        items = await self.categorize(text)

        try:
            rows = await self.dumps.create_many_for_user(user_id, items)
            await self.quota.increment_dump(user_id)
            await self.dumps.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save brain dump for user {user_id}: {e}")
            raise DatabaseError(
                "Failed to save brain dump",
                operation="insert",
                table="brain_dumps",
                original_error=e,
            )

        saved = [DumpResponse.from_model(row) for row in rows]
        for dump in saved:
            self.broker.publish(user_id, DumpChangeEvent.inserted(dump))

        logger.info(f"Saved {len(saved)} dump(s) for user {user_id}")
        return SubmitDumpResponse(
            items=saved,
            quota=await self.quota.check_limit(user_id),
        )

    async def list_dumps(self, user_id: UUID, limit: Optional[int] = None) -> List[DumpResponse]:
        rows = await self.dumps.list_for_user(user_id, limit=limit)
        return [DumpResponse.from_model(row) for row in rows]

    async def update(
        self,
        user_id: UUID,
        dump_id: UUID,
        data: DumpUpdateRequest,
    ) -> DumpResponse:
        """
        Raises:
            NotFoundError: No such dump for this user
        """
        try:
            row = await self.dumps.update_owned(
                user_id, dump_id, completed=data.completed, text=data.text
            )
            if row is None:
                raise NotFoundError(
                    "Brain dump not found", operation="update", table="brain_dumps"
                )
            await self.dumps.commit()
        except SQLAlchemyError as e:
            raise DatabaseError(
                "Failed to update brain dump",
                operation="update",
                table="brain_dumps",
                original_error=e,
            )

        dump = DumpResponse.from_model(row)
        self.broker.publish(user_id, DumpChangeEvent.updated(dump))
        return dump

    async def delete(self, user_id: UUID, dump_id: UUID) -> None:
        """
        Raises:
            NotFoundError: No such dump for this user
        """
        try:
            deleted = await self.dumps.delete_owned(user_id, dump_id)
            if not deleted:
                raise NotFoundError(
                    "Brain dump not found", operation="delete", table="brain_dumps"
                )
            await self.dumps.commit()
        except SQLAlchemyError as e:
            raise DatabaseError(
                "Failed to delete brain dump",
                operation="delete",
                table="brain_dumps",
                original_error=e,
            )

        self.broker.publish(user_id, DumpChangeEvent.deleted(dump_id))

    async def stats(self, user_id: UUID) -> DumpStatsResponse:
        return compute_stats(await self.list_dumps(user_id))


# =============================================================================
# Subscriptions
# =============================================================================

class SubscriptionService:
    """PayPal checkout and the profile's subscription view."""

    def __init__(
        self,
        profiles: ProfileRepository,
        paypal: PayPalService,
        daily_limit: int,
        fallback_days: int = 30,
        clock: Optional[Clock] = None,
    ):
        self.profiles = profiles
        self.paypal = paypal
        self.daily_limit = daily_limit
        self.fallback_days = fallback_days
        self._clock = clock or utc_now

    async def create_subscription(
        self,
        user: AuthenticatedUser,
        origin: str,
    ) -> CreateSubscriptionResponse:
        """
        Start a PayPal checkout and remember the subscription id.

        Raises:
            ValidationError: The account has no e-mail address
            BillingServiceError: Any PayPal step failed
        """
        if not user.email:
            raise ValidationError("An e-mail address is required to subscribe")

        created = await self.paypal.create_subscription(user.email, origin)

        await self.profiles.upsert_subscription(
            user.id, paypal_subscription_id=created.subscription_id
        )
        await self.profiles.commit()
        logger.info(f"[CREATE-PAYPAL-SUBSCRIPTION] Subscription stored for user {user.id}")

        return CreateSubscriptionResponse(
            approval_url=created.approval_url,
            subscription_id=created.subscription_id,
        )

    async def verify_subscription(
        self,
        user: AuthenticatedUser,
        subscription_id: str,
    ) -> VerifySubscriptionResponse:
        """
        Pull the subscription from PayPal and write the mapped status.

        The write happens on every call, whatever the remote status, so
        repeating a verification is harmless.
        """
        profile = await self.profiles.get_by_user_id(user.id)
        stored_id = profile.paypal_subscription_id if profile else None
        if stored_id != subscription_id:
            logger.warning(
                f"[VERIFY-PAYPAL-SUBSCRIPTION] User {user.id} is verifying {subscription_id}, "
                f"which differs from the stored subscription {stored_id}"
            )

        remote = await self.paypal.get_subscription(subscription_id)
        status, subscription_end = map_remote_status(
            remote.status,
            remote.next_billing_time,
            self._clock(),
            fallback_days=self.fallback_days,
        )

        await self.profiles.upsert_subscription(
            user.id,
            paypal_subscription_id=subscription_id,
            subscription_status=status.value,
            subscription_end=subscription_end,
            set_status=True,
        )
        await self.profiles.commit()
        logger.info(
            f"[VERIFY-PAYPAL-SUBSCRIPTION] Profile updated for user {user.id}: "
            f"{status.value} until {subscription_end}"
        )

        return VerifySubscriptionResponse(
            subscription_status=status,
            subscription_end=subscription_end,
        )

    async def get_status(self, user_id: UUID) -> SubscriptionStatusResponse:
        now = self._clock()
        profile = await self.profiles.get_by_user_id(user_id)
        snapshot = QuotaSnapshot.from_profile(profile)
        limit = evaluate_limit(snapshot, self.daily_limit, now.date(), now)

        return SubscriptionStatusResponse(
            subscription_status=snapshot.subscription_status,
            subscription_end=snapshot.subscription_end,
            paypal_subscription_id=profile.paypal_subscription_id if profile else None,
            is_premium=limit.is_premium,
            daily_dump_count=dumps_used_on(snapshot, now.date()),
            remaining_dumps=limit.remaining_dumps,
            daily_limit=self.daily_limit,
        )
