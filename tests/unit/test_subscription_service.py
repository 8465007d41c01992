"""
Unit tests for SubscriptionService.

PayPal is an AsyncMock; profiles live in the in-memory repository.
"""

import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from braindump.domain.auth import AuthenticatedUser
from braindump.domain.services import SubscriptionService
from braindump.domain.subscription import SubscriptionStatus
from braindump.infrastructure.exceptions import BillingServiceError, ValidationError
from braindump.infrastructure.payments import CreatedSubscription, RemoteSubscription

from conftest import FIXED_NOW


@pytest.fixture
def paypal():
    mock = MagicMock()
    mock.create_subscription = AsyncMock(
        return_value=CreatedSubscription("I-123", "https://paypal.com/approve/I-123")
    )
    mock.get_subscription = AsyncMock()
    return mock


@pytest.fixture
def service(fake_profiles, paypal):
    return SubscriptionService(fake_profiles, paypal, daily_limit=10, clock=lambda: FIXED_NOW)


@pytest.fixture
def user(user_id):
    return AuthenticatedUser(id=user_id, email="jane@example.com")


class TestCreateSubscription:

    async def test_stores_subscription_id(self, service, fake_profiles, paypal, user):
        result = await service.create_subscription(user, "https://app.example.com")

        assert result.approval_url == "https://paypal.com/approve/I-123"
        assert result.subscription_id == "I-123"
        paypal.create_subscription.assert_awaited_once_with(
            "jane@example.com", "https://app.example.com"
        )
        profile = fake_profiles.profiles[user.id]
        assert profile.paypal_subscription_id == "I-123"
        assert profile.subscription_status == "free"
        assert fake_profiles.commits == 1

    async def test_requires_email(self, service, paypal, user_id):
        with pytest.raises(ValidationError):
            await service.create_subscription(AuthenticatedUser(id=user_id), "https://app")

        paypal.create_subscription.assert_not_awaited()

    async def test_billing_failure_leaves_profile_untouched(self, service, fake_profiles, paypal, user):
        paypal.create_subscription.side_effect = BillingServiceError("boom", step="plan")

        with pytest.raises(BillingServiceError):
            await service.create_subscription(user, "https://app")

        assert user.id not in fake_profiles.profiles
        assert fake_profiles.commits == 0


class TestVerifySubscription:

    async def test_active_becomes_premium(self, service, fake_profiles, paypal, user):
        paypal.get_subscription.return_value = RemoteSubscription(
            "I-123", "ACTIVE", "2026-04-14T10:00:00Z"
        )

        result = await service.verify_subscription(user, "I-123")

        assert result.success is True
        assert result.subscription_status == SubscriptionStatus.PREMIUM
        profile = fake_profiles.profiles[user.id]
        assert profile.subscription_status == "premium"
        assert profile.subscription_end == datetime(2026, 4, 14, 10, 0, tzinfo=timezone.utc)
        assert profile.paypal_subscription_id == "I-123"

    async def test_cancelled_downgrades(self, service, fake_profiles, paypal, user):
        fake_profiles.seed(
            user.id,
            subscription_status="premium",
            subscription_end=FIXED_NOW + timedelta(days=10),
        )
        paypal.get_subscription.return_value = RemoteSubscription("I-123", "CANCELLED")

        result = await service.verify_subscription(user, "I-123")

        assert result.subscription_status == SubscriptionStatus.FREE
        profile = fake_profiles.profiles[user.id]
        assert profile.subscription_status == "free"
        assert profile.subscription_end is None

    async def test_verification_is_repeatable(self, service, fake_profiles, paypal, user):
        paypal.get_subscription.return_value = RemoteSubscription("I-123", "ACTIVE", None)

        first = await service.verify_subscription(user, "I-123")
        second = await service.verify_subscription(user, "I-123")

        assert first == second
        assert first.subscription_end == FIXED_NOW + timedelta(days=30)
        assert fake_profiles.commits == 2

    async def test_foreign_subscription_id_is_logged(self, service, fake_profiles, paypal, user, caplog):
        fake_profiles.seed(user.id, paypal_subscription_id="I-MINE")
        paypal.get_subscription.return_value = RemoteSubscription("I-OTHER", "ACTIVE", None)

        with caplog.at_level(logging.WARNING):
            await service.verify_subscription(user, "I-OTHER")

        assert "differs from the stored subscription I-MINE" in caplog.text

    async def test_matching_subscription_id_is_not_logged(self, service, fake_profiles, paypal, user, caplog):
        fake_profiles.seed(user.id, paypal_subscription_id="I-123")
        paypal.get_subscription.return_value = RemoteSubscription("I-123", "ACTIVE", None)

        with caplog.at_level(logging.WARNING):
            await service.verify_subscription(user, "I-123")

        assert "differs from the stored subscription" not in caplog.text


class TestGetStatus:

    async def test_free_user_usage(self, service, fake_profiles, user_id):
        fake_profiles.seed(user_id, last_dump_date=FIXED_NOW.date(), daily_dump_count=3)

        status = await service.get_status(user_id)

        assert status.subscription_status == SubscriptionStatus.FREE
        assert status.is_premium is False
        assert status.daily_dump_count == 3
        assert status.remaining_dumps == 7
        assert status.daily_limit == 10

    async def test_missing_profile(self, service, user_id):
        status = await service.get_status(user_id)

        assert status.daily_dump_count == 0
        assert status.remaining_dumps == 10
        assert status.paypal_subscription_id is None

    async def test_expired_premium_is_reported_as_not_premium(self, service, fake_profiles, user_id):
        fake_profiles.seed(
            user_id,
            subscription_status="premium",
            subscription_end=FIXED_NOW - timedelta(days=1),
        )

        status = await service.get_status(user_id)

        assert status.subscription_status == SubscriptionStatus.PREMIUM
        assert status.is_premium is False
        assert status.remaining_dumps == 10
