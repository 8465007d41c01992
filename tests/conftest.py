"""
Test configuration and fixtures for BrainDump.

Provides settings, JWT helpers, in-memory repositories and an app whose
database-backed dependencies are swapped for those repositories.
"""

import os

# Settings are read at import time; give them what they require first.
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-that-is-long-enough-for-hs256")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

import time
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import jwt
import pytest
from fastapi.testclient import TestClient

from braindump.config.settings import Settings
from braindump.infrastructure.db.models import BrainDump, Profile, ProfileUpdate


TEST_JWT_SECRET = "test-jwt-secret-that-is-long-enough-for-hs256"
TEST_SUPABASE_URL = "https://test-project.supabase.co"

FIXED_NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Settings & Tokens
# =============================================================================

def make_settings(**overrides) -> Settings:
    values = dict(
        supabase_url=TEST_SUPABASE_URL,
        supabase_service_role_key="test-service-role-key",
        supabase_jwt_secret=TEST_JWT_SECRET,
        admin_api_key="test-admin-key",
        environment="testing",
        deepseek_api_key=None,
        google_api_key=None,
        gemini_api_key=None,
        paypal_client_id=None,
        paypal_client_secret=None,
        database_url=None,
        supabase_password=None,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_token(
    user_id: UUID,
    email: Optional[str] = "user@example.com",
    expires_in: int = 3600,
    secret: str = TEST_JWT_SECRET,
) -> str:
    payload = {
        "sub": str(user_id),
        "aud": "authenticated",
        "iss": f"{TEST_SUPABASE_URL}/auth/v1",
        "exp": int(time.time()) + expires_in,
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def user_id() -> UUID:
    return UUID("aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee")


@pytest.fixture
def other_user_id() -> UUID:
    return UUID("11111111-2222-3333-4444-555555555555")


@pytest.fixture
def auth_headers(user_id) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def other_auth_headers(other_user_id) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(other_user_id, email='other@example.com')}"}


# =============================================================================
# In-memory Repositories
# =============================================================================

class FakeProfileRepository:
    """Dict-backed stand-in for ProfileRepository."""

    def __init__(self):
        self.profiles: Dict[UUID, Profile] = {}
        self.commits = 0
        self.releases = 0

    def seed(self, user_id: UUID, **fields) -> Profile:
        profile = Profile(user_id=user_id, **fields)
        self.profiles[user_id] = profile
        return profile

    async def get_by_user_id(self, user_id: UUID, for_update: bool = False) -> Optional[Profile]:
        return self.profiles.get(user_id)

    async def create_for_user(self, user_id: UUID, display_name: Optional[str] = None) -> Profile:
        return self.seed(user_id, display_name=display_name)

    async def get_or_create(self, user_id: UUID, display_name: Optional[str] = None):
        if user_id in self.profiles:
            return self.profiles[user_id], False
        return await self.create_for_user(user_id, display_name), True

    async def lock_for_update(self, user_id: UUID) -> Profile:
        profile, _ = await self.get_or_create(user_id)
        return profile

    async def set_dump_counter(self, profile: Profile, last_dump_date: date, daily_dump_count: int) -> Profile:
        profile.last_dump_date = last_dump_date
        profile.daily_dump_count = daily_dump_count
        return profile

    async def update_by_user_id(self, user_id: UUID, data: ProfileUpdate) -> Optional[Profile]:
        profile = self.profiles.get(user_id)
        if profile is None:
            return None
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(profile, field, value)
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
        profile, _ = await self.get_or_create(user_id)
        if paypal_subscription_id is not None:
            profile.paypal_subscription_id = paypal_subscription_id
        if set_status:
            profile.subscription_status = subscription_status
            profile.subscription_end = subscription_end
        return profile

    async def reset_stale_counters(self, today: date) -> int:
        count = 0
        for profile in self.profiles.values():
            if profile.last_dump_date is None or profile.last_dump_date < today:
                profile.daily_dump_count = 0
                profile.last_dump_date = today
                count += 1
        return count

    async def commit(self) -> None:
        self.commits += 1

    async def release(self) -> None:
        self.releases += 1


class FakeBrainDumpRepository:
    """List-backed stand-in for BrainDumpRepository."""

    def __init__(self):
        self.rows: List[BrainDump] = []
        self.commits = 0
        self._tick = 0

    def _next_time(self) -> datetime:
        self._tick += 1
        return FIXED_NOW + timedelta(seconds=self._tick)

    def seed(self, user_id: UUID, text: str, category: str = "note", **fields) -> BrainDump:
        now = self._next_time()
        row = BrainDump(
            id=uuid4(), user_id=user_id, text=text, category=category,
            created_at=now, updated_at=now, **fields,
        )
        self.rows.append(row)
        return row

    async def list_for_user(self, user_id: UUID, limit: Optional[int] = None) -> List[BrainDump]:
        rows = sorted(
            (row for row in self.rows if row.user_id == user_id),
            key=lambda row: row.created_at,
            reverse=True,
        )
        return rows[:limit] if limit is not None else rows

    async def get_owned(self, user_id: UUID, dump_id: UUID) -> Optional[BrainDump]:
        return next(
            (row for row in self.rows if row.id == dump_id and row.user_id == user_id),
            None,
        )

    async def create_many_for_user(self, user_id: UUID, items) -> List[BrainDump]:
        return [
            self.seed(user_id, item.refined_text, item.category, completed=False, tags=item.tags)
            for item in items
        ]

    async def update_owned(self, user_id, dump_id, completed=None, text=None) -> Optional[BrainDump]:
        row = await self.get_owned(user_id, dump_id)
        if row is None:
            return None
        if completed is not None:
            row.completed = completed
        if text is not None:
            row.text = text
        row.updated_at = self._next_time()
        return row

    async def delete_owned(self, user_id: UUID, dump_id: UUID) -> bool:
        row = await self.get_owned(user_id, dump_id)
        if row is None:
            return False
        self.rows.remove(row)
        return True

    async def commit(self) -> None:
        self.commits += 1


@pytest.fixture
def fake_profiles() -> FakeProfileRepository:
    return FakeProfileRepository()


@pytest.fixture
def fake_dumps() -> FakeBrainDumpRepository:
    return FakeBrainDumpRepository()


@pytest.fixture
def mock_categorizer():
    """Categorizer mock; set ``categorize.return_value`` per test."""
    mock = MagicMock()
    mock.categorize = AsyncMock()
    return mock


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app(settings, fake_profiles, fake_dumps, mock_categorizer):
    """FastAPI app with the database replaced by in-memory repositories."""
    from braindump.api.dependencies import get_categorization_service
    from braindump.infrastructure.db.database import get_session
    from braindump.infrastructure.db.dependencies import (
        get_brain_dump_repository,
        get_profile_repository,
    )
    from braindump.main import create_app

    application = create_app(settings)

    fake_session = MagicMock()
    fake_session.commit = AsyncMock()

    application.dependency_overrides[get_session] = lambda: fake_session
    application.dependency_overrides[get_profile_repository] = lambda: fake_profiles
    application.dependency_overrides[get_brain_dump_repository] = lambda: fake_dumps
    application.dependency_overrides[get_categorization_service] = lambda: mock_categorizer
    return application


@pytest.fixture
def client(app):
    """Synchronous test client (runs the lifespan)."""
    with TestClient(app) as test_client:
        yield test_client
