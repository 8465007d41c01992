"""
Unit tests for the SQL the repositories emit.

Statements are compiled against the PostgreSQL dialect; nothing connects.
"""

from uuid import UUID

from sqlalchemy.dialects import postgresql

from braindump.infrastructure.db.models import BrainDump, Profile
from braindump.infrastructure.db.repositories.base_repository import BaseRepository


USER_ID = UUID("aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee")


def compile_sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


class TestOwnedQueries:

    def test_dump_queries_filter_by_owner(self):
        repo = BaseRepository(BrainDump, session=None)
        sql = compile_sql(repo._owned(USER_ID))
        assert "FROM brain_dumps" in sql
        assert "brain_dumps.user_id = %(user_id_1)s" in sql

    def test_profile_lock_query(self):
        repo = BaseRepository(Profile, session=None)
        sql = compile_sql(repo._owned(USER_ID).with_for_update())
        assert "profiles.user_id = %(user_id_1)s" in sql
        assert sql.rstrip().endswith("FOR UPDATE")


class TestModels:

    def test_table_names(self):
        assert BrainDump.__tablename__ == "brain_dumps"
        assert Profile.__tablename__ == "profiles"

    def test_profile_user_id_is_unique(self):
        assert Profile.__table__.c.user_id.unique is True

    def test_dump_defaults(self):
        dump = BrainDump(user_id=USER_ID, text="x")
        assert dump.category == "note"
        assert dump.completed is False
        assert dump.tags is None

    def test_profile_defaults(self):
        profile = Profile(user_id=USER_ID)
        assert profile.subscription_status == "free"
        assert profile.daily_dump_count == 0
        assert profile.last_dump_date is None
