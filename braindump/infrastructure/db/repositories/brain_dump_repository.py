"""
BrainDump Repository

Data access for captured thoughts. Every query is scoped to the owning
user.
"""

from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from braindump.domain.categories import ProcessedItem
from braindump.infrastructure.db.models.base import utcnow
from braindump.infrastructure.db.models.brain_dump import BrainDump
from braindump.infrastructure.db.repositories.base_repository import BaseRepository


class BrainDumpRepository(BaseRepository[BrainDump]):
    """Repository for BrainDump rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(BrainDump, session)

    async def list_for_user(
        self,
        user_id: UUID,
        limit: Optional[int] = None,
    ) -> List[BrainDump]:
        """Newest first."""
        stmt = self._owned(user_id).order_by(BrainDump.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_owned(self, user_id: UUID, dump_id: UUID) -> Optional[BrainDump]:
        stmt = self._owned(user_id).where(BrainDump.id == dump_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_many_for_user(
        self,
        user_id: UUID,
        items: Iterable[ProcessedItem],
    ) -> List[BrainDump]:
        """
        Insert one row per categorized item.

        All rows share one timestamp so a batch sorts together.
        """
        now = utcnow()
        rows = [
            BrainDump(
                user_id=user_id,
                text=item.refined_text,
                category=item.category,
                completed=False,
                tags=item.tags or None,
                created_at=now,
                updated_at=now,
            )
            for item in items
        ]
        return await self.add_all(rows)

    async def update_owned(
        self,
        user_id: UUID,
        dump_id: UUID,
        completed: Optional[bool] = None,
        text: Optional[str] = None,
    ) -> Optional[BrainDump]:
        """Returns None when the dump does not exist for this user."""
        dump = await self.get_owned(user_id, dump_id)
        if dump is None:
            return None

        if completed is not None:
            dump.completed = completed
        if text is not None:
            dump.text = text
        dump.updated_at = utcnow()

        self.session.add(dump)
        await self.session.flush()
        await self.session.refresh(dump)
        return dump

    async def delete_owned(self, user_id: UUID, dump_id: UUID) -> bool:
        dump = await self.get_owned(user_id, dump_id)
        if dump is None:
            return False
        await self.session.delete(dump)
        await self.session.flush()
        return True
