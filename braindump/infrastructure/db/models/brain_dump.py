"""
BrainDump SQLModel

One row per captured thought. Rows are visible only to their owner
(RLS on 'brain_dumps').
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import ARRAY
from sqlmodel import Field

from braindump.domain.categories import DEFAULT_CATEGORY
from braindump.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class BrainDump(UUIDMixin, TimestampMixin, table=True):
    """BrainDump database table model."""

    __tablename__ = "brain_dumps"

    user_id: UUID = Field(..., index=True, description="Owning user")
    text: str = Field(..., description="Display text (refined by the AI)")
    category: str = Field(default=DEFAULT_CATEGORY, min_length=1)
    completed: bool = Field(default=False)
    tags: Optional[List[str]] = Field(
        default=None,
        sa_column=Column(ARRAY(String)),
    )
