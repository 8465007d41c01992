"""
Brain Dump DTOs

Request/response schemas, realtime change events and the stats summary
shown on the analytics page.
"""

from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from braindump.domain.categories import KnownCategory
from braindump.domain.quota import DumpLimit


class SubmitDumpRequest(BaseModel):
    """Free-text submission to categorize and save."""
    text: str = Field(..., min_length=1, max_length=5000)

    @field_validator("text")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Text cannot be empty or whitespace only")
        return v


class DumpUpdateRequest(BaseModel):
    """Toggle completion and/or edit the text of one dump."""
    completed: Optional[bool] = None
    text: Optional[str] = Field(default=None, max_length=5000)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Text cannot be empty or whitespace only")
        return v

    @model_validator(mode="after")
    def validate_has_change(self) -> "DumpUpdateRequest":
        if self.completed is None and self.text is None:
            raise ValueError("Provide 'completed' and/or 'text'")
        return self


class DumpResponse(BaseModel):
    id: UUID
    text: str
    category: str
    completed: bool
    tags: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, dump) -> "DumpResponse":
        return cls(
            id=dump.id,
            text=dump.text,
            category=dump.category,
            completed=bool(dump.completed),
            tags=list(dump.tags or []),
            created_at=dump.created_at,
            updated_at=dump.updated_at,
        )


class SubmitDumpResponse(BaseModel):
    items: List[DumpResponse]
    quota: DumpLimit


# =============================================================================
# Realtime Events
# =============================================================================

class DumpChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class DumpChangeEvent(BaseModel):
    """A row change pushed to every open session of the owning user."""
    type: DumpChangeType
    id: UUID
    dump: Optional[DumpResponse] = None

    @classmethod
    def inserted(cls, dump: DumpResponse) -> "DumpChangeEvent":
        return cls(type=DumpChangeType.INSERT, id=dump.id, dump=dump)

    @classmethod
    def updated(cls, dump: DumpResponse) -> "DumpChangeEvent":
        return cls(type=DumpChangeType.UPDATE, id=dump.id, dump=dump)

    @classmethod
    def deleted(cls, dump_id: UUID) -> "DumpChangeEvent":
        return cls(type=DumpChangeType.DELETE, id=dump_id)


# =============================================================================
# Analytics
# =============================================================================

class DumpStatsResponse(BaseModel):
    total_dumps: int
    completed_count: int
    completion_rate: int = Field(description="Percent of dumps completed, rounded")
    category_counts: dict[str, int]
    other_count: int = Field(description="Dumps in custom categories")


def compute_stats(dumps: Iterable[DumpResponse]) -> DumpStatsResponse:
    counts = {category.value: 0 for category in KnownCategory}
    total = completed = other = 0

    for dump in dumps:
        total += 1
        if dump.completed:
            completed += 1
        if dump.category in counts:
            counts[dump.category] += 1
        else:
            other += 1

    rate = round(completed / total * 100) if total else 0
    return DumpStatsResponse(
        total_dumps=total,
        completed_count=completed,
        completion_rate=rate,
        category_counts=counts,
        other_count=other,
    )
