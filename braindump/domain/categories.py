"""
Brain Dump Categories

Category labels are open strings: the model may invent new ones. The
four well-known categories get their own variant, everything else is
kept as an "other" label.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_CATEGORY = "note"
MAX_TAGS = 3
MAX_CATEGORY_LENGTH = 50


class KnownCategory(str, Enum):
    """Categories the UI has dedicated sections for."""
    TASK = "task"
    REMINDER = "reminder"
    NOTE = "note"
    IDEA = "idea"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Category:
    """
    Tagged category value.

    ``known`` is set for the well-known variants; for anything else it is
    None and ``label`` carries the model's own name.
    """
    label: str
    known: Optional[KnownCategory] = None

    @classmethod
    def parse(cls, raw: Optional[str]) -> "Category":
        """Normalise a raw label. Blank labels become the default note."""
        label = (raw or "").strip()
        if not label:
            return cls(DEFAULT_CATEGORY, KnownCategory.NOTE)
        try:
            known = KnownCategory(label.lower())
        except ValueError:
            return cls.other(label[:MAX_CATEGORY_LENGTH])
        return cls(known.value, known)

    @classmethod
    def of(cls, known: KnownCategory) -> "Category":
        return cls(known.value, known)

    @classmethod
    def other(cls, label: str) -> "Category":
        return cls(label, None)

    @property
    def is_known(self) -> bool:
        return self.known is not None

    def __str__(self) -> str:
        return self.label


class ProcessedItem(BaseModel):
    """One thought extracted from a submission."""
    model_config = ConfigDict(populate_by_name=True)

    category: str = Field(default=DEFAULT_CATEGORY)
    refined_text: str = Field(..., alias="refinedText")
    priority: Optional[Priority] = None
    tags: Optional[List[str]] = None

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v) -> str:
        return Category.parse(v if isinstance(v, str) else None).label

    @field_validator("refined_text", mode="before")
    @classmethod
    def coerce_text(cls, v) -> str:
        if v is None:
            return ""
        return str(v)

    @field_validator("priority", mode="before")
    @classmethod
    def drop_unknown_priority(cls, v):
        if isinstance(v, str) and v.strip().lower() in Priority._value2member_map_:
            return v.strip().lower()
        return None

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v) -> Optional[List[str]]:
        if not isinstance(v, list):
            return None
        tags = [str(tag).strip() for tag in v if str(tag).strip()]
        return tags[:MAX_TAGS]

    @property
    def parsed_category(self) -> Category:
        return Category.parse(self.category)


class ProcessBrainDumpRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)

    @field_validator("text")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Text cannot be empty or whitespace only")
        return v


class ProcessBrainDumpResponse(BaseModel):
    items: List[ProcessedItem]


def fallback_item(text: str) -> ProcessedItem:
    """The item used whenever categorization cannot be trusted."""
    return ProcessedItem(
        category=DEFAULT_CATEGORY,
        refined_text=text,
        priority=Priority.MEDIUM,
    )
