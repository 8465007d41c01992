"""
SQLModel ORM Models for BrainDump

Import models here to register them with SQLModel.metadata.
"""

from braindump.infrastructure.db.models.base import (
    TimestampMixin,
    UUIDMixin,
    utcnow,
)
from braindump.infrastructure.db.models.profile import Profile, ProfileUpdate
from braindump.infrastructure.db.models.brain_dump import BrainDump


__all__ = [
    # Base
    "TimestampMixin",
    "UUIDMixin",
    "utcnow",
    # Tables
    "Profile",
    "ProfileUpdate",
    "BrainDump",
]
