"""
Repository Layer for BrainDump

Exports all repository classes for dependency injection.
"""

from braindump.infrastructure.db.repositories.base_repository import BaseRepository
from braindump.infrastructure.db.repositories.profile_repository import (
    ProfileRepository,
)
from braindump.infrastructure.db.repositories.brain_dump_repository import (
    BrainDumpRepository,
)


__all__ = [
    "BaseRepository",
    "ProfileRepository",
    "BrainDumpRepository",
]
