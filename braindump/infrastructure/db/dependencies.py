"""
Dependency Injection Providers for BrainDump

FastAPI dependencies for database sessions and repositories.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from braindump.infrastructure.db.database import get_session
from braindump.infrastructure.db.repositories import (
    BrainDumpRepository,
    ProfileRepository,
)


# Type alias for session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_profile_repository(
    session: SessionDep,
) -> AsyncGenerator[ProfileRepository, None]:
    """
    Dependency provider for ProfileRepository.

    Usage:
        @router.get("/profile")
        async def get_profile(repo: ProfileRepoDep):
            ...
    """
    yield ProfileRepository(session)


async def get_brain_dump_repository(
    session: SessionDep,
) -> AsyncGenerator[BrainDumpRepository, None]:
    yield BrainDumpRepository(session)


ProfileRepoDep = Annotated[ProfileRepository, Depends(get_profile_repository)]
BrainDumpRepoDep = Annotated[BrainDumpRepository, Depends(get_brain_dump_repository)]
