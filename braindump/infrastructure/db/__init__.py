"""
Database Infrastructure Package for BrainDump

Exports database utilities, models, and repositories.
"""

from braindump.infrastructure.db.database import (
    DatabaseManager,
    build_database_url,
    get_db_manager,
    get_session,
    init_db,
    close_db,
)

from braindump.infrastructure.db.dependencies import (
    SessionDep,
    get_profile_repository,
    get_brain_dump_repository,
    ProfileRepoDep,
    BrainDumpRepoDep,
)


__all__ = [
    # Database management
    "DatabaseManager",
    "build_database_url",
    "get_db_manager",
    "get_session",
    "init_db",
    "close_db",
    # Dependencies
    "SessionDep",
    "get_profile_repository",
    "get_brain_dump_repository",
    "ProfileRepoDep",
    "BrainDumpRepoDep",
]
