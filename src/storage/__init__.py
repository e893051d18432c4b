"""Storage layer package."""

from src.storage.database import (
    Base,
    BusinessRelationDB,
    BusinessUidMappingDB,
    DatabaseService,
    get_db_session,
    init_db,
)

__all__ = [
    "Base",
    "BusinessRelationDB",
    "BusinessUidMappingDB",
    "DatabaseService",
    "get_db_session",
    "init_db",
]
