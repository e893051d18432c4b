"""Identifier package: UID codec and legacy-id helpers."""

from src.identity.codec import (
    SEPARATOR,
    ParsedUID,
    ParseError,
    ParseFailure,
    entity_type_of,
    is_valid_uid,
    mint,
    parse,
)
from src.identity.legacy import (
    InMemoryUidMappingStore,
    SqlUidMappingStore,
    UidMappingStore,
    enrich_with_uid,
    migrate_to_uid,
)

__all__ = [
    "SEPARATOR",
    "ParsedUID",
    "ParseError",
    "ParseFailure",
    "entity_type_of",
    "is_valid_uid",
    "mint",
    "parse",
    "InMemoryUidMappingStore",
    "SqlUidMappingStore",
    "UidMappingStore",
    "enrich_with_uid",
    "migrate_to_uid",
]
