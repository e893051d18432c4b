"""
Identifier Codec

Mints and parses self-describing business UIDs of the form

    {EntityType}-{Timestamp}-{Random}

e.g. ``ORDER-1705123456789-A1B2C3D4E5``.

- EntityType: one of the closed ``EntityType`` tags (may contain ``_``).
- Timestamp: milliseconds since the epoch at mint time. Not globally
  ordered across processes; collision resistance comes from Random.
- Random: base36 token from ``secrets``, opaque to every consumer.

``parse`` is total: it returns a ``ParseFailure`` instead of raising.
"""

import secrets
import string
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from src.config import get_lineage_config
from src.models.enums import EntityType


SEPARATOR = "-"
RANDOM_ALPHABET = string.digits + string.ascii_uppercase
# 10 base36 characters carry about 51 bits
MIN_RANDOM_LENGTH = 10

_ENTITY_TYPES = {e.value: e for e in EntityType}


class ParseError(str, Enum):
    """Reason a UID could not be decoded."""
    MALFORMED_UID = "malformed_uid"
    UNKNOWN_ENTITY_TYPE = "unknown_entity_type"
    BAD_TIMESTAMP = "bad_timestamp"


@dataclass(frozen=True)
class ParsedUID:
    """Decoded UID segments."""
    entity_type: EntityType
    timestamp: int
    random: str

    ok = True

    def __str__(self) -> str:
        return SEPARATOR.join((self.entity_type.value, str(self.timestamp), self.random))


@dataclass(frozen=True)
class ParseFailure:
    """Typed parse failure; carries the offending input for diagnostics."""
    error: ParseError
    uid: object
    detail: str = ""

    ok = False


ParseOutcome = Union[ParsedUID, ParseFailure]


def _coerce_entity_type(entity_type: Union[EntityType, str]) -> EntityType:
    if isinstance(entity_type, EntityType):
        return entity_type
    try:
        return _ENTITY_TYPES[entity_type]
    except (KeyError, TypeError):
        raise ValueError(f"Unknown entity type: {entity_type!r}") from None


def random_token(length: int) -> str:
    """Uppercase base36 token drawn from the OS CSPRNG."""
    return "".join(secrets.choice(RANDOM_ALPHABET) for _ in range(length))


def mint(
    entity_type: Union[EntityType, str],
    *,
    now_ms: Optional[int] = None,
    random_length: Optional[int] = None,
) -> str:
    """
    Generate a new UID for ``entity_type``.

    Args:
        entity_type: EntityType member or its tag string
        now_ms: Override for the timestamp segment (tests, backfills)
        random_length: Override for the random segment length

    Raises:
        ValueError: if entity_type is not a known tag, or random_length is below
            MIN_RANDOM_LENGTH
    """
    etype = _coerce_entity_type(entity_type)
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    if random_length is None:
        random_length = get_lineage_config().uid_random_length
    if random_length < MIN_RANDOM_LENGTH:
        raise ValueError(
            f"random_length must be at least {MIN_RANDOM_LENGTH}, got {random_length}"
        )
    return SEPARATOR.join((etype.value, str(now_ms), random_token(random_length)))


def parse(uid: object) -> ParseOutcome:
    """
    Decode a UID into its segments.

    Anything after the second separator is treated as the random segment,
    so a random part that itself contains the separator still round-trips.
    """
    if not isinstance(uid, str):
        return ParseFailure(ParseError.MALFORMED_UID, uid, "uid is not a string")

    parts = uid.split(SEPARATOR, 2)
    if len(parts) < 3 or not parts[2]:
        return ParseFailure(ParseError.MALFORMED_UID, uid, "expected 3 segments")

    type_part, ts_part, random_part = parts
    etype = _ENTITY_TYPES.get(type_part)
    if etype is None:
        return ParseFailure(
            ParseError.UNKNOWN_ENTITY_TYPE, uid, f"unknown entity type {type_part!r}"
        )
    if not (ts_part.isascii() and ts_part.isdigit()):
        return ParseFailure(ParseError.BAD_TIMESTAMP, uid, f"bad timestamp {ts_part!r}")

    return ParsedUID(entity_type=etype, timestamp=int(ts_part), random=random_part)


def is_valid_uid(uid: object) -> bool:
    return parse(uid).ok


def entity_type_of(uid: object) -> Optional[EntityType]:
    """Entity type encoded in ``uid``, or None if it does not parse."""
    outcome = parse(uid)
    return outcome.entity_type if isinstance(outcome, ParsedUID) else None
