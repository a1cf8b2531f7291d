"""Domain Types - rich types that replace bare primitives across the codebase.

Invariants:
    - UserId and EntryId wrap strings issued by the identity provider and store
    - All valid states encoded as Enums, no raw string matching
    - SERVER_TIMESTAMP is the only value a client may send as created_at

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", str)
EntryId = NewType("EntryId", str)


# ─── Enums ───────────────────────────────────────────────────────

class SessionState(str, Enum):
    """Authentication lifecycle states owned by AuthSessionManager."""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class ProviderKind(str, Enum):
    """Interactive identity providers the client can upgrade to."""
    GOOGLE = "google"


class SortDirection(str, Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"


class _ServerTimestamp:
    """Marker asking the store to assign created_at at write time."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

CREATED_AT_FIELD = "created_at"
