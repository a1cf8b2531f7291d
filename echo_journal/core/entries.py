"""Journal Entries - entry value types, text normalization, and mirror ordering.

Invariants:
    - JournalEntry.text is never empty after trimming
    - Mirror order: created_at descending, ties broken by store insertion order
      (later insertion first); entries whose created_at is still pending sort first
    - order_mirror is total and deterministic for any input order
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from echo_journal.core.domain_types import EntryId, UserId, SERVER_TIMESTAMP


@dataclass(frozen=True)
class JournalEntry:
    """Persisted entry as surfaced by the store."""
    id: EntryId
    author_id: UserId
    text: str
    created_at: datetime | None = None
    sequence: int = 0

    def __post_init__(self):
        if not self.text.strip():
            raise ValueError("JournalEntry.text cannot be empty or whitespace")

    @property
    def is_pending(self) -> bool:
        return self.created_at is None


@dataclass(frozen=True)
class NewEntryRecord:
    """Entry as sent to the store; created_at is assigned server-side."""
    author_id: UserId
    text: str
    created_at: object = SERVER_TIMESTAMP


def normalize_entry_text(raw_text: str | None) -> str | None:
    """Trimmed text, or None when there is nothing to save."""
    if raw_text is None:
        return None
    text = raw_text.strip()
    return text or None


def _mirror_key(entry: JournalEntry) -> tuple:
    if entry.created_at is None:
        return (0, 0.0, -entry.sequence)
    return (1, -entry.created_at.timestamp(), -entry.sequence)


def order_mirror(entries: Iterable[JournalEntry]) -> tuple[JournalEntry, ...]:
    return tuple(sorted(entries, key=_mirror_key))


def is_mirror_ordered(entries: Iterable[JournalEntry]) -> bool:
    keys = [_mirror_key(e) for e in entries]
    return all(a <= b for a, b in zip(keys, keys[1:]))
