"""Journal Entry ORM - append-only rows backing SqlEntryStore.

Invariants:
    - sequence is the store-assigned insertion order (autoincrement primary key)
    - id is the public EntryId (uuid4 string), unique
    - (app_id, author_id) is the collection scope; entries are never updated or deleted
    - created_at is assigned by the store at insert, never by the client
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from echo_journal.core.domain_types import EntryId, UserId
from echo_journal.core.entries import JournalEntry
from echo_journal.db.base import Base


class JournalEntryRow(Base):
    __tablename__ = "journal_entries"
    __table_args__ = (
        Index("ix_journal_entries_scope_created", "app_id", "author_id", "created_at"),
    )

    sequence: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True,
    )
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    app_id: Mapped[str] = mapped_column(String(128), nullable=False)
    author_id: Mapped[str] = mapped_column(String(128), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    def to_entry(self) -> JournalEntry:
        created_at = self.created_at
        # SQLite drops the offset on read
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return JournalEntry(
            id=EntryId(self.id),
            author_id=UserId(self.author_id),
            text=self.text,
            created_at=created_at,
            sequence=self.sequence,
        )
