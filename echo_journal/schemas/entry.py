"""Entry Schemas - request/response models for the entries endpoints.

Invariants:
    - EntryCreate.text is NOT stripped or rejected here: blank text reaches the
      workflow, which treats it as "nothing to save" (saved=False), not an error
    - EntryResponse.created_at is None while the store timestamp is pending
"""

from datetime import datetime

from pydantic import BaseModel, Field

from echo_journal.core.entries import JournalEntry


class EntryCreate(BaseModel):
    text: str = Field(max_length=20_000)


class EntryResponse(BaseModel):
    id: str
    author_id: str
    text: str
    created_at: datetime | None = None

    @classmethod
    def from_entry(cls, entry: JournalEntry) -> "EntryResponse":
        return cls(
            id=entry.id,
            author_id=entry.author_id,
            text=entry.text,
            created_at=entry.created_at,
        )


class EntryListResponse(BaseModel):
    entries: list[EntryResponse]
    error: str | None = None


class SaveResponse(BaseModel):
    """saved=False means the text was blank and nothing happened."""
    saved: bool
    entry_id: str | None = None
    prompts: list[str] = Field(default_factory=list)
