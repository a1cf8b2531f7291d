"""Entry Routes - mirror snapshot, live mirror stream, save-and-reflect, workflow status.

Invariants:
    - GET /entries reads the mirror; it never queries the store directly
    - POST /entries with blank text returns saved=False (200) and touches nothing
    - A save whose augmentation fails returns the ApiError envelope; the entry stays
      persisted and will appear in a later mirror snapshot
    - The SSE stream emits the current mirror first, then every replacement, and
      releases its mirror subscription when the client disconnects
"""

import asyncio
import json
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import StreamingResponse

from echo_journal.api.dependencies import get_journal_client
from echo_journal.schemas.entry import (
    EntryCreate,
    EntryListResponse,
    EntryResponse,
    SaveResponse,
)
from echo_journal.services.collection_sync import Mirror
from echo_journal.services.journal_client import JournalClient

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["entries"])

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


def _sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


def _mirror_event(mirror: Mirror) -> dict:
    return {
        "type": "mirror",
        "data": [
            EntryResponse.from_entry(e).model_dump(mode="json") for e in mirror
        ],
    }


async def mirror_events(journal: JournalClient) -> AsyncIterator[dict]:
    """Current mirror, then each replacement, until the consumer stops."""
    queue: asyncio.Queue[Mirror] = asyncio.Queue()
    with journal.subscribe_mirror(queue.put_nowait):
        yield _mirror_event(journal.mirror)
        while True:
            mirror = await queue.get()
            yield _mirror_event(mirror)


@router.get("/entries", response_model=EntryListResponse)
async def list_entries(journal: JournalClient = Depends(get_journal_client)):
    error = journal.sync.error
    return EntryListResponse(
        entries=[EntryResponse.from_entry(e) for e in journal.mirror],
        error=error.user_message if error else None,
    )


@router.post("/entries", response_model=SaveResponse)
async def save_entry(
    body: EntryCreate,
    response: Response,
    journal: JournalClient = Depends(get_journal_client),
):
    """Save an entry and return its reflective prompts."""
    outcome = await journal.save(body.text)
    if outcome is None:
        return SaveResponse(saved=False)
    response.status_code = status.HTTP_201_CREATED
    return SaveResponse(
        saved=True, entry_id=outcome.entry_id, prompts=list(outcome.prompts),
    )


@router.get("/entries/stream")
async def stream_entries(journal: JournalClient = Depends(get_journal_client)):
    """SSE stream of mirror snapshots."""

    async def event_generator():
        try:
            async for event in mirror_events(journal):
                yield _sse_line(event)
        except asyncio.CancelledError:
            logger.info("Client disconnected from mirror stream")
            return

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


@router.get("/workflow")
async def workflow_status(journal: JournalClient = Depends(get_journal_client)):
    """Pending flag, last error, and current prompts of the save workflow."""
    return journal.workflow_state.to_dict()
