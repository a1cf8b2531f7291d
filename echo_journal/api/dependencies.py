"""Route dependencies - access to the per-process JournalClient."""

from fastapi import Request

from echo_journal.services.journal_client import JournalClient


def get_journal_client(request: Request) -> JournalClient:
    """FastAPI dependency for the JournalClient built in the lifespan."""
    journal = getattr(request.app.state, "journal", None)
    if journal is None:
        raise RuntimeError("Journal client not initialized")
    return journal
