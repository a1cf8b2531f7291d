"""Session Routes - auth session snapshot and interactive sign-in.

Invariants:
    - Failed interactive sign-in surfaces AuthenticationError (401) and leaves the session unchanged
"""

from fastapi import APIRouter, Depends

from echo_journal.api.dependencies import get_journal_client
from echo_journal.schemas.session import SessionResponse, SignInRequest
from echo_journal.services.journal_client import JournalClient

router = APIRouter(prefix="/api/v1/session", tags=["session"])


@router.get("", response_model=SessionResponse)
async def get_session(journal: JournalClient = Depends(get_journal_client)):
    return SessionResponse.from_session(journal.session, journal.auth.is_ready)


@router.post("/sign-in", response_model=SessionResponse)
async def sign_in(
    body: SignInRequest, journal: JournalClient = Depends(get_journal_client),
):
    """Upgrade to a provider-backed identity (e.g. Google)."""
    session = await journal.sign_in_interactive(body.provider)
    return SessionResponse.from_session(session, journal.auth.is_ready)
