"""Session Schemas - auth session snapshot and interactive sign-in request."""

from pydantic import BaseModel

from echo_journal.core.domain_types import ProviderKind, SessionState
from echo_journal.core.session_state import Session


class SignInRequest(BaseModel):
    provider: ProviderKind = ProviderKind.GOOGLE


class SessionResponse(BaseModel):
    state: SessionState
    identity: str | None = None
    ready: bool
    error: str | None = None

    @classmethod
    def from_session(cls, session: Session, ready: bool) -> "SessionResponse":
        return cls(
            state=session.state,
            identity=session.identity,
            ready=ready,
            error=session.error.user_message if session.error else None,
        )
