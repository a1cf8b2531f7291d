"""Session State - immutable snapshot of the client's authentication status.

Invariants:
    - identity is set if and only if state is AUTHENTICATED
    - error is set only when state is FAILED
    - Snapshots are replaced, never mutated (AuthSessionManager is the only writer)
"""

from dataclasses import dataclass

from echo_journal.core.domain_types import SessionState, UserId
from echo_journal.core.errors import AuthenticationError


@dataclass(frozen=True)
class Session:
    """Per-client authentication snapshot - pure dataclass, no IO."""

    state: SessionState = SessionState.UNAUTHENTICATED
    identity: UserId | None = None
    error: AuthenticationError | None = None

    @classmethod
    def unauthenticated(cls) -> "Session":
        return cls()

    @classmethod
    def authenticating(cls) -> "Session":
        return cls(state=SessionState.AUTHENTICATING)

    @classmethod
    def authenticated(cls, identity: UserId) -> "Session":
        return cls(state=SessionState.AUTHENTICATED, identity=identity)

    @classmethod
    def failed(cls, error: AuthenticationError) -> "Session":
        return cls(state=SessionState.FAILED, error=error)

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    @property
    def is_settled(self) -> bool:
        return self.state in (SessionState.AUTHENTICATED, SessionState.FAILED)

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "identity": self.identity,
            "error": self.error.user_message if self.error else None,
        }
