"""Journal Client - composition root the presentation layer talks to.

Invariants:
    - The mirror follows the session: opened for an AUTHENTICATED identity, closed otherwise
    - save() always uses the session's current identity
    - close() releases every subscription (session listener, mirror, identity provider)
"""

import asyncio
import logging
from typing import Callable

from echo_journal.config import Settings
from echo_journal.core.domain_types import ProviderKind
from echo_journal.core.repository_protocols import (
    EntryStore,
    GenerativeTransport,
    IdentityProvider,
    Sleeper,
)
from echo_journal.core.session_state import Session
from echo_journal.core.subscriptions import Subscription
from echo_journal.infrastructure.generative_client import ResilientGenerativeClient
from echo_journal.services.auth_session import AuthSessionManager
from echo_journal.services.collection_sync import CollectionSynchronizer, Mirror
from echo_journal.services.entry_save_workflow import (
    EntrySaveWorkflow,
    SaveOutcome,
    WorkflowState,
)

logger = logging.getLogger(__name__)


class JournalClient:
    """Wires auth, mirror, and save workflow together."""

    def __init__(
        self,
        auth: AuthSessionManager,
        sync: CollectionSynchronizer,
        workflow: EntrySaveWorkflow,
    ):
        self.auth = auth
        self.sync = sync
        self.workflow = workflow
        self._session_subscription: Subscription | None = None

    @property
    def session(self) -> Session:
        return self.auth.session

    @property
    def mirror(self) -> Mirror:
        return self.sync.mirror

    @property
    def workflow_state(self) -> WorkflowState:
        return self.workflow.state

    def subscribe_mirror(self, listener: Callable[[Mirror], None]) -> Subscription:
        return self.sync.subscribe(listener)

    def subscribe_session(self, listener: Callable[[Session], None]) -> Subscription:
        return self.auth.subscribe(listener)

    def start(self) -> None:
        if self._session_subscription is not None:
            return
        self._session_subscription = self.auth.subscribe(self._on_session)
        self.auth.start()
        self._on_session(self.auth.session)

    def close(self) -> None:
        if self._session_subscription is not None:
            self._session_subscription.cancel()
            self._session_subscription = None
        self.sync.close()
        self.auth.close()
        logger.info("Journal client closed")

    async def save(self, text: str) -> SaveOutcome | None:
        return await self.workflow.save(text, self.auth.identity)

    async def sign_in_interactive(
        self, provider_kind: ProviderKind = ProviderKind.GOOGLE,
    ) -> Session:
        return await self.auth.sign_in_interactive(provider_kind)

    def _on_session(self, session: Session) -> None:
        if session.is_authenticated and session.identity is not None:
            self.sync.open(session.identity)
        else:
            self.sync.close()


def build_journal_client(
    settings: Settings,
    provider: IdentityProvider,
    store: EntryStore,
    transport: GenerativeTransport,
    sleep: Sleeper = asyncio.sleep,
) -> JournalClient:
    """Assemble the components from one immutable Settings value."""
    generative = ResilientGenerativeClient(transport, settings.retry_policy, sleep)
    return JournalClient(
        auth=AuthSessionManager(provider, settings.bootstrap_credential),
        sync=CollectionSynchronizer(store),
        workflow=EntrySaveWorkflow(store, generative),
    )
