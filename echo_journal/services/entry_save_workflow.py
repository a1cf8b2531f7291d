"""Entry Save Workflow - persist an entry, then augment it with reflective prompts.

Invariants:
    - Whitespace-only text is a pure no-op: no store write, no service call, no state change
    - One save in flight per workflow; a second call while pending raises SaveInProgressError
    - Entering pending clears the previous prompts and error
    - Persistence failure raises PersistenceError and skips augmentation
    - The entry is never rolled back: augmentation failure keeps prompts empty and
      raises the specific ApiError
    - Any other augmentation failure surfaces as ApiRequestError(None), so the
      settled state always names the failure
    - pending is cleared unconditionally as the final state change

Design Decisions:
    - Entries are durable, reflections best-effort: persist first, generate second
"""

import logging
from dataclasses import dataclass
from typing import Callable

from echo_journal.core.domain_types import EntryId, UserId
from echo_journal.core.entries import NewEntryRecord, normalize_entry_text
from echo_journal.core.errors import (
    ApiError,
    ApiRequestError,
    AuthenticationError,
    ErrorContext,
    JournalError,
    PersistenceError,
    SaveInProgressError,
)
from echo_journal.core.repository_protocols import EntryStore
from echo_journal.core.subscriptions import Observable, Subscription
from echo_journal.infrastructure.generative_client import ResilientGenerativeClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowState:
    """Observable save status. prompts is the current PromptSet."""
    pending: bool = False
    error: JournalError | None = None
    prompts: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "pending": self.pending,
            "error": self.error.to_sse_event()["data"] if self.error else None,
            "prompts": list(self.prompts),
        }


@dataclass(frozen=True)
class SaveOutcome:
    entry_id: EntryId
    prompts: tuple[str, ...]


class EntrySaveWorkflow:
    """Single owner of the PromptSet and save status."""

    def __init__(self, store: EntryStore, client: ResilientGenerativeClient):
        self._store = store
        self._client = client
        self._state: Observable[WorkflowState] = Observable(WorkflowState())

    @property
    def state(self) -> WorkflowState:
        return self._state.value

    @property
    def pending(self) -> bool:
        return self._state.value.pending

    @property
    def prompts(self) -> tuple[str, ...]:
        return self._state.value.prompts

    def subscribe(self, listener: Callable[[WorkflowState], None]) -> Subscription:
        return self._state.subscribe(listener)

    async def save(self, raw_text: str, identity: UserId | None) -> SaveOutcome | None:
        """Persist then augment. Returns None when there is nothing to save."""
        text = normalize_entry_text(raw_text)
        if text is None:
            return None
        if identity is None:
            raise AuthenticationError("Sign in before saving entries")
        if self._state.value.pending:
            raise SaveInProgressError(ErrorContext(user_id=identity))

        self._state.set(WorkflowState(pending=True))
        error: JournalError | None = None
        prompts: tuple[str, ...] = ()
        try:
            entry_id = await self._persist(text, identity)
            prompts = await self._augment(text, identity, entry_id)
            return SaveOutcome(entry_id=entry_id, prompts=prompts)
        except JournalError as e:
            error = e
            raise
        finally:
            self._state.set(WorkflowState(pending=False, error=error, prompts=prompts))

    async def _persist(self, text: str, identity: UserId) -> EntryId:
        try:
            return await self._store.append(NewEntryRecord(author_id=identity, text=text))
        except PersistenceError as e:
            logger.error(
                f"Failed to save entry: {e.message}",
                extra={"user_id": identity, "error_code": e.code},
            )
            raise
        except Exception as e:
            logger.error(
                f"Failed to save entry: {e}", extra={"user_id": identity}, exc_info=True,
            )
            raise PersistenceError(
                str(e), "append", ErrorContext(user_id=identity),
            ) from e

    async def _augment(
        self, text: str, identity: UserId, entry_id: EntryId,
    ) -> tuple[str, ...]:
        try:
            prompts = await self._client.generate_reflections(text)
        except ApiError as e:
            e.context.user_id = identity
            e.context.entry_id = entry_id
            logger.error(
                f"Failed to generate prompts: {e.message}",
                extra={"user_id": identity, "entry_id": entry_id, "error_code": e.code},
            )
            raise
        except Exception as e:
            logger.error(
                f"Failed to generate prompts: {e}",
                extra={"user_id": identity, "entry_id": entry_id},
                exc_info=True,
            )
            raise ApiRequestError(
                None, ErrorContext(user_id=identity, entry_id=entry_id),
            ) from e
        logger.info(
            "Entry saved and reflected",
            extra={"user_id": identity, "entry_id": entry_id},
        )
        return tuple(prompts)
