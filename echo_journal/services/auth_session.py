"""Auth Session Manager - owns identity acquisition and the Session snapshot.

Invariants:
    - States: UNAUTHENTICATED -> AUTHENTICATING -> {AUTHENTICATED | FAILED}
    - A "no identity" notification starts automatic resolution: bootstrap credential
      when configured, anonymous sign-in otherwise
    - At most one resolution (automatic or interactive) is in flight; interactive calls
      arriving meanwhile are rejected, and a "no identity" notification is deferred
      until the interactive attempt settles
    - After an automatic failure the session is FAILED, ready is set, and no further
      automatic attempt is made; a later provider event moves FAILED to UNAUTHENTICATED
    - Interactive failure leaves the session unchanged and raises AuthenticationError
    - An external sign-out (None after AUTHENTICATED) re-enters UNAUTHENTICATED
    - close() releases the provider subscription and cancels in-flight resolution
"""

import asyncio
import logging
from typing import Callable

from echo_journal.core.domain_types import ProviderKind, SessionState, UserId
from echo_journal.core.errors import AuthenticationError
from echo_journal.core.repository_protocols import IdentityProvider
from echo_journal.core.session_state import Session
from echo_journal.core.subscriptions import Observable, Subscription

logger = logging.getLogger(__name__)


def _as_auth_error(e: Exception, what: str) -> AuthenticationError:
    if isinstance(e, AuthenticationError):
        return e
    return AuthenticationError(f"{what} failed: {e}")


class AuthSessionManager:
    """Single owner of the client's Session."""

    def __init__(
        self, provider: IdentityProvider, bootstrap_credential: str | None = None,
    ):
        self._provider = provider
        self._bootstrap_credential = bootstrap_credential
        self._session: Observable[Session] = Observable(Session.unauthenticated())
        self._subscription: Subscription | None = None
        self._resolution: asyncio.Task | None = None
        self._resolving = False
        self._automatic_failed = False
        self._deferred_resolution = False
        self._ready = asyncio.Event()

    # ─── Read-only surface ─────────────────────────────────────

    @property
    def session(self) -> Session:
        return self._session.value

    @property
    def identity(self) -> UserId | None:
        return self._session.value.identity

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def subscribe(self, listener: Callable[[Session], None]) -> Subscription:
        return self._session.subscribe(listener)

    async def wait_until_ready(self) -> Session:
        await self._ready.wait()
        return self._session.value

    # ─── Lifecycle ─────────────────────────────────────────────

    def start(self) -> None:
        """Subscribe to the identity provider. Must run inside the event loop."""
        if self._subscription is not None and self._subscription.active:
            return
        self._subscription = self._provider.subscribe(self._on_identity_change)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        if self._resolution is not None and not self._resolution.done():
            self._resolution.cancel()
        self._resolution = None
        self._resolving = False

    async def sign_in_interactive(
        self, provider_kind: ProviderKind = ProviderKind.GOOGLE,
    ) -> Session:
        """User-triggered upgrade to a provider-backed identity. Never retried."""
        if self._resolving:
            raise AuthenticationError("Identity resolution already in progress")
        self._resolving = True
        self._deferred_resolution = False
        failure: Exception | None = None
        try:
            identity = await self._provider.sign_in_interactive(provider_kind)
        except Exception as e:
            failure = e
        finally:
            self._resolving = False
        if failure is not None:
            error = _as_auth_error(failure, f"{provider_kind.value} sign-in")
            logger.error(
                f"Interactive sign-in failed: {error.message}",
                extra={"error_code": error.code},
            )
            self._resume_deferred_resolution()
            if error is failure:
                raise error
            raise error from failure
        self._deferred_resolution = False
        self._automatic_failed = False
        self._set(Session.authenticated(identity))
        self._ready.set()
        logger.info("Interactive sign-in succeeded", extra={"user_id": identity})
        return self._session.value

    # ─── Transitions ───────────────────────────────────────────

    def _on_identity_change(self, identity: UserId | None) -> None:
        if identity is not None:
            self._set(Session.authenticated(identity))
            self._ready.set()
            return
        current = self._session.value
        if current.is_authenticated:
            logger.info(
                "Identity provider reported sign-out",
                extra={"user_id": current.identity},
            )
            self._set(Session.unauthenticated())
        if self._resolving:
            logger.debug("Identity resolution in flight, notification deferred")
            self._deferred_resolution = True
            return
        if self._automatic_failed:
            # FAILED is left on a new provider event; automatic sign-in stays off
            if current.state == SessionState.FAILED:
                self._set(Session.unauthenticated())
            return
        self._start_resolution()

    def _resume_deferred_resolution(self) -> None:
        """Run the automatic attempt a settled interactive sign-in held back."""
        if not self._deferred_resolution:
            return
        self._deferred_resolution = False
        if self._session.value.is_authenticated or self._automatic_failed:
            return
        logger.info("Resuming deferred identity resolution")
        self._start_resolution()

    def _start_resolution(self) -> None:
        self._resolving = True
        self._set(Session.authenticating())
        self._resolution = asyncio.get_running_loop().create_task(self._resolve())

    async def _resolve(self) -> None:
        try:
            if self._bootstrap_credential:
                identity = await self._provider.sign_in_with_credential(
                    self._bootstrap_credential,
                )
            else:
                identity = await self._provider.sign_in_anonymous()
        except Exception as e:
            error = _as_auth_error(e, "Automatic sign-in")
            logger.error(
                f"Auth failed: {error.message}", extra={"error_code": error.code},
            )
            self._automatic_failed = True
            self._set(Session.failed(error))
        else:
            self._set(Session.authenticated(identity))
            logger.info("Automatic sign-in succeeded", extra={"user_id": identity})
        finally:
            self._resolving = False
            self._ready.set()

    def _set(self, session: Session) -> None:
        if session == self._session.value:
            return
        self._session.set(session)
