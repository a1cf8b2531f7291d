"""Firebase Identity Provider - Identity Toolkit REST sign-in with change notifications.

Invariants:
    - subscribe() reports the current user (or None) on the next loop iteration,
      then every change; a cancelled subscription receives nothing further
    - Listeners are notified only when the signed-in user actually changes
    - Every failure (transport, non-200, missing localId) raises AuthenticationError
    - Interactive sign-in needs an OAuth token source; without one it fails
"""

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from echo_journal.core.domain_types import ProviderKind, UserId
from echo_journal.core.errors import AuthenticationError
from echo_journal.core.repository_protocols import IdentityListener
from echo_journal.core.subscriptions import Subscription

logger = logging.getLogger(__name__)

OAuthTokenSource = Callable[[ProviderKind], Awaitable[str]]

_IDP_PROVIDER_IDS = {ProviderKind.GOOGLE: "google.com"}


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return f"status {response.status_code}"


class FirebaseIdentityProvider:
    """IdentityProvider over the Identity Toolkit accounts API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://identitytoolkit.googleapis.com/v1",
        client: httpx.AsyncClient | None = None,
        oauth_token_source: OAuthTokenSource | None = None,
        request_uri: str = "http://localhost",
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=30.0)
        self._oauth_token_source = oauth_token_source
        self._request_uri = request_uri
        self._current: UserId | None = None
        self._id_token: str | None = None
        self._listeners: list[IdentityListener] = []

    @property
    def current_user(self) -> UserId | None:
        return self._current

    def subscribe(self, on_change: IdentityListener) -> Subscription:
        self._listeners.append(on_change)
        asyncio.get_running_loop().call_soon(self._deliver_current, on_change)

        def _release():
            if on_change in self._listeners:
                self._listeners.remove(on_change)

        return Subscription(_release)

    async def sign_in_anonymous(self) -> UserId:
        return await self._sign_in("signUp", {"returnSecureToken": True})

    async def sign_in_with_credential(self, token: str) -> UserId:
        return await self._sign_in(
            "signInWithCustomToken", {"token": token, "returnSecureToken": True},
        )

    async def sign_in_interactive(self, provider_kind: ProviderKind) -> UserId:
        if self._oauth_token_source is None:
            raise AuthenticationError(
                f"Interactive sign-in with {provider_kind.value} is not available",
            )
        try:
            oauth_token = await self._oauth_token_source(provider_kind)
        except Exception as e:
            raise AuthenticationError(
                f"{provider_kind.value} sign-in was not completed: {e}",
            ) from e
        provider_id = _IDP_PROVIDER_IDS[provider_kind]
        return await self._sign_in("signInWithIdp", {
            "postBody": f"id_token={oauth_token}&providerId={provider_id}",
            "requestUri": self._request_uri,
            "returnSecureToken": True,
        })

    async def sign_out(self) -> None:
        self._set_user(None, None)

    async def aclose(self) -> None:
        self._listeners.clear()
        if self._owns_client:
            await self._client.aclose()

    async def _sign_in(self, endpoint: str, body: dict) -> UserId:
        try:
            response = await self._client.post(
                f"{self._base_url}/accounts:{endpoint}",
                params={"key": self._api_key},
                json=body,
            )
        except httpx.HTTPError as e:
            logger.error(f"Identity provider unreachable: {e}")
            raise AuthenticationError(f"Identity provider unreachable: {e}") from e
        if response.status_code != 200:
            message = _error_message(response)
            logger.error(
                f"{endpoint} failed: {message}",
                extra={"status_code": response.status_code},
            )
            raise AuthenticationError(f"{endpoint} failed: {message}")
        try:
            data = response.json()
            local_id = data["localId"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthenticationError(f"{endpoint} returned no user id") from e
        user_id = UserId(local_id)
        self._set_user(user_id, data.get("idToken"))
        logger.info(f"Signed in via {endpoint}", extra={"user_id": user_id})
        return user_id

    def _set_user(self, user_id: UserId | None, id_token: str | None) -> None:
        self._id_token = id_token
        if user_id == self._current:
            return
        self._current = user_id
        for listener in list(self._listeners):
            listener(user_id)

    def _deliver_current(self, listener: IdentityListener) -> None:
        if listener in self._listeners:
            listener(self._current)
