"""Resilient Generative Client - wraps the Gemini generateContent endpoint with backoff and strict parsing.

Invariants:
    - Rate limits (429): wait, multiply delay, retry; at most max_retries retries,
      then ApiRetriesExhausted
    - Any other non-2xx: immediate ApiRequestError(status), no retry
    - Transport failures (no response): immediate ApiRequestError(None), no retry
    - Malformed envelope or payload: ApiResponseParseError, no retry
    - Retries for one call are strictly sequential; waits go through the injected sleeper

Design Decisions:
    - Backoff arithmetic lives in core/retry_state.py (pure); this module only
      sleeps and performs IO
    - No jitter: the delay sequence is exactly initial_delay * multiplier**n
"""

import asyncio
import logging

import httpx

from echo_journal.core.envelope import (
    build_generation_payload,
    build_reflection_prompt,
    parse_prompts,
)
from echo_journal.core.errors import (
    ApiRateLimitExceeded,
    ApiRequestError,
    ApiRetriesExhausted,
    ErrorContext,
)
from echo_journal.core.repository_protocols import (
    GenerativeTransport,
    Sleeper,
    TransportResponse,
)
from echo_journal.core.retry_state import RetryPolicy, RetryState, advance, can_retry

logger = logging.getLogger(__name__)

_RATE_LIMIT_STATUS = 429


class HttpxGenerativeTransport:
    """POSTs generateContent requests with httpx."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout_seconds: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self.url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def post(self, payload: dict) -> TransportResponse:
        try:
            response = await self._client.post(
                self.url,
                params={"key": self._api_key},
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Generative transport failure: {e}")
            raise ApiRequestError(None) from e
        return TransportResponse(response.status_code, response.content)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class ResilientGenerativeClient:
    """Bounded-retry invoker for generateContent requests."""

    def __init__(
        self,
        transport: GenerativeTransport,
        policy: RetryPolicy | None = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.transport = transport
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def invoke(self, payload: dict) -> list[str]:
        """Send payload until success, a non-retriable error, or retry exhaustion."""
        state = RetryState.initial(self.policy)
        while True:
            response = await self.transport.post(payload)
            try:
                return self._handle_response(response, state)
            except ApiRateLimitExceeded:
                state = await self._handle_rate_limit(state)

    async def generate_reflections(self, entry_text: str) -> list[str]:
        """Reflective questions for one journal entry."""
        payload = build_generation_payload(build_reflection_prompt(entry_text))
        return await self.invoke(payload)

    def _handle_response(self, response: TransportResponse, state: RetryState) -> list[str]:
        if response.ok:
            prompts = parse_prompts(response.body)
            logger.info(
                "Generative API success",
                extra={"attempt": state.attempt + 1, "status_code": response.status_code},
            )
            return prompts
        if response.status_code == _RATE_LIMIT_STATUS:
            raise ApiRateLimitExceeded(
                ErrorContext(attempt=state.attempt + 1, status_code=response.status_code),
            )
        logger.error(
            f"Generative API call failed with status: {response.status_code}",
            extra={"attempt": state.attempt + 1, "status_code": response.status_code},
        )
        raise ApiRequestError(
            response.status_code,
            ErrorContext(attempt=state.attempt + 1, status_code=response.status_code),
        )

    async def _handle_rate_limit(self, state: RetryState) -> RetryState:
        """Sleep and advance, or raise once the retry budget is spent."""
        if not can_retry(state, self.policy):
            attempts = state.attempt + 1
            logger.error(
                f"Generative API still rate limited after {attempts} attempts",
                extra={"attempt": attempts, "error_code": "API_RETRIES_EXHAUSTED"},
            )
            raise ApiRetriesExhausted(
                attempts, ErrorContext(attempt=attempts, status_code=_RATE_LIMIT_STATUS),
            )
        logger.warning(
            f"Rate limit hit, retry after {state.delay_ms}ms (attempt {state.attempt + 1})",
            extra={"attempt": state.attempt + 1, "delay_ms": state.delay_ms},
        )
        await self._sleep(state.delay_ms / 1000)
        return advance(state, self.policy)
