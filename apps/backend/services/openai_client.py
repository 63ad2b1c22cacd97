"""
LinguaLens - OpenAI Client
==========================
Async httpx client for the OpenAI Chat Completions, Embeddings and Models
endpoints, with retry, circuit breaking and user-facing error mapping.
"""

import time
from typing import Any, Optional

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from circuit_breaker import CircuitBreaker, CircuitBreakerOpenError, get_circuit_breaker
from config import Settings, get_settings
from exceptions import (
    InvalidAPIKeyError,
    LLMServiceError,
    QuotaExceededError,
    ServiceUnavailableError,
)
from logging_config import get_logger
from metrics import llm_failures_total, llm_request_duration_seconds, llm_requests_total

logger = get_logger(__name__)

MAX_ATTEMPTS = 3


class TransientOpenAIError(Exception):
    """Rate limited, overloaded or unreachable. Safe to retry."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _error_payload(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    error = body.get("error") if isinstance(body, dict) else None
    return error if isinstance(error, dict) else {}


class OpenAIClient:
    """
    Async client for the OpenAI REST API.

    Every request goes through the process-wide ``openai`` circuit breaker.
    Transient failures (429 rate limits, 5xx, network errors) are retried
    with exponential backoff before being reported.

    Example:
        ```python
        async with OpenAIClient() as client:
            text = await client.chat_completion(
                [{"role": "user", "content": "Hello"}],
                operation="chat",
            )
        ```
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: OpenAI key (default from settings)
            base_url: API root (default from settings)
            model: Chat model name (default from settings)
            settings: Application settings
            transport: Optional httpx transport, used by tests
            breaker: Circuit breaker (default: shared ``openai`` breaker)
        """
        self.settings = settings or get_settings()
        self.api_key = api_key or self.settings.openai_api_key
        self.base_url = (base_url or self.settings.openai_base_url).rstrip("/")
        self.model = model or self.settings.openai_model
        self.embedding_model = self.settings.openai_embedding_model
        self._transport = transport
        self._breaker = breaker or get_circuit_breaker(
            "openai",
            failure_threshold=5,
            recovery_timeout=30.0,
            expected_exception=TransientOpenAIError,
        )
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "OpenAIClient":
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(60.0, connect=10.0),
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # =========================================================================
    # Transport
    # =========================================================================

    @retry(
        retry=retry_if_exception_type(TransientOpenAIError),
        stop=stop_after_attempt(MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "openai_retrying",
            attempt=retry_state.attempt_number,
            max_attempts=MAX_ATTEMPTS,
            sleep=retry_state.next_action.sleep if retry_state.next_action else None,
        ),
    )
    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> dict:
        """
        Send one request and return the decoded JSON body.

        Raises:
            TransientOpenAIError: Retryable failure (after the last attempt)
            QuotaExceededError: 429 with ``insufficient_quota``
            InvalidAPIKeyError: 401
            LLMServiceError: Any other non-2xx response
        """
        client = self._get_client()
        try:
            response = await client.request(method, path, json=json)
        except httpx.RequestError as e:
            raise TransientOpenAIError(f"OpenAI connection error: {e}") from e

        if response.is_success:
            return response.json()

        error = _error_payload(response)
        status = response.status_code

        if status == 429:
            if error.get("code") == "insufficient_quota" or error.get("type") == "insufficient_quota":
                raise QuotaExceededError(model=self.model)
            raise TransientOpenAIError("OpenAI rate limit reached", status_code=429)
        if status == 401:
            raise InvalidAPIKeyError(model=self.model)
        if status >= 500:
            raise TransientOpenAIError(f"OpenAI returned {status}", status_code=status)

        raise LLMServiceError(error.get("message") or f"OpenAI request failed ({status})", model=self.model)

    async def _call(self, method: str, path: str, operation: str, json: Optional[dict] = None) -> dict:
        """Run a request through the breaker and map exhausted retries to user-facing errors."""
        llm_requests_total.labels(operation=operation).inc()
        start_time = time.perf_counter()
        try:
            return await self._breaker.call(self._request, method, path, json=json)
        except CircuitBreakerOpenError as e:
            llm_failures_total.labels(operation=operation).inc()
            raise ServiceUnavailableError(model=self.model, original_error=e) from e
        except TransientOpenAIError as e:
            llm_failures_total.labels(operation=operation).inc()
            logger.error("openai_request_failed", operation=operation, error=str(e))
            if e.status_code == 429:
                raise QuotaExceededError(model=self.model, original_error=e) from e
            raise ServiceUnavailableError(model=self.model, original_error=e) from e
        except LLMServiceError as e:
            llm_failures_total.labels(operation=operation).inc()
            e.context.setdefault("operation", operation)
            logger.error("openai_request_failed", operation=operation, error=e.message)
            raise
        finally:
            llm_request_duration_seconds.labels(operation=operation).observe(
                time.perf_counter() - start_time
            )

    # =========================================================================
    # Endpoints
    # =========================================================================

    async def chat_completion(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        operation: str = "chat",
        empty_message: str = "No response received",
        allow_empty: bool = False,
    ) -> str:
        """
        Run a chat completion and return the first choice's content.

        Args:
            messages: OpenAI-format message dicts
            temperature: Sampling temperature
            max_tokens: Completion token cap (None for the model default)
            json_mode: Request ``response_format=json_object``
            operation: Label for metrics and logs
            empty_message: Error message used when the model returns nothing
            allow_empty: Return "" instead of raising on empty content

        Returns:
            The completion text

        Raises:
            LLMServiceError: On failure or empty content
        """
        body: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            body["max_tokens"] = max_tokens
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        data = await self._call("POST", "/chat/completions", operation, json=body)

        try:
            content = data["choices"][0]["message"].get("content")
        except (KeyError, IndexError, TypeError):
            content = None

        if not content:
            if allow_empty:
                return ""
            raise LLMServiceError(empty_message, model=self.model, operation=operation)

        usage = data.get("usage", {})
        logger.info(
            "openai_completion",
            operation=operation,
            model=self.model,
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
        )
        return content

    async def embeddings(self, inputs: list[str]) -> list[list[float]]:
        if not inputs:
            return []
        data = await self._call(
            "POST",
            "/embeddings",
            "embeddings",
            json={"model": self.embedding_model, "input": inputs},
        )
        rows = sorted(data.get("data", []), key=lambda row: row.get("index", 0))
        return [row["embedding"] for row in rows]

    async def list_models(self) -> list[dict]:
        data = await self._call("GET", "/models", "list_models")
        return data.get("data", [])


# =============================================================================
# Shared Instance
# =============================================================================

_client: Optional[OpenAIClient] = None


def get_openai_client() -> OpenAIClient:
    """Process-wide client, also used as a FastAPI dependency."""
    global _client
    if _client is None:
        _client = OpenAIClient()
    return _client


async def close_openai_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
