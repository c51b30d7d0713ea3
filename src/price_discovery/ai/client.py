"""HTTP client for an OpenAI-compatible chat completions service.

Supports JSON mode for structured output via ``response_format``. Requests are
spaced by a rate limiter and transient failures are retried according to a
``RetryPolicy``.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Final, cast

import httpx
from aiolimiter import AsyncLimiter
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from price_discovery.ai.exceptions import (
    AIConfigurationError,
    AIRateLimitError,
    AIResponseError,
    AITimeoutError,
    AIUnavailableError,
    AIValidationError,
)
from price_discovery.ai.models import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    CompletionResult,
)
from price_discovery.observability.logging import get_logger
from price_discovery.sources.retry import RetryPolicy


if TYPE_CHECKING:
    from price_discovery.core.config import Settings


logger = get_logger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def is_transient_ai_error(error: BaseException) -> bool:
    """Retry unreachable-service errors (timeouts included), nothing else."""
    return isinstance(error, AIUnavailableError)


def extract_json_object(text: str) -> str:
    """Return the outermost ``{...}`` block of a model reply.

    Raises:
        AIValidationError: If the reply contains no JSON object.
    """
    match = _JSON_OBJECT.search(text)
    if match is None:
        msg = "No JSON object found in AI response"
        raise AIValidationError(msg)
    return match.group(0)


class ChatCompletionClient:
    """Async HTTP client for the chat completions API.

    Attributes:
        base_url: API base URL.
        model: Default model (e.g., gpt-4o-mini).
        timeout: HTTP request timeout in seconds.
        retry_policy: Retry behaviour for transient failures.
    """

    DEFAULT_BASE_URL: Final[str] = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        max_retries: int = 2,
        requests_per_minute: float = 30.0,
        *,
        retry_policy: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: API key for bearer authentication.
            model: Default model name.
            base_url: API base URL.
            timeout: HTTP request timeout in seconds (default: 30).
            max_retries: Retries after the first attempt for transient failures.
            requests_per_minute: Rate limit for API requests (default: 30).
            retry_policy: Overrides the policy derived from ``max_retries``.
            http_client: Shared HTTP client; created on initialize if omitted.

        Raises:
            AIConfigurationError: If ``api_key`` is empty.
        """
        if not api_key:
            msg = "AI API key is not configured"
            raise AIConfigurationError(msg)
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=max_retries + 1,
            backoff_base=1.0,
            retryable=is_transient_ai_error,
        )
        self._http_client = http_client
        self._owns_http_client = http_client is None
        # 1 request per (60/rpm) seconds, no initial burst
        self._rate_limiter = AsyncLimiter(1, 60.0 / requests_per_minute)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> ChatCompletionClient:
        """Build a client from the ``ai`` settings section."""
        config = settings.ai
        return cls(
            api_key=settings.AI_API_KEY,
            model=config.model,
            base_url=config.url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            requests_per_minute=config.requests_per_minute,
            http_client=http_client,
        )

    @property
    def chat_url(self) -> str:
        """Get the chat completions endpoint URL."""
        return f"{self.base_url}/chat/completions"

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def initialize(self) -> None:
        """Initialize the HTTP client with auth headers."""
        if self._http_client is not None:
            return

        self._http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers=self.headers,
            limits=httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
            ),
        )
        logger.info(
            "ChatCompletionClient initialized",
            model=self.model,
            timeout=self.timeout,
        )

    async def shutdown(self) -> None:
        """Close the HTTP client and release connections."""
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            logger.debug("ChatCompletionClient shutdown")

    async def _post_once(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """Send one request and map failures onto the AI error family."""
        assert self._http_client is not None
        await self._rate_limiter.acquire()

        try:
            response = await self._http_client.post(
                self.chat_url,
                json=request.model_dump(exclude_none=True),
                headers=self.headers,
            )
        except httpx.TimeoutException as e:
            msg = f"AI service timeout after {self.timeout}s"
            raise AITimeoutError(msg) from e
        except httpx.RequestError as e:
            msg = f"Cannot connect to AI service: {e}"
            raise AIUnavailableError(msg) from e

        if response.status_code == 429:
            retry_after = response.headers.get("retry-after", "60")
            msg = f"AI rate limit exceeded, retry after {retry_after}s"
            raise AIRateLimitError(msg)
        if response.status_code >= 500:
            msg = f"AI service returned {response.status_code}"
            raise AIUnavailableError(msg)
        if response.status_code >= 400:
            logger.error(
                "AI request rejected",
                status_code=response.status_code,
                url=self.chat_url,
            )
            msg = f"AI service returned {response.status_code}"
            raise AIResponseError(msg)

        try:
            return ChatCompletionResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            msg = f"AI service returned a malformed body: {e}"
            raise AIResponseError(msg) from e

    async def complete(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """Execute ``request`` with rate limiting and retries.

        Raises:
            AIUnavailableError: If the service cannot be reached.
            AITimeoutError: If every attempt timed out.
            AIRateLimitError: If the service rate limits the request.
            AIResponseError: If the service returns an error.
        """
        if self._http_client is None:
            await self.initialize()
        return await self.retry_policy.run(
            lambda: self._post_once(request),
            description="chat_completion",
        )

    async def generate(
        self,
        prompt: str,
        *,
        model: str | None = None,
        system: str | None = None,
        schema: type[BaseModel] | None = None,
        options: dict[str, Any] | None = None,
    ) -> CompletionResult:
        """Generate a chat completion.

        Args:
            prompt: User message text.
            model: Model to use (defaults to client's default model).
            system: Optional system prompt for context.
            schema: Optional Pydantic model for structured JSON output.
            options: ``temperature`` and ``max_tokens`` overrides.

        Returns:
            CompletionResult with raw response and optionally parsed output.

        Raises:
            AIResponseError: If the service returns an error or empty content.
            AIValidationError: If the response doesn't match ``schema``.
        """
        messages: list[ChatMessage] = []
        if system:
            messages.append(ChatMessage(role="system", content=system))
        messages.append(ChatMessage(role="user", content=prompt))

        options = options or {}
        request = ChatCompletionRequest(
            model=model or self.model,
            messages=messages,
            response_format={"type": "json_object"} if schema is not None else None,
            temperature=options.get("temperature"),
            max_tokens=options.get("max_tokens"),
        )

        response = await self.complete(request)
        raw_response = response.content
        if not raw_response:
            msg = "Empty response from AI service"
            raise AIResponseError(msg)

        parsed: Any = None
        if schema is not None:
            try:
                parsed = schema.model_validate_json(extract_json_object(raw_response))
            except PydanticValidationError as e:
                logger.warning(
                    "Failed to parse structured AI output",
                    schema=schema.__name__,
                    error=str(e),
                    raw_response=raw_response[:500],
                )
                msg = f"Response does not match {schema.__name__} schema: {e}"
                raise AIValidationError(msg) from e

        return CompletionResult(
            raw_response=raw_response,
            parsed=parsed,
            model=response.model or request.model,
            prompt_tokens=response.usage.prompt_tokens,
            completion_tokens=response.usage.completion_tokens,
        )

    async def generate_structured[T: BaseModel](
        self,
        prompt: str,
        schema: type[T],
        *,
        model: str | None = None,
        system: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> T:
        """Generate structured output matching a Pydantic schema.

        Raises:
            AIValidationError: If response doesn't match schema.
        """
        result = await self.generate(
            prompt,
            model=model,
            system=system,
            schema=schema,
            options=options,
        )
        if result.parsed is None:
            msg = "Structured generation returned no parsed result"
            raise AIValidationError(msg)
        return cast("T", result.parsed)

    async def check_health(self) -> bool:
        """Send a minimal completion; healthy when the service answers 200."""
        if self._http_client is None:
            await self.initialize()
        assert self._http_client is not None
        request = ChatCompletionRequest(
            model=self.model,
            messages=[ChatMessage(role="user", content="Health check")],
            max_tokens=5,
        )
        try:
            response = await self._http_client.post(
                self.chat_url,
                json=request.model_dump(exclude_none=True),
                headers=self.headers,
            )
        except httpx.HTTPError as e:
            logger.error("AI service health check failed", error=str(e))
            return False
        return response.status_code == 200
