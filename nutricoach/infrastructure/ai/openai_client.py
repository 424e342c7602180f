"""
OpenAI API client for the dialogue engine.

Async chat-completion client with rate limiting and typed error mapping.
"""

from __future__ import annotations

import asyncio
import os
import time
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import openai
import structlog
from openai import AsyncOpenAI

from nutricoach.config import Settings
from nutricoach.domain.shared.errors import (
    RateLimitError,
    ServiceUnavailableError,
    TimeoutError,
)

if TYPE_CHECKING:
    from openai.types.chat import ChatCompletion

logger = structlog.get_logger(__name__)


class OpenAIClient:
    """
    Async OpenAI client for assistant replies and JSON extraction.

    Implements ITextCompletionClient. SDK failures surface as
    ExternalServiceError subclasses so callers never see openai types.

    Features:
    - Rate limiting (60 RPM default)
    - SDK-level retry on transient failures
    - Context manager for resource cleanup

    Example:
        >>> async with OpenAIClient() as client:
        ...     text = await client.complete_text(
        ...         messages=[{"role": "user", "content": "Hello"}],
        ...         max_tokens=100,
        ...     )
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        max_retries: int = 3,
        timeout: int = 30,
        rpm_limit: int = 60,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (reads OPENAI_API_KEY if None)
            model: Chat model
            max_retries: Max retry attempts on failure
            timeout: Request timeout in seconds
            rpm_limit: Requests per minute limit
            client: Optional pre-configured AsyncOpenAI client (for testing)

        Raises:
            ValueError: If API key not found and client not provided
        """
        if client is not None:
            self._client: Optional[AsyncOpenAI] = client
            self.api_key: str = api_key or "test-key"
        else:
            resolved_key = api_key or os.getenv("OPENAI_API_KEY")
            if not resolved_key:
                raise ValueError(
                    "OPENAI_API_KEY not found in environment. "
                    "Set it in .env file or pass as parameter."
                )
            self.api_key = resolved_key
            self._client = None

        self.model = model
        self.max_retries = max_retries
        self.timeout = timeout
        self.rpm_limit = rpm_limit

        self._request_times: List[float] = []
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenAIClient:
        """Build a client from runtime settings."""
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            max_retries=settings.openai_max_retries,
            timeout=settings.openai_timeout,
            rpm_limit=settings.openai_rpm_limit,
        )

    async def __aenter__(self) -> OpenAIClient:
        """Async context manager entry."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.close()

    async def _rate_limit(self) -> None:
        """
        Enforce rate limiting.

        Tracks request timestamps over a sliding 60s window and sleeps
        once the window is full.
        """
        async with self._lock:
            now = time.time()

            cutoff = now - 60.0
            self._request_times = [t for t in self._request_times if t > cutoff]

            if len(self._request_times) >= self.rpm_limit:
                oldest = self._request_times[0]
                wait_time = 60.0 - (now - oldest)
                if wait_time > 0:
                    logger.info("OpenAI rate limit reached, waiting", wait_s=round(wait_time, 2))
                    await asyncio.sleep(wait_time)
                    now = time.time()
                    cutoff = now - 60.0
                    self._request_times = [t for t in self._request_times if t > cutoff]

            self._request_times.append(now)

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> Dict[str, Any]:
        """
        Run one chat completion.

        Args:
            messages: Chat messages (system, user, assistant)
            temperature: Sampling temperature (0.0-2.0)
            max_tokens: Max tokens in response

        Returns:
            Dict with:
            - content: Response text
            - usage: Token usage stats
            - finish_reason: Completion reason

        Raises:
            RateLimitError: API rate limit hit after SDK retries
            TimeoutError: Request timed out
            ServiceUnavailableError: Connection or HTTP failure
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use async with.")

        await self._rate_limit()

        params: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        try:
            completion: ChatCompletion = await self._client.chat.completions.create(**params)
        except openai.RateLimitError as e:
            raise RateLimitError(f"OpenAI rate limit exceeded: {e}") from e
        except openai.APITimeoutError as e:
            raise TimeoutError(f"OpenAI API timeout after {self.timeout}s") from e
        except openai.APIConnectionError as e:
            raise ServiceUnavailableError(f"OpenAI API unreachable: {e}") from e
        except openai.APIStatusError as e:
            raise ServiceUnavailableError(f"OpenAI API error: {e.status_code}") from e

        if not completion.choices:
            raise ServiceUnavailableError("OpenAI returned no choices")

        choice = completion.choices[0]
        return {
            "content": choice.message.content or "",
            "finish_reason": choice.finish_reason,
            "usage": {
                "prompt_tokens": (completion.usage.prompt_tokens if completion.usage else 0),
                "completion_tokens": (
                    completion.usage.completion_tokens if completion.usage else 0
                ),
                "total_tokens": (completion.usage.total_tokens if completion.usage else 0),
            },
        }

    async def complete_text(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> str:
        """
        Run one chat completion and return its text.

        Raises:
            ExternalServiceError: On API failure or an empty completion
        """
        response = await self.complete(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        content = response["content"].strip()
        if not content:
            raise ServiceUnavailableError(
                f"OpenAI returned empty content (finish_reason={response['finish_reason']})"
            )

        logger.debug(
            "OpenAI completion",
            model=self.model,
            total_tokens=response["usage"]["total_tokens"],
        )
        return content

