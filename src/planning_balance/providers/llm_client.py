"""Async LLM client routed through LiteLLM.

Model ids carry LiteLLM provider prefixes (``gemini/``, ``anthropic/``,
``openai/``), so the reasoning service is provider-agnostic.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any

from planning_balance.core.config import LLMConfig
from planning_balance.exceptions import NonRetryableError, RetryableError

log = logging.getLogger(__name__)


class LLMClient:
    """Single-prompt completions with jittered exponential backoff."""

    def __init__(self, config: LLMConfig) -> None:
        self._config = config

    @property
    def model(self) -> str:
        return self._config.model

    @staticmethod
    def _is_retryable(exc: Exception) -> bool:
        """Auth, bad-request and not-found errors fail immediately; the rest retry."""
        from litellm.exceptions import AuthenticationError, BadRequestError, NotFoundError

        return not isinstance(exc, (AuthenticationError, BadRequestError, NotFoundError))

    async def complete(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> str:
        """Return the completion text for ``prompt``.

        Raises:
            NonRetryableError: the provider rejected the request.
            RetryableError: all retries were exhausted.
        """
        from litellm import acompletion

        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "messages": messages,
            "temperature": self._config.temperature if temperature is None else temperature,
            "top_p": self._config.top_p,
            "timeout": timeout or self._config.timeout,
        }
        if self._config.api_base:
            kwargs["api_base"] = self._config.api_base
        if self._config.api_key:
            kwargs["api_key"] = self._config.api_key

        max_retries = max(1, self._config.max_retries)
        last_error: Exception | None = None
        for attempt in range(max_retries):
            try:
                response = await acompletion(**kwargs)
                return response.choices[0].message.content or ""
            except Exception as e:
                last_error = e
                if not self._is_retryable(e):
                    raise NonRetryableError(f"Non-retryable LLM error: {e}") from e

                base_wait = min(2**attempt, self._config.retry_max_delay)
                wait = base_wait + random.uniform(0, base_wait * self._config.retry_jitter_factor)
                log.warning(
                    "LLM retry %d/%d: %s (wait=%.1fs)", attempt + 1, max_retries, e, wait
                )
                if attempt < max_retries - 1:
                    await asyncio.sleep(wait)

        raise RetryableError(
            f"LLM API failed after {max_retries} retries: {last_error}"
        ) from last_error
