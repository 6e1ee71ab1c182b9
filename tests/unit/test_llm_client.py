"""Tests for LLMClient retry behaviour (litellm patched)."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from litellm.exceptions import AuthenticationError

from planning_balance.core.config import LLMConfig
from planning_balance.exceptions import NonRetryableError, RetryableError
from planning_balance.providers import LLMClient


def _response(text: str) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


@pytest.fixture
def no_sleep():
    with patch("planning_balance.providers.llm_client.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


class TestComplete:
    async def test_returns_content_and_passes_messages(self) -> None:
        client = LLMClient(LLMConfig(model="openai/gpt-4o-mini", api_key="sk-test"))
        with patch("litellm.acompletion", new=AsyncMock(return_value=_response("ok"))) as mock:
            text = await client.complete("hello", system_prompt="be brief")

        assert text == "ok"
        kwargs = mock.await_args.kwargs
        assert kwargs["model"] == "openai/gpt-4o-mini"
        assert kwargs["api_key"] == "sk-test"
        assert kwargs["messages"][0] == {"role": "system", "content": "be brief"}
        assert kwargs["messages"][1] == {"role": "user", "content": "hello"}

    async def test_none_content_is_empty_string(self) -> None:
        client = LLMClient(LLMConfig())
        with patch("litellm.acompletion", new=AsyncMock(return_value=_response(None))):
            assert await client.complete("x") == ""

    async def test_retries_then_succeeds(self, no_sleep) -> None:
        client = LLMClient(LLMConfig(max_retries=3))
        mock = AsyncMock(side_effect=[TimeoutError("slow"), _response("done")])
        with patch("litellm.acompletion", new=mock):
            assert await client.complete("x") == "done"
        assert mock.await_count == 2
        assert no_sleep.await_count == 1

    async def test_exhausted_retries(self, no_sleep) -> None:
        client = LLMClient(LLMConfig(max_retries=2))
        mock = AsyncMock(side_effect=ConnectionError("down"))
        with patch("litellm.acompletion", new=mock), pytest.raises(RetryableError):
            await client.complete("x")
        assert mock.await_count == 2

    async def test_auth_error_not_retried(self, no_sleep) -> None:
        client = LLMClient(LLMConfig(max_retries=3))
        error = AuthenticationError(message="bad key", llm_provider="openai", model="gpt-4o")
        mock = AsyncMock(side_effect=error)
        with patch("litellm.acompletion", new=mock), pytest.raises(NonRetryableError):
            await client.complete("x")
        assert mock.await_count == 1
        no_sleep.assert_not_awaited()
