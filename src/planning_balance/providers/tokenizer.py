"""Pluggable token estimation for context budgeting.

Modes:
  - ``words``: word count x ``tokens_per_word`` (default, deterministic)
  - ``approximate``: chars / ``char_to_token_ratio``
  - ``tiktoken``: OpenAI tiktoken (requires the ``tiktoken`` extra)
"""

from __future__ import annotations

import logging
import math
from typing import Literal

from planning_balance.exceptions import TokenizerError

log = logging.getLogger(__name__)


class TokenCounter:
    """Estimate token cost of evidence text."""

    def __init__(
        self,
        method: Literal["words", "approximate", "tiktoken"] = "words",
        *,
        tokens_per_word: float = 1.3,
        char_to_token_ratio: int = 4,
        model: str = "gpt-4o",
        fallback_encoding: str = "cl100k_base",
    ) -> None:
        self.method = method
        self.tokens_per_word = tokens_per_word
        self._char_to_token_ratio = char_to_token_ratio
        self._model = model
        self._fallback_encoding = fallback_encoding
        self._encoder: object | None = None

        if method == "tiktoken":
            try:
                import tiktoken
            except ImportError as e:
                raise TokenizerError(
                    "tiktoken not installed. Install with: pip install planning-balance[tiktoken]"
                ) from e
            try:
                self._encoder = tiktoken.encoding_for_model(model)
            except KeyError:
                self._encoder = tiktoken.get_encoding(fallback_encoding)

    def count(self, text: str) -> int:
        """Return the estimated token count for ``text``."""
        if not text:
            return 0
        if self.method == "words":
            return math.ceil(len(text.split()) * self.tokens_per_word)
        if self.method == "approximate":
            return max(1, len(text) // self._char_to_token_ratio)
        return len(self._encoder.encode(text))  # type: ignore[union-attr]
