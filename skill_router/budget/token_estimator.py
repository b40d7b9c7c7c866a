"""
Token estimation for budgeted content.

The budget tracker only needs a stable, cheap estimate, so a character
ratio is used instead of a real tokenizer:

    tokens = ceil(len(text) / chars_per_token)
"""

import math

DEFAULT_CHARS_PER_TOKEN = 4.0


class TokenEstimator:
    """Base class for token estimators."""

    def count_tokens(self, text: str) -> int:
        """Count tokens in text."""
        raise NotImplementedError


class ApproximateTokenEstimator(TokenEstimator):
    """
    Character-ratio estimator.

    Rule of thumb: 1 token ≈ 4 characters of English text.
    """

    def __init__(self, chars_per_token: float = DEFAULT_CHARS_PER_TOKEN):
        """
        Args:
            chars_per_token: Characters per token ratio (must be positive)
        """
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")
        self.chars_per_token = chars_per_token

    def count_tokens(self, text: str) -> int:
        """Approximate token count, rounded up so any content costs at least 1."""
        if not text:
            return 0
        return math.ceil(len(text) / self.chars_per_token)


__all__ = ["TokenEstimator", "ApproximateTokenEstimator", "DEFAULT_CHARS_PER_TOKEN"]
