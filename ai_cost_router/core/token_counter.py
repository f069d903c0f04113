"""
Token counting and usage tracking.

Token estimation for routing and exact counts for cost accounting.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

# Rough granularity used by the pipeline: ~4 characters per token
CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class TokenUsage:
    """Token usage data for cost calculation.
    
    Contains exact token counts without estimation or model-specific logic.
    """
    input_tokens: int
    output_tokens: int

    def __post_init__(self):
        """Validate token counts are non-negative."""
        if self.input_tokens < 0 or self.output_tokens < 0:
            raise ValueError("token counts cannot be negative")

    @property
    def total_tokens(self) -> int:
        """Total tokens used (input + output)."""
        return self.input_tokens + self.output_tokens


def estimate_tokens(text: str) -> int:
    """Estimate the token count of a piece of text.

    Args:
        text: Message text

    Returns:
        ceil(len(text) / 4), 0 for empty text
    """
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def split_tokens(total_tokens: int, input_ratio: Decimal) -> TokenUsage:
    """Split an estimated total into input and output tokens.

    Args:
        total_tokens: Estimated tokens for the whole exchange
        input_ratio: Share of tokens that are input, in [0, 1]

    Returns:
        TokenUsage whose parts add up to total_tokens

    Raises:
        ValueError: If total_tokens is negative or input_ratio is out of range
    """
    if total_tokens < 0:
        raise ValueError("total_tokens cannot be negative")
    if input_ratio < 0 or input_ratio > 1:
        raise ValueError("input_ratio must be between 0 and 1")

    input_tokens = int((Decimal(total_tokens) * input_ratio).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return TokenUsage(input_tokens=input_tokens, output_tokens=total_tokens - input_tokens)
