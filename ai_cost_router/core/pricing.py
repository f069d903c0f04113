"""
Pricing calculations.

Converts per-1000-token model prices into request costs.
"""

from decimal import Decimal
from typing import Optional, Union

from .catalog import DEFAULT_INPUT_RATIO, ModelDescriptor
from .token_counter import TokenUsage

_THOUSAND = Decimal("1000")


def calculate_usage_cost(model: ModelDescriptor, usage: TokenUsage) -> float:
    """Calculate the cost of an exact token usage.

    Args:
        model: Descriptor carrying the per-1k prices
        usage: Input and output token counts

    Returns:
        Cost in currency units (no rounding, so cost stays linear in tokens)
    """
    input_cost = (Decimal(usage.input_tokens) / _THOUSAND) * model.input_cost_per_1k
    output_cost = (Decimal(usage.output_tokens) / _THOUSAND) * model.output_cost_per_1k
    return float(input_cost + output_cost)


def calculate_cost(
    model: ModelDescriptor,
    tokens: int,
    input_ratio: Optional[Union[Decimal, float]] = None,
) -> float:
    """Estimate the cost of a request from its total token count.

    The total is priced as a weighted blend of input and output rates,
    60/40 unless the caller knows better.

    Args:
        model: Descriptor carrying the per-1k prices
        tokens: Estimated total tokens
        input_ratio: Optional share of tokens that are input, in [0, 1]

    Returns:
        Estimated cost in currency units

    Raises:
        ValueError: If tokens is negative or input_ratio is out of range
    """
    if tokens < 0:
        raise ValueError("tokens cannot be negative")

    ratio = DEFAULT_INPUT_RATIO if input_ratio is None else Decimal(str(input_ratio))
    if ratio < 0 or ratio > 1:
        raise ValueError("input_ratio must be between 0 and 1")

    rate = model.input_cost_per_1k * ratio + model.output_cost_per_1k * (Decimal("1") - ratio)
    return float((Decimal(tokens) / _THOUSAND) * rate)
