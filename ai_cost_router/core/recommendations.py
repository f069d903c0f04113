"""
Cost optimization heuristics.

Turns a spend summary into suggestions for cheaper routing.

Rules:
- model_switch: the costliest model's spend is large enough that moving a
  share of its traffic elsewhere is worth looking at
- channel_optimization: one or more channels each account for more than
  a fifth of total spend
"""

from dataclasses import dataclass
from enum import Enum
from typing import List

from .summary import CostSummary

# Share of the top model's spend assumed movable to cheaper models
MODEL_SWITCH_SHARE = 0.3
# Minimum savings worth a model_switch suggestion
MODEL_SWITCH_MIN_SAVINGS = 1.0
# A channel above this share of spend is flagged
CHANNEL_SHARE_THRESHOLD = 0.2
# Share of flagged channel spend assumed recoverable
CHANNEL_SAVINGS_SHARE = 0.2


class RecommendationType(Enum):
    """Kinds of optimization suggestions."""
    MODEL_SWITCH = "model_switch"
    CHANNEL_OPTIMIZATION = "channel_optimization"


class Level(Enum):
    """Coarse low/medium/high rating."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Recommendation:
    """A heuristic suggestion; savings are estimates, not guarantees."""
    type: RecommendationType
    description: str
    potential_savings: float
    confidence: Level
    implementation_effort: Level


def generate_recommendations(summary: CostSummary) -> List[Recommendation]:
    """Derive optimization suggestions from a spend summary.

    Args:
        summary: Summary of the window to inspect

    Returns:
        Recommendations, empty when the summary has no spend
    """
    recommendations = []

    if summary.cost_by_model:
        model, cost = max(summary.cost_by_model.items(), key=lambda item: item[1])
        savings = cost * MODEL_SWITCH_SHARE
        if savings > MODEL_SWITCH_MIN_SAVINGS:
            recommendations.append(Recommendation(
                type=RecommendationType.MODEL_SWITCH,
                description=(
                    f"Consider routing {model} requests to more cost-effective "
                    f"alternatives where appropriate"
                ),
                potential_savings=savings,
                confidence=Level.MEDIUM,
                implementation_effort=Level.LOW,
            ))

    high_cost_channels = [
        (channel, cost) for channel, cost in summary.cost_by_channel.items()
        if cost > summary.total_cost * CHANNEL_SHARE_THRESHOLD
    ]
    if high_cost_channels:
        names = ", ".join(channel for channel, _ in high_cost_channels)
        recommendations.append(Recommendation(
            type=RecommendationType.CHANNEL_OPTIMIZATION,
            description=(
                f"High-cost channels detected ({names}). "
                f"Consider model optimization for these channels."
            ),
            potential_savings=sum(cost for _, cost in high_cost_channels) * CHANNEL_SAVINGS_SHARE,
            confidence=Level.HIGH,
            implementation_effort=Level.MEDIUM,
        ))

    return recommendations
