"""
Cost aggregation over usage events.

Turns a window of ledger events into totals, breakdowns and a savings estimate.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Sequence

from ai_cost_router.storage.models import UsageEvent


@dataclass(frozen=True)
class CostSummary:
    """Aggregated cost figures for a time window.

    cost_savings is a display heuristic, not a billing-grade counterfactual:
    it compares actual spend with routing every token through the model
    that cost the most in the window, at that model's highest observed
    per-token rate.
    """
    period_start: datetime
    period_end: datetime
    total_cost: float = 0.0
    total_requests: int = 0
    average_cost_per_request: float = 0.0
    total_tokens: int = 0
    failed_requests: int = 0
    average_response_time_ms: float = 0.0
    cost_by_model: Dict[str, float] = field(default_factory=dict)
    cost_by_channel: Dict[str, float] = field(default_factory=dict)
    cost_by_complexity: Dict[str, float] = field(default_factory=dict)
    cost_savings: float = 0.0
    cost_savings_percentage: float = 0.0

    @property
    def is_empty(self) -> bool:
        """True when no events fell in the window."""
        return self.total_requests == 0


@dataclass(frozen=True)
class ModelShare:
    """One model's share of spend."""
    model: str
    cost: float
    usage: float  # Percentage of total spend


def empty_summary(start: datetime, end: datetime) -> CostSummary:
    """All-zero summary used for empty or unavailable ledgers."""
    return CostSummary(period_start=start, period_end=end)


def summarize_events(events: Sequence[UsageEvent], start: datetime, end: datetime) -> CostSummary:
    """Aggregate events into a cost summary.

    Args:
        events: Events already filtered to the window
        start: Window start, echoed into the summary
        end: Window end, echoed into the summary

    Returns:
        CostSummary; actual_cost is preferred over estimated_cost per event
    """
    if not events:
        return empty_summary(start, end)

    total_cost = sum(e.effective_cost for e in events)
    total_requests = len(events)
    cost_savings = calculate_cost_savings(events)
    savings_base = total_cost + cost_savings

    return CostSummary(
        period_start=start,
        period_end=end,
        total_cost=total_cost,
        total_requests=total_requests,
        average_cost_per_request=total_cost / total_requests,
        total_tokens=sum(e.total_tokens for e in events),
        failed_requests=sum(1 for e in events if not e.success),
        average_response_time_ms=sum(e.response_time_ms for e in events) / total_requests,
        cost_by_model=_group_costs(events, lambda e: e.model_name),
        cost_by_channel=_group_costs(events, lambda e: e.channel),
        cost_by_complexity=_group_costs(events, lambda e: e.complexity),
        cost_savings=cost_savings,
        cost_savings_percentage=(cost_savings / savings_base) * 100 if savings_base else 0.0,
    )


def calculate_cost_savings(events: Sequence[UsageEvent]) -> float:
    """Estimate savings against always using the costliest model.

    Takes the model with the highest aggregate cost, its highest estimated
    cost per token, and prices every token in the window at that rate.
    Events with zero tokens carry no rate and are skipped when looking for
    it. Reconciled billing only changes the actual spend subtracted, never
    the rate. The result can be negative when cheaper-in-aggregate models
    had higher per-token rates.

    Args:
        events: Events in the window

    Returns:
        Hypothetical cost minus actual cost, 0 when no rate is observable
    """
    if not events:
        return 0.0

    cost_by_model = _group_costs(events, lambda e: e.model_name)
    # First model to reach the maximum wins ties
    top_model = max(cost_by_model, key=lambda name: cost_by_model[name])

    rates = [
        e.estimated_cost / e.total_tokens
        for e in events
        if e.model_name == top_model and e.total_tokens > 0
    ]
    if not rates:
        return 0.0

    total_tokens = sum(e.total_tokens for e in events)
    actual_cost = sum(e.effective_cost for e in events)
    return total_tokens * max(rates) - actual_cost


def top_models(summary: CostSummary, limit: int = 5) -> List[ModelShare]:
    """Models ranked by spend with their percentage share."""
    total = sum(summary.cost_by_model.values())
    shares = [
        ModelShare(model=model, cost=cost, usage=(cost / total) * 100 if total > 0 else 0.0)
        for model, cost in summary.cost_by_model.items()
    ]
    shares.sort(key=lambda s: s.cost, reverse=True)
    return shares[:limit]


def _group_costs(events: Sequence[UsageEvent], key: Callable[[UsageEvent], str]) -> Dict[str, float]:
    grouped: Dict[str, float] = defaultdict(float)
    for event in events:
        grouped[key(event)] += event.effective_cost
    return dict(grouped)
