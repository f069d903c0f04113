"""
Daily budget checks.

Compares spend against a budget and raises an alert as the ceiling nears.
"""

from dataclasses import dataclass

# Alert once this share of the budget has been spent
DEFAULT_ALERT_THRESHOLD = 0.8


@dataclass(frozen=True)
class BudgetStatus:
    """Result of checking spend against a daily budget."""
    daily_budget: float
    current_spending: float
    within_budget: bool
    budget_remaining: float  # Negative once the budget is exceeded
    alert_triggered: bool
    percentage_used: float


def evaluate_budget(
    current_spending: float,
    daily_budget: float,
    alert_threshold: float = DEFAULT_ALERT_THRESHOLD,
) -> BudgetStatus:
    """Evaluate today's spend against the daily budget.

    Args:
        current_spending: Cost accumulated so far today
        daily_budget: Budget ceiling for the day
        alert_threshold: Share of the budget that triggers the alert

    Returns:
        BudgetStatus; the alert fires when spend exceeds threshold * budget

    Raises:
        ValueError: If the budget or threshold is out of range
    """
    if daily_budget <= 0:
        raise ValueError("daily_budget must be > 0")
    if alert_threshold <= 0 or alert_threshold > 1:
        raise ValueError("alert_threshold must be in (0, 1]")

    return BudgetStatus(
        daily_budget=daily_budget,
        current_spending=current_spending,
        within_budget=current_spending <= daily_budget,
        budget_remaining=daily_budget - current_spending,
        alert_triggered=current_spending > daily_budget * alert_threshold,
        percentage_used=(current_spending / daily_budget) * 100,
    )
