"""
Usage ledger and cost reporting.

Records every model invocation and answers summary, trend, budget and
recommendation queries over the recorded events.

Failure policy:
1. Writes are best-effort - a failed write is logged and reported in the
   returned TrackingOutcome, never raised, so cost tracking cannot break the
   customer-facing conversation it measures
2. Reads degrade to empty summaries when the ledger is empty or unavailable
3. Invalid arguments (negative costs, non-positive budgets) still raise
"""

import logging
import sqlite3
import time
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time as dt_time, timedelta
from typing import Callable, List, Optional

from .budget import DEFAULT_ALERT_THRESHOLD, BudgetStatus, evaluate_budget
from .recommendations import Recommendation, generate_recommendations
from .summary import CostSummary, ModelShare, empty_summary, summarize_events, top_models
from ai_cost_router.storage.models import UsageEvent, UsageRecord
from ai_cost_router.storage.repository import UsageRepository, is_missing_table

logger = logging.getLogger(__name__)

RECOMMENDATION_WINDOW_DAYS = 30
TOP_MODELS_LIMIT = 5


@dataclass(frozen=True)
class TrackingOutcome:
    """Result of a best-effort write.

    recorded is False when the event could not be stored; the error text
    is kept for the caller's own diagnostics.
    """
    recorded: bool
    event_id: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class DailyMetrics:
    """Spend so far today."""
    total_cost: float
    request_count: int
    average_cost_per_request: float
    top_models: List[ModelShare]


@dataclass(frozen=True)
class TrendPoint:
    """Spend for one calendar day."""
    date: str  # ISO date, YYYY-MM-DD
    total_cost: float
    request_count: int
    average_cost: float


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, dt_time.min)


def _end_of_day(day: date) -> datetime:
    return datetime.combine(day, dt_time.max)


class CostTracker:
    """Append-only usage ledger with reporting queries.

    Queries are eventually consistent with recent writes; no isolation is
    promised between a write and a following read.
    """

    def __init__(
        self,
        repository: UsageRepository,
        alert_threshold: float = DEFAULT_ALERT_THRESHOLD,
        max_write_attempts: int = 3,
        retry_delay: float = 0.05,
        now: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the tracker.

        Args:
            repository: Storage for usage events
            alert_threshold: Share of the daily budget that triggers an alert
            max_write_attempts: Attempts per write on transient store errors
            retry_delay: Base delay in seconds between attempts, grows linearly
            now: Clock, injectable for tests
            sleep: Sleep function, injectable for tests

        Raises:
            ValueError: If alert_threshold or max_write_attempts is out of range
        """
        if alert_threshold <= 0 or alert_threshold > 1:
            raise ValueError("alert_threshold must be in (0, 1]")
        if max_write_attempts < 1:
            raise ValueError("max_write_attempts must be >= 1")

        self.repository = repository
        self.alert_threshold = alert_threshold
        self.max_write_attempts = max_write_attempts
        self.retry_delay = retry_delay
        self._now = now
        self._sleep = sleep

    def record_usage(self, record: UsageRecord) -> TrackingOutcome:
        """Persist one usage event, assigning its id and timestamp.

        Transient lock errors are retried; anything else is logged and
        reported in the outcome.

        Args:
            record: Caller-supplied invocation outcome

        Returns:
            TrackingOutcome describing whether the event was stored
        """
        event_id = f"cost_{uuid.uuid4().hex}"
        try:
            event = UsageEvent.from_record(record, event_id=event_id, timestamp=self._now())
            self._insert_with_retry(event)
        except Exception as e:
            logger.exception("Error recording usage for model %s", record.model_name)
            return TrackingOutcome(recorded=False, error=str(e))

        logger.info(
            "Recorded AI model usage id=%s model=%s estimated_cost=%.6f total_tokens=%d channel=%s",
            event.id, event.model_name, event.estimated_cost, event.total_tokens, event.channel,
        )
        return TrackingOutcome(recorded=True, event_id=event.id)

    def _insert_with_retry(self, event: UsageEvent) -> None:
        for attempt in range(1, self.max_write_attempts + 1):
            try:
                self.repository.insert_event(event)
                return
            except sqlite3.OperationalError as e:
                if is_missing_table(e) or attempt == self.max_write_attempts:
                    raise
                logger.warning(
                    "Transient error writing usage event %s (attempt %d/%d): %s",
                    event.id, attempt, self.max_write_attempts, e,
                )
                self._sleep(self.retry_delay * attempt)

    def update_actual_cost(self, event_id: str, actual_cost: float) -> bool:
        """Fill in the billed cost of a recorded event.

        Args:
            event_id: Id returned when the event was recorded
            actual_cost: Billed cost from the provider

        Returns:
            True if the event was patched

        Raises:
            ValueError: If actual_cost is negative
        """
        if actual_cost < 0:
            raise ValueError("actual_cost cannot be negative")

        try:
            updated = self.repository.update_actual_cost(event_id, actual_cost, self._now())
        except sqlite3.Error:
            logger.exception("Error updating actual cost for %s", event_id)
            return False

        if updated:
            logger.info("Updated actual cost for record %s: %.6f", event_id, actual_cost)
        else:
            logger.warning("No usage event with id %s to update", event_id)
        return updated

    def get_cost_summary(self, start: datetime, end: datetime) -> CostSummary:
        """Aggregate all events with start <= timestamp <= end.

        Args:
            start: Inclusive window start
            end: Inclusive window end

        Returns:
            CostSummary, all zeros when the ledger is empty or unavailable
        """
        try:
            events = self.repository.fetch_events(start, end)
        except (sqlite3.Error, ValueError) as e:
            if is_missing_table(e):
                logger.warning("Usage ledger not initialized, returning empty summary")
            else:
                logger.exception("Error getting cost summary")
            return empty_summary(start, end)

        return summarize_events(events, start, end)

    def get_recent_events(self, model: Optional[str] = None, limit: int = 20) -> List[UsageEvent]:
        """Most recent ledger events, newest first.

        Lists the ids that reconciliation needs. Degrades to an empty list
        like the summary queries.

        Args:
            model: Optional model name filter
            limit: Maximum number of events

        Returns:
            Events ordered newest first
        """
        try:
            return self.repository.fetch_recent_events(model=model, limit=limit)
        except (sqlite3.Error, ValueError) as e:
            if is_missing_table(e):
                logger.warning("Usage ledger not initialized, no events to list")
            else:
                logger.exception("Error listing recent usage events")
            return []

    def get_current_day_metrics(self) -> DailyMetrics:
        """Spend from midnight until now, with the top models by cost."""
        now = self._now()
        summary = self.get_cost_summary(_start_of_day(now.date()), now)
        return DailyMetrics(
            total_cost=summary.total_cost,
            request_count=summary.total_requests,
            average_cost_per_request=summary.average_cost_per_request,
            top_models=top_models(summary, TOP_MODELS_LIMIT),
        )

    def get_cost_trends(self, days: int = 7) -> List[TrendPoint]:
        """Per-day spend for the last `days` calendar days, oldest first.

        Args:
            days: Number of days including today

        Returns:
            One TrendPoint per day, empty when days < 1
        """
        today = self._now().date()
        trends = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            summary = self.get_cost_summary(_start_of_day(day), _end_of_day(day))
            trends.append(TrendPoint(
                date=day.isoformat(),
                total_cost=summary.total_cost,
                request_count=summary.total_requests,
                average_cost=summary.average_cost_per_request,
            ))
        return trends

    def check_budget_alert(self, daily_budget: float) -> BudgetStatus:
        """Compare today's spend with the daily budget.

        Args:
            daily_budget: Budget ceiling for the day

        Returns:
            BudgetStatus; alert_triggered once spend passes the threshold

        Raises:
            ValueError: If daily_budget is not positive
        """
        metrics = self.get_current_day_metrics()
        status = evaluate_budget(metrics.total_cost, daily_budget, self.alert_threshold)

        if status.alert_triggered:
            logger.warning(
                "Budget alert triggered: spent $%.2f of $%.2f daily budget (%.1f%%)",
                status.current_spending, daily_budget, status.percentage_used,
            )
        return status

    def get_optimization_recommendations(self) -> List[Recommendation]:
        """Heuristic savings suggestions from the trailing 30 days."""
        now = self._now()
        summary = self.get_cost_summary(now - timedelta(days=RECOMMENDATION_WINDOW_DAYS), now)
        return generate_recommendations(summary)
