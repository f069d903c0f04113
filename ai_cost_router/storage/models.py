"""
Data models for storage layer.

Defines the persisted usage event and the caller-supplied record it is built from.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ai_cost_router.core.criteria import SelectionCriteria
from ai_cost_router.core.selector import SelectionResult


@dataclass(frozen=True)
class UsageRecord:
    """Outcome of one model invocation as reported by the caller.

    Carries everything in a usage event except the id and timestamp,
    which the ledger assigns on write.
    """
    session_id: str
    model_name: str
    model_provider: str
    input_tokens: int
    output_tokens: int
    estimated_cost: float
    channel: str
    complexity: str
    urgency: str
    customer_tier: str = "standard"
    response_time_ms: int = 0
    success: bool = True
    error_message: Optional[str] = None
    actual_cost: Optional[float] = None
    total_tokens: Optional[int] = None

    def __post_init__(self):
        """Validate counts and costs."""
        if self.input_tokens < 0 or self.output_tokens < 0:
            raise ValueError("token counts cannot be negative")
        if self.estimated_cost < 0:
            raise ValueError("estimated_cost cannot be negative")
        if self.actual_cost is not None and self.actual_cost < 0:
            raise ValueError("actual_cost cannot be negative")
        if self.response_time_ms < 0:
            raise ValueError("response_time_ms cannot be negative")
        if self.total_tokens is None:
            object.__setattr__(self, "total_tokens", self.input_tokens + self.output_tokens)

    @classmethod
    def from_selection(
        cls,
        session_id: str,
        criteria: SelectionCriteria,
        selection: SelectionResult,
        input_tokens: int,
        output_tokens: int,
        response_time_ms: int,
        success: bool = True,
        error_message: Optional[str] = None,
    ) -> "UsageRecord":
        """Build a record from the selection that preceded the model call."""
        return cls(
            session_id=session_id,
            model_name=selection.model.name,
            model_provider=selection.model.provider.value,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            estimated_cost=selection.estimated_cost,
            channel=criteria.channel.value,
            complexity=criteria.complexity.value,
            urgency=criteria.urgency.value,
            customer_tier=criteria.customer_tier.value,
            response_time_ms=response_time_ms,
            success=success,
            error_message=error_message,
        )


@dataclass(frozen=True)
class UsageEvent:
    """Immutable record of a model invocation for cost accounting.
    
    Append-only events that create an auditable ledger of AI costs.
    Only actual_cost may be filled in after the write, once billing
    data is known.
    """
    id: str
    timestamp: datetime
    session_id: str
    model_name: str
    model_provider: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    estimated_cost: float
    channel: str
    complexity: str
    urgency: str
    customer_tier: str
    response_time_ms: int
    success: bool
    error_message: Optional[str] = None
    actual_cost: Optional[float] = None

    @property
    def effective_cost(self) -> float:
        """Billed cost when known, otherwise the estimate."""
        return self.actual_cost if self.actual_cost is not None else self.estimated_cost

    @classmethod
    def from_record(cls, record: UsageRecord, event_id: str, timestamp: datetime) -> "UsageEvent":
        """Stamp a caller record with its ledger id and timestamp."""
        return cls(
            id=event_id,
            timestamp=timestamp,
            session_id=record.session_id,
            model_name=record.model_name,
            model_provider=record.model_provider,
            input_tokens=record.input_tokens,
            output_tokens=record.output_tokens,
            total_tokens=record.total_tokens,
            estimated_cost=record.estimated_cost,
            channel=record.channel,
            complexity=record.complexity,
            urgency=record.urgency,
            customer_tier=record.customer_tier,
            response_time_ms=record.response_time_ms,
            success=record.success,
            error_message=record.error_message,
            actual_cost=record.actual_cost,
        )
