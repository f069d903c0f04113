"""
Cost-aware model selection.

Filters the catalog down to models that can serve an interaction, then ranks
the survivors by a cost-effectiveness ratio.

Selection pipeline:
1. Filter - complexity, context window, customer-tier price floor, and
   latency (urgent voice) filters, applied as a conjunction
2. Fallback - cheapest model in the catalog when nothing survives
3. Score - effectiveness / ln(cost + 1)
4. Select - highest score, catalog order breaks ties
"""

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from .catalog import CapabilityTag, ModelCatalog, ModelDescriptor
from .criteria import Channel, Complexity, CustomerTier, SelectionCriteria, Urgency
from .pricing import calculate_cost

logger = logging.getLogger(__name__)

FALLBACK_REASONING = "no candidates matched criteria, used cheapest fallback"

BASE_EFFECTIVENESS = 0.5
MAX_EFFECTIVENESS = 1.0

# Keeps the score finite when a request is estimated at zero cost
_MIN_DENOMINATOR = 1e-9

# Tags that qualify a model for each complexity tier
_COMPLEXITY_TAGS = {
    Complexity.SIMPLE: (CapabilityTag.GOOD_FOR_SIMPLE, CapabilityTag.FAST),
    Complexity.MODERATE: (CapabilityTag.GOOD_FOR_MODERATE, CapabilityTag.BALANCED),
    Complexity.COMPLEX: (CapabilityTag.COMPLEX_REASONING, CapabilityTag.LARGE_CONTEXT),
}

# Bonus for the tag that marks a model as built for the complexity tier
_COMPLEXITY_BONUS = {
    Complexity.SIMPLE: (CapabilityTag.GOOD_FOR_SIMPLE, 0.3),
    Complexity.MODERATE: (CapabilityTag.GOOD_FOR_MODERATE, 0.3),
    Complexity.COMPLEX: (CapabilityTag.COMPLEX_REASONING, 0.4),
}


@dataclass(frozen=True)
class SelectionPolicy:
    """Tunable constants of the selection algorithm."""
    enterprise_floor: Decimal = Decimal("0.5")
    premium_floor: Decimal = Decimal("0.1")
    input_ratio: Decimal = Decimal("0.6")
    # Effectiveness bonus thresholds, blended price per 1k tokens
    low_urgency_price_ceiling: Decimal = Decimal("0.5")
    enterprise_price_threshold: Decimal = Decimal("1.0")
    standard_price_ceiling: Decimal = Decimal("0.2")

    def __post_init__(self):
        """Validate floors and ratio."""
        if self.enterprise_floor < 0 or self.premium_floor < 0:
            raise ValueError("tier floors cannot be negative")
        if self.input_ratio < 0 or self.input_ratio > 1:
            raise ValueError("input_ratio must be between 0 and 1")

    def tier_floor(self, tier: CustomerTier) -> Optional[Decimal]:
        """Minimum blended price a model must have to serve a tier."""
        if tier == CustomerTier.ENTERPRISE:
            return self.enterprise_floor
        if tier == CustomerTier.PREMIUM:
            return self.premium_floor
        return None


@dataclass(frozen=True)
class ScoredCandidate:
    """A surviving candidate with its ranking inputs."""
    model: ModelDescriptor
    cost: float
    effectiveness: float
    score: float


@dataclass(frozen=True)
class SelectionResult:
    """Outcome of a selection: the model, its estimated cost and why."""
    model: ModelDescriptor
    estimated_cost: float
    reasoning: str
    fallback: bool = False
    score: Optional[float] = None
    effectiveness: Optional[float] = None


class ModelSelector:
    """Picks the most cost-effective model for an interaction.

    Stateless apart from the read-only catalog, so a single instance can be
    shared across threads.
    """

    def __init__(self, catalog: Optional[ModelCatalog] = None, policy: Optional[SelectionPolicy] = None):
        self.catalog = catalog if catalog is not None else ModelCatalog()
        self.policy = policy if policy is not None else SelectionPolicy()

    def select_model(
        self,
        criteria: SelectionCriteria,
        estimated_total_tokens: int,
        input_ratio: Optional[Decimal] = None,
    ) -> SelectionResult:
        """Select the best model for the given criteria.

        Args:
            criteria: Classification signals of the interaction
            estimated_total_tokens: Expected input + output tokens
            input_ratio: Optional input share overriding the policy split

        Returns:
            SelectionResult; never raises for well-formed criteria
        """
        ratio = self.policy.input_ratio if input_ratio is None else input_ratio
        candidates = self.filter_candidates(criteria)

        if not candidates:
            fallback = self.catalog.cheapest()
            cost = calculate_cost(fallback, estimated_total_tokens, ratio)
            logger.warning(
                "Model selection fell back to cheapest model %s (complexity=%s urgency=%s "
                "context=%d channel=%s tier=%s)",
                fallback.name, criteria.complexity.value, criteria.urgency.value,
                criteria.context_length_tokens, criteria.channel.value, criteria.customer_tier.value,
            )
            return SelectionResult(
                model=fallback,
                estimated_cost=cost,
                reasoning=FALLBACK_REASONING,
                fallback=True,
            )

        best = None
        for candidate in self.score_candidates(candidates, criteria, estimated_total_tokens, ratio):
            # Strictly greater keeps the first of equal scores
            if best is None or candidate.score > best.score:
                best = candidate

        reasoning = (
            f"Selected based on cost-effectiveness score: {best.score:.2f} "
            f"(cost: ${best.cost:.4f}, effectiveness: {best.effectiveness:.2f})"
        )
        logger.info(
            "Model selected: %s for %d tokens, estimated cost $%.6f, reasoning=%s "
            "(requires_reasoning=%s requires_creativity=%s)",
            best.model.name, estimated_total_tokens, best.cost, reasoning,
            criteria.requires_reasoning, criteria.requires_creativity,
        )
        return SelectionResult(
            model=best.model,
            estimated_cost=best.cost,
            reasoning=reasoning,
            score=best.score,
            effectiveness=best.effectiveness,
        )

    def filter_candidates(self, criteria: SelectionCriteria) -> List[ModelDescriptor]:
        """Return catalog models passing every filter, in catalog order."""
        return [
            model for model in self.catalog.list_models()
            if self._matches_complexity(model, criteria)
            and model.context_window >= criteria.context_length_tokens
            and self._meets_tier_floor(model, criteria)
            and self._meets_latency(model, criteria)
        ]

    def score_candidates(
        self,
        candidates: List[ModelDescriptor],
        criteria: SelectionCriteria,
        estimated_total_tokens: int,
        input_ratio: Optional[Decimal] = None,
    ) -> List[ScoredCandidate]:
        """Score candidates by effectiveness per logarithmic unit of cost."""
        ratio = self.policy.input_ratio if input_ratio is None else input_ratio
        scored = []
        for model in candidates:
            cost = calculate_cost(model, estimated_total_tokens, ratio)
            effectiveness = self.effectiveness(model, criteria)
            denominator = max(math.log1p(cost), _MIN_DENOMINATOR)
            scored.append(ScoredCandidate(
                model=model,
                cost=cost,
                effectiveness=effectiveness,
                score=effectiveness / denominator,
            ))
        return scored

    def effectiveness(self, model: ModelDescriptor, criteria: SelectionCriteria) -> float:
        """How well a model fits the criteria, in [0, 1]."""
        policy = self.policy
        price = model.cost_per_1k
        score = BASE_EFFECTIVENESS

        tag, bonus = _COMPLEXITY_BONUS[criteria.complexity]
        if model.has(tag):
            score += bonus

        if criteria.urgency == Urgency.HIGH and model.has(CapabilityTag.FAST):
            score += 0.2
        if criteria.urgency == Urgency.LOW and price < policy.low_urgency_price_ceiling:
            score += 0.1

        if model.context_window > criteria.context_length_tokens * 2:
            score += 0.1

        if criteria.customer_tier == CustomerTier.ENTERPRISE and price > policy.enterprise_price_threshold:
            score += 0.2
        if criteria.customer_tier == CustomerTier.STANDARD and price < policy.standard_price_ceiling:
            score += 0.1

        return min(score, MAX_EFFECTIVENESS)

    @staticmethod
    def _matches_complexity(model: ModelDescriptor, criteria: SelectionCriteria) -> bool:
        return any(model.has(tag) for tag in _COMPLEXITY_TAGS[criteria.complexity])

    def _meets_tier_floor(self, model: ModelDescriptor, criteria: SelectionCriteria) -> bool:
        floor = self.policy.tier_floor(criteria.customer_tier)
        return floor is None or model.cost_per_1k >= floor

    @staticmethod
    def _meets_latency(model: ModelDescriptor, criteria: SelectionCriteria) -> bool:
        if criteria.channel == Channel.VOICE and criteria.urgency == Urgency.HIGH:
            return model.has(CapabilityTag.FAST)
        return True
