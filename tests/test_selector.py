"""
Tests for cost-aware model selection.

Covers filtering, fallback, scoring and tie-breaking.
"""

import logging
from decimal import Decimal

import pytest

from ai_cost_router.core.catalog import CapabilityTag, ModelCatalog, ModelDescriptor, Provider
from ai_cost_router.core.criteria import Channel, Complexity, CustomerTier, SelectionCriteria, Urgency
from ai_cost_router.core.selector import FALLBACK_REASONING, ModelSelector, SelectionPolicy


def make_criteria(
    complexity=Complexity.SIMPLE,
    urgency=Urgency.LOW,
    context=1,
    channel=Channel.SMS,
    tier=CustomerTier.STANDARD,
    **kwargs
):
    """Create test selection criteria."""
    return SelectionCriteria(
        complexity=complexity,
        urgency=urgency,
        context_length_tokens=context,
        channel=channel,
        customer_tier=tier,
        **kwargs
    )


def make_model(name, price, tags, context_window=100000):
    """Create a test descriptor with a single blended rate."""
    return ModelDescriptor(
        name=name,
        provider=Provider.VERTEX,
        model_id=name.lower().replace(" ", "-"),
        input_cost_per_1k=Decimal(price),
        output_cost_per_1k=Decimal(price),
        context_window=context_window,
        capabilities=frozenset(tags),
    )


@pytest.fixture
def selector():
    """Selector over the default catalog."""
    return ModelSelector()


class TestSelectionCriteria:
    """Test criteria validation."""

    def test_defaults(self):
        """Verify tier defaults to standard and hints to False."""
        criteria = SelectionCriteria(Complexity.SIMPLE, Urgency.LOW, 0, Channel.CHAT)
        assert criteria.customer_tier == CustomerTier.STANDARD
        assert criteria.requires_reasoning is False
        assert criteria.requires_creativity is False

    def test_negative_context_rejected(self):
        """Verify negative context lengths are invalid."""
        with pytest.raises(ValueError, match="context_length_tokens"):
            make_criteria(context=-1)


class TestScenarios:
    """End-to-end selections against the default catalog."""

    def test_simple_sms_uses_cheapest_model(self, selector):
        """Simple, low-urgency SMS from a standard customer goes to the cheapest tier."""
        result = selector.select_model(make_criteria(context=2), 100)

        assert result.model.name == "Gemini 1.5 Flash"
        assert (result.model.has(CapabilityTag.GOOD_FOR_SIMPLE)
                or result.model.has(CapabilityTag.FAST))
        assert result.estimated_cost < 0.01
        assert result.estimated_cost == pytest.approx(0.0075)
        assert result.fallback is False

    def test_complex_enterprise_email_uses_reasoning_model(self, selector):
        """Complex enterprise email goes to a reasoning or large-context model."""
        criteria = make_criteria(
            complexity=Complexity.COMPLEX,
            urgency=Urgency.HIGH,
            context=50,
            channel=Channel.EMAIL,
            tier=CustomerTier.ENTERPRISE,
            requires_reasoning=True,
        )
        result = selector.select_model(criteria, 2000)

        assert (result.model.has(CapabilityTag.COMPLEX_REASONING)
                or result.model.has(CapabilityTag.LARGE_CONTEXT))
        assert result.model.context_window >= 50
        assert result.model.name == "Gemini 1.5 Pro"
        assert result.estimated_cost == pytest.approx(2.5)

    def test_context_beyond_every_window_falls_back(self, selector):
        """No candidates: cheapest model with fallback reasoning, no exception."""
        result = selector.select_model(make_criteria(context=3_000_000), 100)

        assert result.fallback is True
        assert result.model.name == "Gemini 1.5 Flash"
        assert result.reasoning == FALLBACK_REASONING
        assert result.estimated_cost == pytest.approx(0.0075)
        assert result.score is None

    def test_moderate_premium_chat(self, selector):
        """Moderate premium chat goes to a balanced model."""
        criteria = make_criteria(
            complexity=Complexity.MODERATE,
            urgency=Urgency.NORMAL,
            context=15,
            channel=Channel.CHAT,
            tier=CustomerTier.PREMIUM,
        )
        result = selector.select_model(criteria, 500)
        assert result.model.name == "Gemini 2.5 Flash"

    def test_urgent_voice_requires_fast_model(self, selector):
        """Urgent voice requests only consider fast models."""
        criteria = make_criteria(urgency=Urgency.HIGH, context=3, channel=Channel.VOICE)
        result = selector.select_model(criteria, 200)
        assert result.model.has(CapabilityTag.FAST)
        assert result.fallback is False

    def test_urgent_voice_with_no_fast_balanced_model_falls_back(self, selector):
        """No model is both fast and balanced, so moderate urgent voice falls back."""
        criteria = make_criteria(
            complexity=Complexity.MODERATE,
            urgency=Urgency.HIGH,
            channel=Channel.VOICE,
            tier=CustomerTier.PREMIUM,
        )
        result = selector.select_model(criteria, 100)
        assert result.fallback is True
        assert result.model.name == "Gemini 1.5 Flash"


class TestFilters:
    """Test each filter of the candidate set."""

    def test_complexity_filter(self, selector):
        """Verify complexity tiers map to their tags."""
        complex_models = selector.filter_candidates(make_criteria(complexity=Complexity.COMPLEX))
        assert {m.name for m in complex_models} == {"Claude Opus 4.1", "Gemini 1.5 Pro", "Claude 3 Opus"}

        moderate_models = selector.filter_candidates(make_criteria(complexity=Complexity.MODERATE))
        for model in moderate_models:
            assert model.has(CapabilityTag.GOOD_FOR_MODERATE) or model.has(CapabilityTag.BALANCED)

    def test_context_filter(self, selector):
        """Verify models with too small a window are dropped."""
        names = {m.name for m in selector.filter_candidates(make_criteria(context=10000))}
        assert "Grok-1" not in names
        assert "Gemini 1.5 Flash" in names

    def test_enterprise_floor(self, selector):
        """Verify enterprise customers only get models above the floor."""
        candidates = selector.filter_candidates(make_criteria(tier=CustomerTier.ENTERPRISE))
        assert candidates
        assert all(m.cost_per_1k >= Decimal("0.5") for m in candidates)

    def test_premium_floor(self, selector):
        """Verify premium customers skip models below the lower floor."""
        names = {m.name for m in selector.filter_candidates(make_criteria(tier=CustomerTier.PREMIUM))}
        assert "Gemini 1.5 Flash" not in names
        assert "GPT-4o-mini" in names

    def test_enterprise_simple_selects_above_floor(self, selector):
        """Verify the floor holds through to the final selection."""
        result = selector.select_model(make_criteria(tier=CustomerTier.ENTERPRISE, context=10), 100)
        assert result.model.cost_per_1k >= Decimal("0.5")
        assert result.model.name == "Grok-1"

    def test_configured_floor(self):
        """Verify tier floors come from the policy."""
        selector = ModelSelector(policy=SelectionPolicy(enterprise_floor=Decimal("1.0")))
        result = selector.select_model(make_criteria(tier=CustomerTier.ENTERPRISE), 100)
        assert result.fallback is True

    def test_filters_are_a_conjunction(self, selector):
        """Verify every candidate passes every filter."""
        criteria = make_criteria(
            urgency=Urgency.HIGH,
            channel=Channel.VOICE,
            tier=CustomerTier.PREMIUM,
            context=150000,
        )
        for model in selector.filter_candidates(criteria):
            assert model.has(CapabilityTag.FAST)
            assert model.context_window >= 150000
            assert model.cost_per_1k >= Decimal("0.1")


class TestScoring:
    """Test effectiveness and cost-effectiveness scoring."""

    def test_effectiveness_capped(self, selector):
        """Verify effectiveness never exceeds 1.0."""
        flash = selector.catalog.get("Gemini 1.5 Flash")
        assert selector.effectiveness(flash, make_criteria()) == 1.0

    def test_effectiveness_base(self, selector):
        """Verify a model with no matching bonuses scores the base value."""
        opus = selector.catalog.get("Claude 3 Opus")
        criteria = make_criteria(urgency=Urgency.NORMAL, context=150000, tier=CustomerTier.PREMIUM)
        assert selector.effectiveness(opus, criteria) == pytest.approx(0.5)

    def test_effectiveness_bonuses(self, selector):
        """Verify complexity, context and tier bonuses add up."""
        pro = selector.catalog.get("Gemini 1.5 Pro")
        criteria = make_criteria(
            complexity=Complexity.COMPLEX,
            urgency=Urgency.NORMAL,
            tier=CustomerTier.PREMIUM,
        )
        # 0.5 base + 0.4 complex_reasoning + 0.1 context headroom
        assert selector.effectiveness(pro, criteria) == pytest.approx(1.0)

        criteria = make_criteria(
            complexity=Complexity.MODERATE,
            urgency=Urgency.NORMAL,
            tier=CustomerTier.ENTERPRISE,
        )
        # 0.5 base + 0.1 context headroom + 0.2 enterprise pricing
        assert selector.effectiveness(pro, criteria) == pytest.approx(0.8)

    def test_score_is_effectiveness_over_log_cost(self, selector):
        """Verify the cost-effectiveness ratio."""
        import math
        flash = selector.catalog.get("Gemini 1.5 Flash")
        [scored] = selector.score_candidates([flash], make_criteria(), 1000)
        assert scored.cost == pytest.approx(0.075)
        assert scored.score == pytest.approx(1.0 / math.log(1.075))

    def test_reasoning_reports_numbers(self, selector):
        """Verify reasoning carries score, cost and effectiveness."""
        result = selector.select_model(make_criteria(), 1000)
        assert result.reasoning.startswith("Selected based on cost-effectiveness score:")
        assert "cost: $0.0750" in result.reasoning
        assert "effectiveness: 1.00" in result.reasoning

    def test_tie_broken_by_catalog_order(self):
        """Verify equal scores resolve to the first model."""
        catalog = ModelCatalog([
            make_model("First", "0.10", [CapabilityTag.FAST]),
            make_model("Second", "0.10", [CapabilityTag.FAST]),
        ])
        result = ModelSelector(catalog).select_model(make_criteria(), 500)
        assert result.model.name == "First"

        reversed_catalog = ModelCatalog(list(reversed(catalog.list_models())))
        result = ModelSelector(reversed_catalog).select_model(make_criteria(), 500)
        assert result.model.name == "Second"

    def test_zero_tokens_ranks_by_effectiveness(self, selector):
        """Verify a zero-cost estimate does not divide by zero."""
        result = selector.select_model(make_criteria(), 0)
        assert result.estimated_cost == 0.0
        assert result.model.name == "Gemini 1.5 Flash"

    def test_custom_input_ratio(self):
        """Verify callers can override the input/output split."""
        catalog = ModelCatalog([ModelDescriptor(
            name="Split",
            provider=Provider.OPENAI,
            model_id="split",
            input_cost_per_1k=Decimal("1.00"),
            output_cost_per_1k=Decimal("3.00"),
            context_window=8192,
            capabilities=frozenset({CapabilityTag.FAST}),
        )])
        selector = ModelSelector(catalog)
        assert selector.select_model(make_criteria(), 1000).estimated_cost == pytest.approx(1.8)
        assert selector.select_model(
            make_criteria(), 1000, input_ratio=Decimal("0.5")
        ).estimated_cost == pytest.approx(2.0)


class TestProperties:
    """Properties that must hold across inputs."""

    def test_simple_requests_pick_cheapest_model(self, selector):
        """The cheapest-for-simple bias holds across token counts."""
        cheapest = min(m.cost_per_1k for m in selector.catalog.list_models())
        for tokens in (1, 10, 100, 1000, 10000):
            result = selector.select_model(make_criteria(context=1), tokens)
            assert result.model.cost_per_1k == cheapest

    @pytest.mark.parametrize("complexity", list(Complexity))
    @pytest.mark.parametrize("tier", list(CustomerTier))
    @pytest.mark.parametrize("window", [1, 8192, 8193, 100001, 128001, 200001, 1048577, 2097152])
    def test_context_window_respected(self, selector, complexity, tier, window):
        """The selected window covers the context unless the fallback was used."""
        criteria = make_criteria(complexity=complexity, tier=tier, context=window, urgency=Urgency.NORMAL)
        result = selector.select_model(criteria, 500)

        if selector.filter_candidates(criteria):
            assert result.fallback is False
            assert result.model.context_window >= window
        else:
            assert result.fallback is True

    def test_estimated_cost_never_negative(self, selector):
        """Verify estimated costs are non-negative."""
        for complexity in Complexity:
            for urgency in Urgency:
                for channel in Channel:
                    criteria = make_criteria(complexity=complexity, urgency=urgency, channel=channel)
                    assert selector.select_model(criteria, 250).estimated_cost >= 0

    def test_selection_is_deterministic(self, selector):
        """Verify repeated calls return the same result."""
        criteria = make_criteria(complexity=Complexity.MODERATE, channel=Channel.CHAT)
        assert selector.select_model(criteria, 800) == selector.select_model(criteria, 800)


class TestLogging:
    """Test that fallback selections are distinguishable in logs."""

    def test_fallback_logged_as_warning(self, selector, caplog):
        """Verify the fallback is logged at WARNING."""
        with caplog.at_level(logging.WARNING, logger="ai_cost_router"):
            selector.select_model(make_criteria(context=3_000_000), 100)
        assert any("fell back" in r.getMessage() and r.levelno == logging.WARNING for r in caplog.records)

    def test_normal_selection_not_warning(self, selector, caplog):
        """Verify normal selections do not warn."""
        with caplog.at_level(logging.INFO, logger="ai_cost_router"):
            selector.select_model(make_criteria(), 100)
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]
        assert any("Model selected" in r.getMessage() for r in caplog.records)
