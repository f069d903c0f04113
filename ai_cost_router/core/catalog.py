"""
Model catalog and descriptor definitions.

Holds the fixed table of AI backends the selector can route to.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Tuple


# Share of a request's tokens assumed to be input when no split is known
DEFAULT_INPUT_RATIO = Decimal("0.6")


class Provider(Enum):
    """Backend families a model can be served from."""
    VERTEX = "vertex"
    OPENAI = "openai"


class CapabilityTag(Enum):
    """Closed vocabulary of model capability tags."""
    FAST = "fast"
    EFFICIENT = "efficient"
    BALANCED = "balanced"
    COMPLEX_REASONING = "complex_reasoning"
    LARGE_CONTEXT = "large_context"
    GOOD_FOR_SIMPLE = "good_for_simple"
    GOOD_FOR_MODERATE = "good_for_moderate"
    GOOD_FOR_CREATIVE = "good_for_creative"
    QUICK_RESPONSES = "quick_responses"
    MULTIMODAL = "multimodal"
    CREATIVE = "creative"
    CODING = "coding"
    LATEST = "latest"
    LATEST_PREMIUM = "latest_premium"
    LEGACY_SUPPORT = "legacy_support"
    NUANCED_UNDERSTANDING = "nuanced_understanding"
    MULTILINGUAL = "multilingual"
    HIGH_ACCURACY = "high_accuracy"
    HELPFUL = "helpful"
    MAXIMAL_TRUTH = "maximal_truth"
    REAL_TIME = "real_time"


class CatalogError(ValueError):
    """Raised when the model catalog is misconfigured."""


@dataclass(frozen=True)
class ModelDescriptor:
    """Static description of one callable AI backend.

    Prices are expressed per 1000 tokens and converted at use time.
    Generation parameters are passed through to the caller untouched.
    """
    name: str
    provider: Provider
    model_id: str
    input_cost_per_1k: Decimal
    output_cost_per_1k: Decimal
    context_window: int
    capabilities: FrozenSet[CapabilityTag]
    max_output_tokens: int = 4096
    temperature: float = 0.7

    def __post_init__(self):
        """Validate pricing and limits."""
        if not self.name or not self.name.strip():
            raise CatalogError("model name cannot be empty")
        if self.input_cost_per_1k < 0 or self.output_cost_per_1k < 0:
            raise CatalogError(f"pricing for {self.name} cannot be negative")
        if self.context_window <= 0:
            raise CatalogError(f"context_window for {self.name} must be > 0")
        if self.max_output_tokens <= 0:
            raise CatalogError(f"max_output_tokens for {self.name} must be > 0")

    @property
    def cost_per_1k(self) -> Decimal:
        """Blended price per 1000 tokens at the default input/output split."""
        return (
            self.input_cost_per_1k * DEFAULT_INPUT_RATIO
            + self.output_cost_per_1k * (Decimal("1") - DEFAULT_INPUT_RATIO)
        )

    def has(self, tag: CapabilityTag) -> bool:
        """Check whether the model carries a capability tag."""
        return tag in self.capabilities


def _model(
    name: str,
    provider: Provider,
    model_id: str,
    cost_per_1k: str,
    context_window: int,
    capabilities: Iterable[CapabilityTag],
    max_output_tokens: int,
    temperature: float = 0.7,
) -> ModelDescriptor:
    # Published rates are blended, so both directions carry the same price
    price = Decimal(cost_per_1k)
    return ModelDescriptor(
        name=name,
        provider=provider,
        model_id=model_id,
        input_cost_per_1k=price,
        output_cost_per_1k=price,
        context_window=context_window,
        capabilities=frozenset(capabilities),
        max_output_tokens=max_output_tokens,
        temperature=temperature,
    )


_T = CapabilityTag

DEFAULT_MODELS: Tuple[ModelDescriptor, ...] = (
    _model("Gemini 1.5 Flash", Provider.VERTEX, "gemini-1.5-flash", "0.075", 1048576,
           [_T.FAST, _T.EFFICIENT, _T.GOOD_FOR_SIMPLE], 8192),
    _model("Claude 3.5 Haiku", Provider.VERTEX, "claude-3-5-haiku", "0.25", 200000,
           [_T.FAST, _T.EFFICIENT, _T.GOOD_FOR_SIMPLE, _T.QUICK_RESPONSES], 8192),
    _model("Gemini 2.5 Flash", Provider.VERTEX, "gemini-2.5-flash", "0.15", 1048576,
           [_T.BALANCED, _T.GOOD_FOR_MODERATE, _T.MULTIMODAL], 8192),
    _model("Claude 4.5 Sonnet", Provider.VERTEX, "claude-4-5-sonnet", "3.00", 200000,
           [_T.BALANCED, _T.GOOD_FOR_MODERATE, _T.CREATIVE, _T.CODING, _T.LATEST], 8192),
    _model("Claude 3.5 Sonnet", Provider.VERTEX, "claude-3-5-sonnet", "3.00", 200000,
           [_T.BALANCED, _T.GOOD_FOR_MODERATE, _T.CREATIVE, _T.CODING], 8192),
    _model("Claude 3 Haiku", Provider.VERTEX, "claude-3-haiku", "0.25", 200000,
           [_T.FAST, _T.EFFICIENT, _T.GOOD_FOR_SIMPLE], 4096),
    _model("Claude 3 Sonnet", Provider.VERTEX, "claude-3-sonnet", "3.00", 200000,
           [_T.BALANCED, _T.GOOD_FOR_MODERATE, _T.CREATIVE], 4096),
    _model("Claude Instant 1.2", Provider.VERTEX, "claude-instant-1.2", "0.80", 100000,
           [_T.FAST, _T.EFFICIENT, _T.LEGACY_SUPPORT], 4096),
    _model("Claude Opus 4.1", Provider.VERTEX, "claude-opus-4.1", "15.00", 200000,
           [_T.COMPLEX_REASONING, _T.CREATIVE, _T.NUANCED_UNDERSTANDING,
            _T.MULTILINGUAL, _T.LATEST_PREMIUM], 4096),
    _model("Gemini 1.5 Pro", Provider.VERTEX, "gemini-1.5-pro", "1.25", 2097152,
           [_T.COMPLEX_REASONING, _T.LARGE_CONTEXT, _T.HIGH_ACCURACY], 32768, 0.3),
    _model("Claude 3 Opus", Provider.VERTEX, "claude-3-opus", "15.00", 200000,
           [_T.COMPLEX_REASONING, _T.CREATIVE, _T.NUANCED_UNDERSTANDING, _T.MULTILINGUAL], 4096),
    _model("GPT-4o", Provider.OPENAI, "gpt-4o", "5.00", 128000,
           [_T.CREATIVE, _T.NUANCED_UNDERSTANDING, _T.GOOD_FOR_CREATIVE], 16384),
    _model("GPT-4o-mini", Provider.OPENAI, "gpt-4o-mini", "0.15", 128000,
           [_T.FAST, _T.EFFICIENT, _T.GOOD_FOR_SIMPLE], 16384),
    _model("Grok-2", Provider.VERTEX, "grok-2", "2.00", 128000,
           [_T.CREATIVE, _T.HELPFUL, _T.MAXIMAL_TRUTH, _T.REAL_TIME], 4096),
    _model("Grok-1.5", Provider.VERTEX, "grok-1.5", "1.00", 128000,
           [_T.BALANCED, _T.HELPFUL, _T.REAL_TIME], 4096),
    _model("Grok-1", Provider.VERTEX, "grok-1", "0.50", 8192,
           [_T.FAST, _T.EFFICIENT, _T.HELPFUL], 2048),
)


class ModelCatalog:
    """Read-only, validated collection of model descriptors.

    Catalog order is significant: it is the tie-break order used by the
    selector. Validation happens at construction so a bad catalog fails
    before any traffic is served.
    """

    def __init__(
        self,
        models: Iterable[ModelDescriptor] = DEFAULT_MODELS,
        disabled: Iterable[str] = (),
    ):
        """Build and validate a catalog.

        Args:
            models: Descriptors in tie-break order
            disabled: Model names to leave out of the catalog

        Raises:
            CatalogError: If the catalog is empty or names are duplicated
        """
        disabled_names = set(disabled)
        all_models = tuple(models)

        unknown = disabled_names - {m.name for m in all_models}
        if unknown:
            raise CatalogError(f"Cannot disable unknown models: {sorted(unknown)}")

        self._models: Tuple[ModelDescriptor, ...] = tuple(
            m for m in all_models if m.name not in disabled_names
        )
        self._validate()

    def _validate(self) -> None:
        if not self._models:
            raise CatalogError("Model catalog is empty")

        seen_names = set()
        seen_ids = set()
        for model in self._models:
            if model.name in seen_names:
                raise CatalogError(f"Duplicate model name: {model.name}")
            if model.model_id in seen_ids:
                raise CatalogError(f"Duplicate model id: {model.model_id}")
            seen_names.add(model.name)
            seen_ids.add(model.model_id)

    def list_models(self) -> List[ModelDescriptor]:
        """Return a copy of the catalog in tie-break order."""
        return list(self._models)

    def get(self, name: str) -> Optional[ModelDescriptor]:
        """Look up a model by display name."""
        for model in self._models:
            if model.name == name:
                return model
        return None

    def cheapest(self) -> ModelDescriptor:
        """Return the model with the lowest blended price (first on ties)."""
        return min(self._models, key=lambda m: m.cost_per_1k)

    def __len__(self) -> int:
        return len(self._models)
