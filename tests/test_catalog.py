"""
Unit tests for the model catalog.

Tests descriptor validation, catalog copies and startup checks.
"""

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from ai_cost_router.core.catalog import (
    DEFAULT_MODELS,
    CapabilityTag,
    CatalogError,
    ModelCatalog,
    ModelDescriptor,
    Provider,
)


def make_model(name="Test Model", model_id=None, price="1.00", context_window=8192, tags=(CapabilityTag.FAST,)):
    """Create a test descriptor."""
    return ModelDescriptor(
        name=name,
        provider=Provider.OPENAI,
        model_id=model_id or name.lower().replace(" ", "-"),
        input_cost_per_1k=Decimal(price),
        output_cost_per_1k=Decimal(price),
        context_window=context_window,
        capabilities=frozenset(tags),
    )


class TestModelDescriptor:
    """Test descriptor validation and derived values."""

    def test_blended_price_uses_default_split(self):
        """Verify blended price weights input 60% and output 40%."""
        model = ModelDescriptor(
            name="Split",
            provider=Provider.VERTEX,
            model_id="split",
            input_cost_per_1k=Decimal("1.00"),
            output_cost_per_1k=Decimal("3.00"),
            context_window=1000,
            capabilities=frozenset(),
        )
        assert model.cost_per_1k == Decimal("1.80")

    def test_negative_price_rejected(self):
        """Verify negative pricing fails fast."""
        with pytest.raises(CatalogError, match="cannot be negative"):
            make_model(price="-0.01")

    def test_zero_context_window_rejected(self):
        """Verify context window must be positive."""
        with pytest.raises(CatalogError, match="context_window"):
            make_model(context_window=0)

    def test_empty_name_rejected(self):
        """Verify descriptors need a name."""
        with pytest.raises(CatalogError, match="name"):
            make_model(name="  ", model_id="blank")

    def test_descriptor_is_immutable(self):
        """Verify descriptors cannot be mutated."""
        model = make_model()
        with pytest.raises(FrozenInstanceError):
            model.context_window = 1

    def test_catalog_error_is_value_error(self):
        """Verify configuration errors are ValueErrors."""
        assert issubclass(CatalogError, ValueError)


class TestModelCatalog:
    """Test catalog construction and read access."""

    def test_default_catalog_loads(self):
        """Verify the default catalog validates."""
        catalog = ModelCatalog()
        assert len(catalog) == len(DEFAULT_MODELS) == 16

    def test_default_names_unique(self):
        """Verify every default model has a unique name and id."""
        names = [m.name for m in DEFAULT_MODELS]
        ids = [m.model_id for m in DEFAULT_MODELS]
        assert len(set(names)) == len(names)
        assert len(set(ids)) == len(ids)

    def test_list_models_returns_copy(self):
        """Verify mutating the returned list does not affect the catalog."""
        catalog = ModelCatalog()
        models = catalog.list_models()
        models.clear()
        assert len(catalog.list_models()) == 16

    def test_list_models_preserves_order(self):
        """Verify catalog order is kept for tie-breaking."""
        catalog = ModelCatalog()
        assert [m.name for m in catalog.list_models()] == [m.name for m in DEFAULT_MODELS]

    def test_empty_catalog_rejected(self):
        """Verify an empty catalog fails at construction."""
        with pytest.raises(CatalogError, match="empty"):
            ModelCatalog([])

    def test_duplicate_name_rejected(self):
        """Verify duplicate names fail at construction."""
        with pytest.raises(CatalogError, match="Duplicate model name"):
            ModelCatalog([make_model("A", "a"), make_model("A", "b")])

    def test_duplicate_model_id_rejected(self):
        """Verify duplicate provider ids fail at construction."""
        with pytest.raises(CatalogError, match="Duplicate model id"):
            ModelCatalog([make_model("A", "same"), make_model("B", "same")])

    def test_disabled_models_removed(self):
        """Verify disabled models are left out."""
        catalog = ModelCatalog(disabled=["Grok-1", "GPT-4o"])
        names = [m.name for m in catalog.list_models()]
        assert "Grok-1" not in names
        assert "GPT-4o" not in names
        assert len(catalog) == 14

    def test_disable_unknown_model_rejected(self):
        """Verify typos in disabled names are caught."""
        with pytest.raises(CatalogError, match="unknown models"):
            ModelCatalog(disabled=["Not A Model"])

    def test_disabling_everything_rejected(self):
        """Verify disabling every model leaves an invalid catalog."""
        with pytest.raises(CatalogError, match="empty"):
            ModelCatalog([make_model("A")], disabled=["A"])

    def test_get_by_name(self):
        """Verify lookup by display name."""
        catalog = ModelCatalog()
        assert catalog.get("Gemini 1.5 Pro").model_id == "gemini-1.5-pro"
        assert catalog.get("missing") is None

    def test_cheapest(self):
        """Verify the cheapest model by blended price."""
        assert ModelCatalog().cheapest().name == "Gemini 1.5 Flash"

    def test_cheapest_tie_keeps_first(self):
        """Verify ties on price resolve to catalog order."""
        catalog = ModelCatalog([make_model("First", price="0.10"), make_model("Second", price="0.10")])
        assert catalog.cheapest().name == "First"
