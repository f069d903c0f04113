"""
Configuration management and loading.

Handles router settings from YAML files and environment variables.
"""

import os
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from ai_cost_router.core.budget import DEFAULT_ALERT_THRESHOLD
from ai_cost_router.core.catalog import (
    CapabilityTag,
    ModelCatalog,
    ModelDescriptor,
    Provider,
    DEFAULT_MODELS,
)
from ai_cost_router.core.selector import SelectionPolicy
from ai_cost_router.storage.db import DEFAULT_DB_PATH

LOG_LEVELS = ("debug", "info", "warning", "error")
# Alternate spellings accepted from files and the environment
LOG_LEVEL_ALIASES = {"warn": "warning"}

# Environment variables honored on top of the YAML file
ENV_DAILY_BUDGET = "MAX_DAILY_BUDGET"
ENV_ALERT_THRESHOLD = "BUDGET_ALERT_THRESHOLD"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_DB_PATH = "AI_COST_ROUTER_DB"


@dataclass(frozen=True)
class BudgetConfig:
    """Daily budget and alert threshold."""
    daily: Optional[float] = 50.0
    alert_threshold: float = DEFAULT_ALERT_THRESHOLD

    def __post_init__(self):
        """Validate budget values."""
        if self.daily is not None and self.daily <= 0:
            raise ValueError("daily budget must be > 0")
        if self.alert_threshold <= 0 or self.alert_threshold > 1:
            raise ValueError("alert_threshold must be in (0, 1]")


@dataclass(frozen=True)
class RouterConfig:
    """Complete router configuration."""
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    selection: SelectionPolicy = field(default_factory=SelectionPolicy)
    db_path: str = DEFAULT_DB_PATH
    log_level: str = "info"
    models: Tuple[ModelDescriptor, ...] = DEFAULT_MODELS
    disabled_models: Tuple[str, ...] = ()

    def __post_init__(self):
        """Validate the log level."""
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log level must be one of: {list(LOG_LEVELS)}")

    def build_catalog(self) -> ModelCatalog:
        """Build the validated catalog this configuration describes.

        Raises:
            CatalogError: If the resulting catalog is invalid
        """
        return ModelCatalog(self.models, disabled=self.disabled_models)


def load_router_config(path: str) -> RouterConfig:
    """Load and validate router configuration from a YAML file.

    Strict validation ensures no silent misconfigurations that could
    route traffic to the wrong models or hide budget overruns. Every
    section is optional; missing values keep their defaults.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated RouterConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Router config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if raw_config is None:
        return RouterConfig()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    allowed_top_keys = {'budget', 'selection', 'storage', 'logging', 'models', 'disabled_models'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    defaults = RouterConfig()

    budget_data = _section(raw_config, 'budget', {'daily', 'alert_threshold'})
    budget = BudgetConfig(
        daily=_number(budget_data, 'daily', 'budget', defaults.budget.daily),
        alert_threshold=_number(budget_data, 'alert_threshold', 'budget', defaults.budget.alert_threshold),
    )

    selection_data = _section(raw_config, 'selection', {'enterprise_floor', 'premium_floor', 'input_ratio'})
    policy = defaults.selection
    selection = SelectionPolicy(
        enterprise_floor=_decimal(selection_data, 'enterprise_floor', 'selection', policy.enterprise_floor),
        premium_floor=_decimal(selection_data, 'premium_floor', 'selection', policy.premium_floor),
        input_ratio=_decimal(selection_data, 'input_ratio', 'selection', policy.input_ratio),
    )

    storage_data = _section(raw_config, 'storage', {'db_path'})
    db_path = storage_data.get('db_path', defaults.db_path)
    if not isinstance(db_path, str) or not db_path.strip():
        raise ValueError("'db_path' in storage must be a non-empty string")

    logging_data = _section(raw_config, 'logging', {'level'})
    log_level = logging_data.get('level', defaults.log_level)
    if not isinstance(log_level, str):
        raise ValueError("'level' in logging must be a string")

    models = defaults.models
    if 'models' in raw_config:
        models_data = raw_config['models']
        if not isinstance(models_data, list) or not models_data:
            raise ValueError("'models' must be a non-empty list")
        models = tuple(
            _parse_model(entry, f"models[{index}]") for index, entry in enumerate(models_data)
        )

    disabled = raw_config.get('disabled_models', [])
    if not isinstance(disabled, list) or not all(isinstance(name, str) for name in disabled):
        raise ValueError("'disabled_models' must be a list of model names")

    return RouterConfig(
        budget=budget,
        selection=selection,
        db_path=db_path,
        log_level=_normalize_level(log_level),
        models=models,
        disabled_models=tuple(disabled),
    )


def apply_env_overrides(config: RouterConfig, environ: Optional[Mapping[str, str]] = None) -> RouterConfig:
    """Overlay environment variables on a loaded configuration.

    Args:
        config: Configuration loaded from file or defaults
        environ: Environment mapping, os.environ when omitted

    Returns:
        New RouterConfig with overrides applied

    Raises:
        ValueError: If an override is not a valid value
    """
    env = os.environ if environ is None else environ

    budget = config.budget
    if env.get(ENV_DAILY_BUDGET):
        budget = replace(budget, daily=_parse_float(env[ENV_DAILY_BUDGET], ENV_DAILY_BUDGET))
    if env.get(ENV_ALERT_THRESHOLD):
        budget = replace(budget, alert_threshold=_parse_float(env[ENV_ALERT_THRESHOLD], ENV_ALERT_THRESHOLD))

    return replace(
        config,
        budget=budget,
        log_level=_normalize_level(env.get(ENV_LOG_LEVEL, config.log_level)),
        db_path=env.get(ENV_DB_PATH) or config.db_path,
    )


def _normalize_level(level: str) -> str:
    name = level.strip().lower()
    return LOG_LEVEL_ALIASES.get(name, name)


def _section(raw_config: Dict, name: str, allowed_keys: set) -> Dict:
    """Fetch an optional mapping section and reject unknown keys."""
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")

    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown {name} keys: {unknown_keys}")
    return data


def _number(data: Dict, key: str, path: str, default: Any) -> Any:
    if key not in data:
        return default
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' in {path} must be a number")
    return float(value)


def _decimal(data: Dict, key: str, path: str, default: Decimal) -> Decimal:
    if key not in data:
        return default
    value = data[key]
    if isinstance(value, bool):
        raise ValueError(f"'{key}' in {path} must be a number")
    try:
        # str() keeps YAML floats like 0.1 exact
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"'{key}' in {path} must be a number")


def _parse_float(raw: str, name: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _parse_model(data: Any, path: str) -> ModelDescriptor:
    """Parse and validate one model descriptor.

    Args:
        data: Model entry from the YAML list
        path: Path for error messages

    Returns:
        Validated ModelDescriptor

    Raises:
        ValueError: If the entry is invalid
    """
    if not isinstance(data, dict):
        raise ValueError(f"{path} must be a dictionary")

    required = {'name', 'provider', 'model_id', 'input_cost_per_1k',
                'output_cost_per_1k', 'context_window', 'capabilities'}
    allowed = required | {'max_output_tokens', 'temperature'}

    unknown_keys = set(data.keys()) - allowed
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")
    missing = required - set(data.keys())
    if missing:
        raise ValueError(f"Missing required keys in {path}: {missing}")

    try:
        provider = Provider(str(data['provider']).lower())
    except ValueError:
        valid = [p.value for p in Provider]
        raise ValueError(f"'provider' in {path} must be one of: {valid}")

    capabilities_data = data['capabilities']
    if not isinstance(capabilities_data, list):
        raise ValueError(f"'capabilities' in {path} must be a list")
    capabilities: List[CapabilityTag] = []
    for tag in capabilities_data:
        try:
            capabilities.append(CapabilityTag(str(tag).lower()))
        except ValueError:
            raise ValueError(f"Unknown capability '{tag}' in {path}")

    context_window = data['context_window']
    if isinstance(context_window, bool) or not isinstance(context_window, int):
        raise ValueError(f"'context_window' in {path} must be an integer")

    max_output_tokens = data.get('max_output_tokens', 4096)
    if isinstance(max_output_tokens, bool) or not isinstance(max_output_tokens, int):
        raise ValueError(f"'max_output_tokens' in {path} must be an integer")

    return ModelDescriptor(
        name=str(data['name']),
        provider=provider,
        model_id=str(data['model_id']),
        input_cost_per_1k=_decimal(data, 'input_cost_per_1k', path, Decimal("0")),
        output_cost_per_1k=_decimal(data, 'output_cost_per_1k', path, Decimal("0")),
        context_window=context_window,
        capabilities=frozenset(capabilities),
        max_output_tokens=max_output_tokens,
        temperature=_number(data, 'temperature', path, 0.7),
    )
