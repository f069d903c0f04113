"""
Selection criteria for model routing.

Per-interaction classification signals supplied by the conversational pipeline.
"""

from dataclasses import dataclass
from enum import Enum


class Complexity(Enum):
    """How demanding the interaction is."""
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class Urgency(Enum):
    """How quickly a reply is needed."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class Channel(Enum):
    """Channel the customer is talking on."""
    SMS = "sms"
    VOICE = "voice"
    EMAIL = "email"
    CHAT = "chat"


class CustomerTier(Enum):
    """Commercial tier of the customer."""
    STANDARD = "standard"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


@dataclass(frozen=True)
class SelectionCriteria:
    """Signals used to pick a model for one interaction.

    Ephemeral: never persisted on its own, but denormalized into the
    usage event written after the model call.
    """
    complexity: Complexity
    urgency: Urgency
    context_length_tokens: int
    channel: Channel
    customer_tier: CustomerTier = CustomerTier.STANDARD
    requires_reasoning: bool = False
    requires_creativity: bool = False

    def __post_init__(self):
        """Validate context length is non-negative."""
        if self.context_length_tokens < 0:
            raise ValueError("context_length_tokens cannot be negative")
