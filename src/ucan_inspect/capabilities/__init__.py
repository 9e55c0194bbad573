"""Capability model and ability categorization."""
from __future__ import annotations

from ucan_inspect.capabilities.capability import (
    INVOKE_PATTERNS,
    Capability,
    CapabilityCategory,
    categorize_ability,
    is_invoke_ability,
)

__all__ = [
    "INVOKE_PATTERNS",
    "Capability",
    "CapabilityCategory",
    "categorize_ability",
    "is_invoke_ability",
]
