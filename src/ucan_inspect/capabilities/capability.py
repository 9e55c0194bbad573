"""Capability — a resource/ability pair with caveats.

A Capability grants its holder the right to perform an *ability* (for
example ``"store/add"``) on a *resource* (for example
``"storage:alice/photos"`` or a ``did:key`` space), optionally constrained by
caveats. The category is derived from the ability and is never supplied by
the token.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ucan_inspect.values import Value

# Substrings marking an ability as an invocation of work rather than a grant.
INVOKE_PATTERNS: tuple[str, ...] = ("invoke", "execute", "run", "call", "perform")


class CapabilityCategory(str, Enum):
    """Coarse grouping of abilities by their prefix."""

    STORAGE = "storage"
    SPACE = "space"
    UPLOAD = "upload"
    BLOB = "blob"
    INDEX = "index"
    INVOCATION = "invocation"
    GENERAL = "general"


def is_invoke_ability(ability: str) -> bool:
    """Return True when *ability* contains one of :data:`INVOKE_PATTERNS`."""
    lowered = ability.lower()
    return any(pattern in lowered for pattern in INVOKE_PATTERNS)


def categorize_ability(ability: str) -> CapabilityCategory:
    """Derive the :class:`CapabilityCategory` for *ability*.

    Prefixes are checked in a fixed order, so ``"store/run"`` is storage
    while ``"run/job"`` is invocation.
    """
    if ability.startswith("store"):
        return CapabilityCategory.STORAGE
    if ability.startswith("space"):
        return CapabilityCategory.SPACE
    if ability.startswith("upload"):
        return CapabilityCategory.UPLOAD
    if is_invoke_ability(ability):
        return CapabilityCategory.INVOCATION
    if ability.startswith("blob"):
        return CapabilityCategory.BLOB
    if ability.startswith("index"):
        return CapabilityCategory.INDEX
    return CapabilityCategory.GENERAL


@dataclass(frozen=True)
class Capability:
    """A single delegated capability.

    Parameters
    ----------
    resource:
        The resource URI the ability applies to (the token's ``with``).
    ability:
        The ability being granted (the token's ``can``).
    caveats:
        Constraints on the grant (the token's ``nb``), already converted to
        plain :data:`~ucan_inspect.values.Value` data.

    Examples
    --------
    >>> cap = Capability(resource="storage:alice/*", ability="store/add")
    >>> cap.category
    <CapabilityCategory.STORAGE: 'storage'>
    """

    resource: str
    ability: str
    caveats: dict[str, Value] = field(default_factory=dict)
    category: CapabilityCategory = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", categorize_ability(self.ability))

    def __str__(self) -> str:
        return f"{self.ability} on {self.resource}"


__all__ = [
    "INVOKE_PATTERNS",
    "Capability",
    "CapabilityCategory",
    "categorize_ability",
    "is_invoke_ability",
]
