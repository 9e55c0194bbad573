"""Invocation and capability analysis for a single delegation link."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from ucan_inspect.capabilities.capability import Capability, CapabilityCategory, is_invoke_ability
from ucan_inspect.delegation.link import DelegationLink
from ucan_inspect.values import Value


class TaskType(str, Enum):
    """Whether a token asks for work to be done or only passes authority on."""

    INVOCATION = "invocation"
    DELEGATION = "delegation"


@dataclass(frozen=True)
class InvocationAnalysis:
    """How a link reads as an invocation.

    Parameters
    ----------
    is_invocation:
        True when issuer and audience differ.
    has_invoke_capability:
        True when any ability matches an invoke pattern.
    task_type:
        :class:`TaskType` derived from the abilities.
    primary_action, target_resource:
        The last invoke capability when there is one, otherwise the first
        capability; None for a link without capabilities.
    invoke_patterns:
        Abilities that matched an invoke pattern.
    required_permissions:
        Every non-empty ability in token order.
    constraints:
        Caveats of all capabilities merged, later keys winning.
    """

    is_invocation: bool
    has_invoke_capability: bool
    task_type: TaskType
    primary_action: Optional[str] = None
    target_resource: Optional[str] = None
    invoke_patterns: tuple[str, ...] = ()
    required_permissions: tuple[str, ...] = ()
    constraints: dict[str, Value] = field(default_factory=dict)


@dataclass(frozen=True)
class CapabilityAnalysis:
    """Capability counts and groupings."""

    categories: dict[CapabilityCategory, tuple[Capability, ...]]
    total_count: int
    invoke_count: int
    delegate_count: int
    permissions: tuple[str, ...]
    resources: tuple[str, ...]


def analyze_invocation(link: DelegationLink) -> InvocationAnalysis:
    """Classify *link* as an invocation or a delegation."""
    invoke_caps = [cap for cap in link.capabilities if is_invoke_ability(cap.ability)]
    if invoke_caps:
        primary: Optional[Capability] = invoke_caps[-1]
    elif link.capabilities:
        primary = link.capabilities[0]
    else:
        primary = None

    constraints: dict[str, Value] = {}
    for cap in link.capabilities:
        constraints.update(cap.caveats)

    return InvocationAnalysis(
        is_invocation=link.issuer != link.audience,
        has_invoke_capability=bool(invoke_caps),
        task_type=TaskType.INVOCATION if invoke_caps else TaskType.DELEGATION,
        primary_action=primary.ability if primary else None,
        target_resource=primary.resource if primary else None,
        invoke_patterns=tuple(cap.ability for cap in invoke_caps),
        required_permissions=tuple(cap.ability for cap in link.capabilities if cap.ability),
        constraints=constraints,
    )


def analyze_capabilities(capabilities: Sequence[Capability]) -> CapabilityAnalysis:
    """Group *capabilities* by category and count invoke vs. delegate abilities."""
    categories: dict[CapabilityCategory, list[Capability]] = {}
    invoke_count = 0
    for cap in capabilities:
        categories.setdefault(cap.category, []).append(cap)
        if is_invoke_ability(cap.ability):
            invoke_count += 1

    return CapabilityAnalysis(
        categories={category: tuple(caps) for category, caps in categories.items()},
        total_count=len(capabilities),
        invoke_count=invoke_count,
        delegate_count=len(capabilities) - invoke_count,
        permissions=tuple(cap.ability for cap in capabilities if cap.ability),
        resources=tuple(cap.resource for cap in capabilities if cap.resource),
    )


__all__ = [
    "CapabilityAnalysis",
    "InvocationAnalysis",
    "TaskType",
    "analyze_capabilities",
    "analyze_invocation",
]
