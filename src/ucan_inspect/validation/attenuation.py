"""Attenuation checks between a parent capability and a child capability.

A child may only narrow what its parent granted:

* resource: equal, or matched by ``*`` wildcards in the parent
  (``"storage:*"`` covers ``"storage:alice/photos"``);
* ability: equal, a bare ``*``, or ``prefix/*`` covering ``prefix/...``;
* caveats: a numeric bound present on both sides must not grow, and a
  list present on both sides must be a subset of the parent's.
"""
from __future__ import annotations

import re

from ucan_inspect.capabilities.capability import Capability
from ucan_inspect.validation.issues import IssueKind, Severity, ValidationIssue
from ucan_inspect.values import Value, is_number


def resource_matches(parent: str, child: str) -> bool:
    """Return True when *parent* covers *child*.

    Each ``*`` in *parent* matches any run of characters, so a trailing
    ``*`` is a prefix match.

    Examples
    --------
    >>> resource_matches("storage:*", "storage:alice/photos")
    True
    >>> resource_matches("storage:alice/*", "storage:bob/photos")
    False
    """
    if parent == child:
        return True
    if "*" not in parent:
        return False
    pattern = ".*".join(re.escape(part) for part in parent.split("*"))
    return re.fullmatch(pattern, child, flags=re.DOTALL) is not None


def ability_matches(parent: str, child: str) -> bool:
    """Return True when ability *parent* covers *child*.

    Examples
    --------
    >>> ability_matches("store/*", "store/add")
    True
    >>> ability_matches("store/add", "store/remove")
    False
    """
    if parent == child or parent == "*":
        return True
    if parent.endswith("/*"):
        return child.startswith(parent[:-1])
    return False


def check_caveats(parent: dict[str, Value], child: dict[str, Value]) -> list[ValidationIssue]:
    """Return ``caveat_escalation`` errors for caveats *child* widens."""
    issues: list[ValidationIssue] = []
    for key, parent_value in parent.items():
        if key not in child:
            continue
        child_value = child[key]
        if is_number(parent_value) and is_number(child_value):
            if child_value > parent_value:  # type: ignore[operator]
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.CAVEAT_ESCALATION,
                        message=(
                            f"Child {key} limit ({child_value}) exceeds parent ({parent_value})"
                        ),
                        severity=Severity.ERROR,
                        context={"caveat": key, "parent": parent_value, "child": child_value},
                    )
                )
        elif isinstance(parent_value, list) and isinstance(child_value, list):
            if not _is_subset(child_value, parent_value):
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.CAVEAT_ESCALATION,
                        message=f"Child {key} values exceed parent restrictions",
                        severity=Severity.ERROR,
                        context={"caveat": key, "parent": parent_value, "child": child_value},
                    )
                )
    return issues


def check_attenuation(parent: Capability, child: Capability) -> list[ValidationIssue]:
    """Compare *child* against *parent* and return every escalation found.

    Returns
    -------
    list[ValidationIssue]
        Empty when *child* is a valid attenuation of *parent*.
    """
    issues: list[ValidationIssue] = []
    if not resource_matches(parent.resource, child.resource):
        issues.append(
            ValidationIssue(
                kind=IssueKind.RESOURCE_MISMATCH,
                message=(
                    f"Child resource '{child.resource}' not covered by parent "
                    f"'{parent.resource}'"
                ),
                severity=Severity.ERROR,
                context={"parent": parent.resource, "child": child.resource},
            )
        )
    if not ability_matches(parent.ability, child.ability):
        issues.append(
            ValidationIssue(
                kind=IssueKind.CAPABILITY_ESCALATION,
                message=f"Child ability '{child.ability}' exceeds parent '{parent.ability}'",
                severity=Severity.ERROR,
                context={"parent": parent.ability, "child": child.ability},
            )
        )
    issues.extend(check_caveats(parent.caveats, child.caveats))
    return issues


def _is_subset(child: list[Value], parent: list[Value]) -> bool:
    # Compare with types so True does not match 1.
    allowed = [(isinstance(item, bool), item) for item in parent]
    return all((isinstance(item, bool), item) in allowed for item in child)


__all__ = ["ability_matches", "check_attenuation", "check_caveats", "resource_matches"]
