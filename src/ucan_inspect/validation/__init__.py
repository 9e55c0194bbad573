"""Chain validation: per-link checks, attenuation audit and verdicts."""
from __future__ import annotations

from ucan_inspect.validation.attenuation import (
    ability_matches,
    check_attenuation,
    check_caveats,
    resource_matches,
)
from ucan_inspect.validation.engine import ValidationEngine
from ucan_inspect.validation.issues import (
    ChainLink,
    IssueKind,
    LinkInfo,
    RootCause,
    Severity,
    ValidationIssue,
    ValidationResult,
    ValidationSummary,
)

__all__ = [
    "ChainLink",
    "IssueKind",
    "LinkInfo",
    "RootCause",
    "Severity",
    "ValidationEngine",
    "ValidationIssue",
    "ValidationResult",
    "ValidationSummary",
    "ability_matches",
    "check_attenuation",
    "check_caveats",
    "resource_matches",
]
