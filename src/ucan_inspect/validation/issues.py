"""Validation result types.

Issues are data, not exceptions: validating a token never raises for its
content, and the worst outcome is a result with ``valid=False``.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ucan_inspect.capabilities.capability import Capability
from ucan_inspect.values import Value


class Severity(str, Enum):
    """How much an issue matters. Only errors invalidate a link."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueKind(str, Enum):
    """Every issue the engine can report."""

    EXPIRED = "expired"
    EXPIRING_SOON = "expiring_soon"
    NOT_YET_VALID = "not_yet_valid"
    NO_CAPABILITIES = "no_capabilities"
    HAS_PROOFS = "has_proofs"
    HAS_NONCE = "has_nonce"
    HAS_FACTS = "has_facts"
    RESOURCE_MISMATCH = "resource_mismatch"
    CAPABILITY_ESCALATION = "capability_escalation"
    CAVEAT_ESCALATION = "caveat_escalation"
    PRINCIPAL_MISMATCH = "principal_mismatch"
    UNRESOLVED_PROOF = "unresolved_proof"
    INVALID_SIGNATURE = "invalid_signature"
    SIGNATURE_UNVERIFIED = "signature_unverified"


@dataclass(frozen=True)
class ValidationIssue:
    """A single finding about one link.

    Parameters
    ----------
    kind:
        What was found.
    message:
        Human-readable description.
    severity:
        :class:`Severity` of the finding.
    context:
        Optional structured detail, for example ``{"parent": ..., "child": ...}``.
    """

    kind: IssueKind
    message: str
    severity: Severity
    context: dict[str, Value] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


@dataclass(frozen=True)
class ChainLink:
    """Validation outcome for one link of the chain."""

    level: int
    content_id: str
    issuer: str
    audience: str
    capability: Optional[Capability]
    expiration: Optional[datetime.datetime]
    not_before: Optional[datetime.datetime]
    valid: bool
    issues: tuple[ValidationIssue, ...] = ()


@dataclass(frozen=True)
class LinkInfo:
    """Principals of the link a root cause was found on."""

    issuer: str
    audience: str


@dataclass(frozen=True)
class RootCause:
    """The first error found scanning the chain from the presented token."""

    kind: IssueKind
    message: str
    link: LinkInfo
    level: int
    content_id: str


@dataclass(frozen=True)
class ValidationSummary:
    """Link and warning counts across the chain."""

    total_links: int = 0
    valid_links: int = 0
    invalid_links: int = 0
    warning_count: int = 0


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a whole chain."""

    valid: bool
    chain: tuple[ChainLink, ...]
    root_cause: Optional[RootCause]
    summary: ValidationSummary


__all__ = [
    "ChainLink",
    "IssueKind",
    "LinkInfo",
    "RootCause",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "ValidationSummary",
]
