"""ValidationEngine — evaluate every link of a resolved chain.

Per-link checks are independent and all of them run: time bounds,
capability presence, signature status and informational notes. When
attenuation auditing is enabled each link is also compared against the
proofs that resolved inside the chain.

A link is valid iff it has no error-severity issue; the chain is valid iff
every link is. The root cause is the first error found scanning from the
presented token (index 0) toward the root of authority.
"""
from __future__ import annotations

import datetime
import logging
from typing import Optional, Sequence

from ucan_inspect.capabilities.capability import Capability
from ucan_inspect.config import InspectorConfig
from ucan_inspect.delegation.link import DelegationLink
from ucan_inspect.validation.attenuation import check_attenuation
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

logger = logging.getLogger(__name__)


class ValidationEngine:
    """Validate delegation chains.

    Parameters
    ----------
    config:
        Supplies ``expiry_warning`` and ``check_attenuation``.

    Example
    -------
    ::

        engine = ValidationEngine()
        result = engine.validate(resolver.resolve(data))
        if not result.valid:
            print(result.root_cause.kind, result.root_cause.message)
    """

    def __init__(self, config: Optional[InspectorConfig] = None) -> None:
        self._config = config or InspectorConfig()

    def validate(
        self,
        chain: Sequence[DelegationLink],
        now: Optional[datetime.datetime] = None,
    ) -> ValidationResult:
        """Validate *chain* at time *now* (defaults to the current UTC time).

        Parameters
        ----------
        chain:
            Links in discovery order, index 0 being the presented token.
        now:
            Reference time; must be timezone-aware when given.

        Returns
        -------
        ValidationResult
        """
        reference = now or datetime.datetime.now(datetime.timezone.utc)
        by_content_id: dict[str, DelegationLink] = {}
        for link in chain:
            by_content_id.setdefault(link.content_id, link)

        results: list[ChainLink] = []
        for link in chain:
            issues = self._link_issues(link, reference)
            if self._config.check_attenuation:
                issues.extend(self._audit_proofs(link, by_content_id))
            results.append(
                ChainLink(
                    level=link.level,
                    content_id=link.content_id,
                    issuer=link.issuer,
                    audience=link.audience,
                    capability=link.capabilities[0] if link.capabilities else None,
                    expiration=link.expiration,
                    not_before=link.not_before,
                    valid=not any(issue.is_error for issue in issues),
                    issues=tuple(issues),
                )
            )

        root_cause = _root_cause(results)
        valid_links = sum(1 for result in results if result.valid)
        summary = ValidationSummary(
            total_links=len(results),
            valid_links=valid_links,
            invalid_links=len(results) - valid_links,
            warning_count=sum(
                1
                for result in results
                for issue in result.issues
                if issue.severity is Severity.WARNING
            ),
        )
        logger.debug(
            "Validated %d link(s): %d valid, %d warning(s)",
            summary.total_links,
            summary.valid_links,
            summary.warning_count,
        )
        return ValidationResult(
            valid=summary.invalid_links == 0,
            chain=tuple(results),
            root_cause=root_cause,
            summary=summary,
        )

    # ------------------------------------------------------------------
    # Per-link checks
    # ------------------------------------------------------------------

    def _link_issues(
        self, link: DelegationLink, now: datetime.datetime
    ) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []

        if link.expiration is not None:
            if link.expiration < now:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.EXPIRED,
                        message=f"UCAN expired {_format_duration(now - link.expiration)} ago",
                        severity=Severity.ERROR,
                    )
                )
            elif link.expiration - now < self._config.expiry_warning:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.EXPIRING_SOON,
                        message=f"UCAN expires in {_format_duration(link.expiration - now)}",
                        severity=Severity.WARNING,
                    )
                )

        if link.not_before is not None and link.not_before > now:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.NOT_YET_VALID,
                    message=f"UCAN not valid until {link.not_before.isoformat()}",
                    severity=Severity.ERROR,
                )
            )

        if not link.capabilities:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.NO_CAPABILITIES,
                    message="Delegation has no capabilities",
                    severity=Severity.WARNING,
                )
            )

        signature = link.signature
        if signature.verified and signature.valid is False:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.INVALID_SIGNATURE,
                    message=signature.error or "Signature does not match issuer key",
                    severity=Severity.ERROR,
                    context={"algorithm": signature.algorithm},
                )
            )
        elif not signature.verified:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.SIGNATURE_UNVERIFIED,
                    message=signature.error or "Signature was not verified",
                    severity=Severity.INFO,
                    context={"algorithm": signature.algorithm},
                )
            )

        if link.proofs:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.HAS_PROOFS,
                    message=f"Delegation has {len(link.proofs)} proof(s)",
                    severity=Severity.INFO,
                )
            )
        if link.nonce:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.HAS_NONCE,
                    message="Delegation carries a nonce",
                    severity=Severity.INFO,
                )
            )
        if link.facts:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.HAS_FACTS,
                    message=f"Delegation has {len(link.facts)} fact(s)",
                    severity=Severity.INFO,
                )
            )
        return issues

    # ------------------------------------------------------------------
    # Chain audit
    # ------------------------------------------------------------------

    def _audit_proofs(
        self, link: DelegationLink, by_content_id: dict[str, DelegationLink]
    ) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for reference in link.proofs:
            proof = by_content_id.get(reference.content_id)
            if proof is None:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.UNRESOLVED_PROOF,
                        message=f"Proof {reference.content_id} is not part of the chain",
                        severity=Severity.INFO,
                        context={"cid": reference.content_id, "index": reference.index},
                    )
                )
                continue

            if proof.audience != link.issuer:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.PRINCIPAL_MISMATCH,
                        message=(
                            f"Issuer '{link.issuer}' is not the audience "
                            f"'{proof.audience}' of proof {proof.content_id}"
                        ),
                        severity=Severity.ERROR,
                        context={"parent": proof.audience, "child": link.issuer},
                    )
                )

            # A proof without capabilities is already reported on its own link.
            if not proof.capabilities:
                continue
            for capability in link.capabilities:
                issues.extend(_closest_match(proof.capabilities, capability))
        return issues


def _closest_match(
    parents: Sequence[Capability], child: Capability
) -> list[ValidationIssue]:
    """Return the issues from the parent capability that best covers *child*."""
    best: Optional[list[ValidationIssue]] = None
    for parent in parents:
        issues = check_attenuation(parent, child)
        if not issues:
            return []
        if best is None or len(issues) < len(best):
            best = issues
    return best or []


def _root_cause(results: Sequence[ChainLink]) -> Optional[RootCause]:
    for result in results:
        for issue in result.issues:
            if issue.is_error:
                return RootCause(
                    kind=issue.kind,
                    message=issue.message,
                    link=LinkInfo(issuer=result.issuer, audience=result.audience),
                    level=result.level,
                    content_id=result.content_id,
                )
    return None


def _format_duration(delta: datetime.timedelta) -> str:
    minutes = int(round(delta.total_seconds() / 60))
    hours, minutes = divmod(minutes, 60)
    if hours and minutes:
        return f"{hours}h{minutes}m"
    if hours:
        return f"{hours}h"
    return f"{minutes}m"


__all__ = ["ValidationEngine"]
