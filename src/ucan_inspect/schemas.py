"""Pydantic wire models for links, chains, validation results and analyses.

Field names follow Python conventions; the JSON shape uses the camelCase
aliases (``notBefore``, ``rootCause``, ``totalLinks``, ...). Use the
``serialize_*`` helpers to get JSON-ready dictionaries.
"""
from __future__ import annotations

import datetime
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ucan_inspect.analysis import CapabilityAnalysis, InvocationAnalysis
from ucan_inspect.capabilities.capability import Capability
from ucan_inspect.chain.info import ChainInfo
from ucan_inspect.delegation.link import DelegationLink
from ucan_inspect.validation.issues import (
    ChainLink,
    RootCause,
    ValidationIssue,
    ValidationResult,
)
from ucan_inspect.values import to_json_value


class WireModel(BaseModel):
    """Base for every wire model: populated by field name, dumped by alias."""

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Delegations
# ---------------------------------------------------------------------------


class CapabilityModel(WireModel):
    resource: str = Field(alias="with")
    ability: str = Field(alias="can")
    caveats: dict[str, object] = Field(default_factory=dict, alias="nb")
    category: str


class ProofModel(WireModel):
    cid: str
    index: int
    type: str = "delegation"


class SignatureModel(WireModel):
    algorithm: str
    verified: bool
    valid: Optional[bool] = None
    error: Optional[str] = None


class DelegationModel(WireModel):
    """A single decoded delegation."""

    issuer: str
    audience: str
    capabilities: list[CapabilityModel] = Field(default_factory=list)
    proofs: list[ProofModel] = Field(default_factory=list)
    expiration: Optional[str] = None
    not_before: Optional[str] = Field(default=None, alias="notBefore")
    facts: list[object] = Field(default_factory=list)
    nonce: Optional[str] = None
    signature: SignatureModel
    cid: str
    level: int
    format: str


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class IssueModel(WireModel):
    type: str
    message: str
    severity: str
    context: Optional[dict[str, object]] = None


class ChainLinkModel(WireModel):
    """Validation outcome of one link."""

    level: int
    cid: str
    issuer: str
    audience: str
    capability: Optional[CapabilityModel] = None
    expiration: Optional[str] = None
    not_before: Optional[str] = Field(default=None, alias="notBefore")
    valid: bool
    issues: list[IssueModel] = Field(default_factory=list)


class LinkInfoModel(WireModel):
    issuer: str
    audience: str


class RootCauseModel(WireModel):
    type: str
    message: str
    link: LinkInfoModel
    level: int
    cid: str


class SummaryModel(WireModel):
    total_links: int = Field(alias="totalLinks")
    valid_links: int = Field(alias="validLinks")
    invalid_links: int = Field(alias="invalidLinks")
    warning_count: int = Field(alias="warningCount")


class ValidationResultModel(WireModel):
    """Outcome of validating a whole chain."""

    valid: bool
    chain: list[ChainLinkModel] = Field(default_factory=list)
    root_cause: Optional[RootCauseModel] = Field(default=None, alias="rootCause")
    summary: SummaryModel


# ---------------------------------------------------------------------------
# Chain description and analysis
# ---------------------------------------------------------------------------


class PrincipalModel(WireModel):
    did: str
    role: str
    level: int
    cids: list[str] = Field(default_factory=list)


class TimelineEventModel(WireModel):
    type: str
    time: str
    cid: str
    level: int
    principal: str


class ChainInfoModel(WireModel):
    total_levels: int = Field(alias="totalLevels")
    is_complete: bool = Field(alias="isComplete")
    root_cid: str = Field(alias="rootCid")
    leaf_cids: list[str] = Field(default_factory=list, alias="leafCids")
    principals: list[PrincipalModel] = Field(default_factory=list)
    levels: list[list[str]] = Field(default_factory=list)
    timeline: list[TimelineEventModel] = Field(default_factory=list)


class InvocationAnalysisModel(WireModel):
    is_invocation: bool = Field(alias="isInvocation")
    has_invoke_capability: bool = Field(alias="hasInvokeCapability")
    task_type: str = Field(alias="taskType")
    primary_action: Optional[str] = Field(default=None, alias="primaryAction")
    target_resource: Optional[str] = Field(default=None, alias="targetResource")
    invoke_patterns: list[str] = Field(default_factory=list, alias="invokePatterns")
    required_permissions: list[str] = Field(default_factory=list, alias="requiredPermissions")
    constraints: dict[str, object] = Field(default_factory=dict)


class CapabilityAnalysisModel(WireModel):
    categories: dict[str, list[CapabilityModel]] = Field(default_factory=dict)
    total_count: int = Field(alias="totalCount")
    invoke_count: int = Field(alias="invokeCount")
    delegate_count: int = Field(alias="delegateCount")
    permissions: list[str] = Field(default_factory=list)
    resources: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Converters
# ---------------------------------------------------------------------------


def _timestamp(value: Optional[datetime.datetime]) -> Optional[str]:
    """Render an aware datetime as RFC 3339 with a ``Z`` suffix."""
    if value is None:
        return None
    utc = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return utc.isoformat(timespec="seconds") + "Z"


def capability_to_model(capability: Capability) -> CapabilityModel:
    return CapabilityModel(
        resource=capability.resource,
        ability=capability.ability,
        caveats=to_json_value(capability.caveats),  # type: ignore[arg-type]
        category=capability.category.value,
    )


def link_to_model(link: DelegationLink) -> DelegationModel:
    """Convert a :class:`DelegationLink` to its wire model."""
    return DelegationModel(
        issuer=link.issuer,
        audience=link.audience,
        capabilities=[capability_to_model(cap) for cap in link.capabilities],
        proofs=[
            ProofModel(cid=proof.content_id, index=proof.index, type=proof.type)
            for proof in link.proofs
        ],
        expiration=_timestamp(link.expiration),
        not_before=_timestamp(link.not_before),
        facts=[to_json_value(fact) for fact in link.facts],
        nonce=link.nonce,
        signature=SignatureModel(
            algorithm=link.signature.algorithm,
            verified=link.signature.verified,
            valid=link.signature.valid,
            error=link.signature.error,
        ),
        cid=link.content_id,
        level=link.level,
        format=link.token_format.value,
    )


def _issue_to_model(issue: ValidationIssue) -> IssueModel:
    return IssueModel(
        type=issue.kind.value,
        message=issue.message,
        severity=issue.severity.value,
        context=to_json_value(issue.context) if issue.context else None,  # type: ignore[arg-type]
    )


def _chain_link_to_model(link: ChainLink) -> ChainLinkModel:
    return ChainLinkModel(
        level=link.level,
        cid=link.content_id,
        issuer=link.issuer,
        audience=link.audience,
        capability=capability_to_model(link.capability) if link.capability else None,
        expiration=_timestamp(link.expiration),
        not_before=_timestamp(link.not_before),
        valid=link.valid,
        issues=[_issue_to_model(issue) for issue in link.issues],
    )


def _root_cause_to_model(cause: RootCause) -> RootCauseModel:
    return RootCauseModel(
        type=cause.kind.value,
        message=cause.message,
        link=LinkInfoModel(issuer=cause.link.issuer, audience=cause.link.audience),
        level=cause.level,
        cid=cause.content_id,
    )


def result_to_model(result: ValidationResult) -> ValidationResultModel:
    """Convert a :class:`ValidationResult` to its wire model."""
    return ValidationResultModel(
        valid=result.valid,
        chain=[_chain_link_to_model(link) for link in result.chain],
        root_cause=_root_cause_to_model(result.root_cause) if result.root_cause else None,
        summary=SummaryModel(
            total_links=result.summary.total_links,
            valid_links=result.summary.valid_links,
            invalid_links=result.summary.invalid_links,
            warning_count=result.summary.warning_count,
        ),
    )


def chain_info_to_model(info: ChainInfo) -> ChainInfoModel:
    return ChainInfoModel(
        total_levels=info.total_levels,
        is_complete=info.is_complete,
        root_cid=info.root_content_id,
        leaf_cids=list(info.leaf_content_ids),
        principals=[
            PrincipalModel(
                did=principal.did,
                role=principal.role.value,
                level=principal.level,
                cids=list(principal.content_ids),
            )
            for principal in info.principals
        ],
        levels=[list(level) for level in info.levels],
        timeline=[
            TimelineEventModel(
                type=event.type,
                time=_timestamp(event.time) or "",
                cid=event.content_id,
                level=event.level,
                principal=event.principal,
            )
            for event in info.timeline
        ],
    )


def invocation_to_model(analysis: InvocationAnalysis) -> InvocationAnalysisModel:
    return InvocationAnalysisModel(
        is_invocation=analysis.is_invocation,
        has_invoke_capability=analysis.has_invoke_capability,
        task_type=analysis.task_type.value,
        primary_action=analysis.primary_action,
        target_resource=analysis.target_resource,
        invoke_patterns=list(analysis.invoke_patterns),
        required_permissions=list(analysis.required_permissions),
        constraints=to_json_value(analysis.constraints),  # type: ignore[arg-type]
    )


def capability_analysis_to_model(analysis: CapabilityAnalysis) -> CapabilityAnalysisModel:
    return CapabilityAnalysisModel(
        categories={
            category.value: [capability_to_model(cap) for cap in caps]
            for category, caps in analysis.categories.items()
        },
        total_count=analysis.total_count,
        invoke_count=analysis.invoke_count,
        delegate_count=analysis.delegate_count,
        permissions=list(analysis.permissions),
        resources=list(analysis.resources),
    )


# ---------------------------------------------------------------------------
# JSON-ready helpers
# ---------------------------------------------------------------------------


def serialize_link(link: DelegationLink) -> dict[str, object]:
    """Return the wire dictionary for *link*."""
    return link_to_model(link).model_dump(by_alias=True)


def serialize_chain(chain: Sequence[DelegationLink]) -> list[dict[str, object]]:
    """Return the wire dictionaries for every link of *chain*, in order."""
    return [serialize_link(link) for link in chain]


def serialize_result(result: ValidationResult) -> dict[str, object]:
    """Return the wire dictionary for a validation result."""
    return result_to_model(result).model_dump(by_alias=True)


__all__ = [
    "CapabilityAnalysisModel",
    "CapabilityModel",
    "ChainInfoModel",
    "ChainLinkModel",
    "DelegationModel",
    "InvocationAnalysisModel",
    "IssueModel",
    "ProofModel",
    "RootCauseModel",
    "SignatureModel",
    "SummaryModel",
    "ValidationResultModel",
    "capability_analysis_to_model",
    "capability_to_model",
    "chain_info_to_model",
    "invocation_to_model",
    "link_to_model",
    "result_to_model",
    "serialize_chain",
    "serialize_link",
    "serialize_result",
]
