"""Delegation data model and the mapper that builds it from decoded tokens."""
from __future__ import annotations

from ucan_inspect.delegation.link import DelegationLink, ProofReference, SignatureInfo
from ucan_inspect.delegation.mapper import DelegationMapper, MappableToken, fallback_content_id

__all__ = [
    "DelegationLink",
    "DelegationMapper",
    "MappableToken",
    "ProofReference",
    "SignatureInfo",
    "fallback_content_id",
]
