"""DelegationLink — one decoded delegation positioned in a chain.

A link is created once per decoded block by the
:class:`~ucan_inspect.delegation.mapper.DelegationMapper` and never mutated.
Its ``level`` is assigned by the chain resolver: 0 for the presented token,
increasing by one per proof hop toward the root of authority.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Optional

from ucan_inspect.capabilities.capability import Capability
from ucan_inspect.decoding.claims import TokenFormat
from ucan_inspect.values import Value


@dataclass(frozen=True)
class ProofReference:
    """A content-addressed pointer to the delegation that authorizes this one.

    Parameters
    ----------
    content_id:
        Content id of the proof delegation.
    index:
        Position of the reference in the token's proof list.
    type:
        Kind of referenced object; always ``"delegation"`` for now.
    """

    content_id: str
    index: int
    type: str = "delegation"


@dataclass(frozen=True)
class SignatureInfo:
    """What is known about a link's signature.

    Parameters
    ----------
    algorithm:
        Signature algorithm name (``"EdDSA"``, ``"ES256K"``, ...).
    verified:
        True only when a verifier actually evaluated the signature.
    valid:
        The verifier's verdict, or None when unverified.
    error:
        Why verification failed or could not run.
    """

    algorithm: str = "unknown"
    verified: bool = False
    valid: Optional[bool] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class DelegationLink:
    """A single delegation from *issuer* to *audience*.

    Parameters
    ----------
    issuer:
        DID of the delegating principal.
    audience:
        DID of the receiving principal.
    capabilities:
        Granted capabilities in token order.
    proofs:
        References to the delegations authorizing this one.
    content_id:
        Content id of the delegation, computed from its bytes.
    level:
        Distance from the presented token (0 = presented token).
    not_before, expiration:
        Aware UTC datetimes, None when the token sets no bound.
    nonce:
        Token nonce, None when absent.
    facts:
        Opaque facts in token order.
    signature:
        Signature metadata.
    token_format:
        Wire format the link was decoded from.
    """

    issuer: str
    audience: str
    capabilities: tuple[Capability, ...]
    proofs: tuple[ProofReference, ...]
    content_id: str
    level: int = 0
    not_before: Optional[datetime.datetime] = None
    expiration: Optional[datetime.datetime] = None
    nonce: Optional[str] = None
    facts: tuple[Value, ...] = ()
    signature: SignatureInfo = SignatureInfo()
    token_format: TokenFormat = TokenFormat.COMPACT

    def __post_init__(self) -> None:
        if self.level < 0:
            raise ValueError("DelegationLink.level must not be negative.")

    # ------------------------------------------------------------------
    # Time validity
    # ------------------------------------------------------------------

    def is_expired(self, now: Optional[datetime.datetime] = None) -> bool:
        """Return True when the link has an expiration before *now*."""
        if self.expiration is None:
            return False
        reference = now or datetime.datetime.now(datetime.timezone.utc)
        return self.expiration < reference

    def is_active(self, now: Optional[datetime.datetime] = None) -> bool:
        """Return True when *now* lies within the link's time bounds."""
        reference = now or datetime.datetime.now(datetime.timezone.utc)
        if self.not_before is not None and self.not_before > reference:
            return False
        return not self.is_expired(reference)


__all__ = ["DelegationLink", "ProofReference", "SignatureInfo"]
