"""DelegationMapper — turn decoded tokens into :class:`DelegationLink` records.

Two inputs are accepted:

* :class:`~ucan_inspect.decoding.archive.ArchivedDelegation`: the native
  view of an archived delegation; fields come straight from its accessors.
* :class:`~ucan_inspect.decoding.claims.CanonicalClaims`: claims from a raw
  block or compact token.

Timestamps stored as zero mean "absent" and map to ``None``, never to the
epoch. Canonical claims without a content id get a deterministic fallback
derived from the input bytes.
"""
from __future__ import annotations

import datetime
import hashlib
import logging
from typing import Optional, Sequence, Union

from ucan_inspect.capabilities.capability import Capability
from ucan_inspect.decoding.archive import ArchivedDelegation
from ucan_inspect.decoding.claims import CanonicalClaims, RawCapability
from ucan_inspect.delegation.link import DelegationLink, ProofReference, SignatureInfo
from ucan_inspect.signature import SignatureVerifier
from ucan_inspect.values import to_map

logger = logging.getLogger(__name__)

MappableToken = Union[ArchivedDelegation, CanonicalClaims]

_FALLBACK_PREFIX = "b"
_FALLBACK_HEX_LENGTH = 40
_ED25519_SIGNATURE_LENGTH = 64


def fallback_content_id(source: bytes) -> str:
    """Return the content id used when a token does not carry one."""
    digest = hashlib.sha256(source).hexdigest()
    return _FALLBACK_PREFIX + digest[:_FALLBACK_HEX_LENGTH]


class DelegationMapper:
    """Map decoded tokens to links.

    Parameters
    ----------
    verifier:
        Optional signature verifier. When None every link's signature is
        reported as unverified.

    Example
    -------
    ::

        mapper = DelegationMapper(Ed25519SignatureVerifier())
        link = mapper.map_to_link(TokenDecoder().decode(data))
        print(link.issuer, "->", link.audience)
    """

    def __init__(self, verifier: Optional[SignatureVerifier] = None) -> None:
        self._verifier = verifier

    def map_to_link(self, source: MappableToken, level: int = 0) -> DelegationLink:
        """Build a :class:`DelegationLink` positioned at *level*.

        Parameters
        ----------
        source:
            A decoded archive delegation or canonical claim set.
        level:
            Distance from the presented token.

        Returns
        -------
        DelegationLink

        Raises
        ------
        TypeError
            If *source* is neither supported type.
        """
        if isinstance(source, ArchivedDelegation):
            return self._map_archived(source, level)
        if isinstance(source, CanonicalClaims):
            return self._map_claims(source, level)
        raise TypeError(f"Cannot map {type(source).__name__} to a delegation link.")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _map_archived(self, source: ArchivedDelegation, level: int) -> DelegationLink:
        algorithm, _ = source.signature
        return DelegationLink(
            issuer=source.issuer,
            audience=source.audience,
            capabilities=_capabilities(source.capabilities),
            proofs=_proof_references(source.proofs),
            content_id=source.content_id,
            level=level,
            not_before=_datetime(source.not_before),
            expiration=_datetime(source.expiration),
            nonce=source.nonce or None,
            facts=tuple(source.facts),
            # Archives carry no reconstructable signing input.
            signature=SignatureInfo(
                algorithm=algorithm,
                error="No signing input available for archived delegations.",
            ),
            token_format=source.token_format,
        )

    def _map_claims(self, source: CanonicalClaims, level: int) -> DelegationLink:
        content_id = source.content_id or fallback_content_id(source.source)
        return DelegationLink(
            issuer=source.issuer,
            audience=source.audience,
            capabilities=_capabilities(source.capabilities),
            proofs=_proof_references(source.proofs),
            content_id=content_id,
            level=level,
            not_before=_datetime(source.not_before),
            expiration=_datetime(source.expiration),
            nonce=source.nonce,
            facts=source.facts,
            signature=self._signature(source),
            token_format=source.token_format,
        )

    def _signature(self, source: CanonicalClaims) -> SignatureInfo:
        algorithm = _algorithm(source)
        if not source.signature:
            return SignatureInfo(algorithm=algorithm, error="Token carries no signature.")
        if source.signing_input is None:
            return SignatureInfo(algorithm=algorithm, error="No signing input available.")
        if self._verifier is None:
            return SignatureInfo(algorithm=algorithm, error="No verifier configured.")

        outcome = self._verifier.verify(source.issuer, source.signing_input, source.signature)
        if not outcome.checked:
            logger.debug("Signature by %s not checked: %s", source.issuer, outcome.error)
            return SignatureInfo(algorithm=algorithm, error=outcome.error)
        return SignatureInfo(
            algorithm=algorithm,
            verified=True,
            valid=bool(outcome.valid),
            error=outcome.error,
        )


def _algorithm(source: CanonicalClaims) -> str:
    alg = source.header.get("alg")
    if isinstance(alg, str) and alg:
        return alg
    if len(source.signature) == _ED25519_SIGNATURE_LENGTH:
        return "EdDSA"
    return "unknown"


def _capabilities(raw: Sequence[RawCapability]) -> tuple[Capability, ...]:
    return tuple(
        Capability(resource=cap.resource, ability=cap.ability, caveats=to_map(cap.caveats))
        for cap in raw
    )


def _proof_references(content_ids: Sequence[str]) -> tuple[ProofReference, ...]:
    return tuple(
        ProofReference(content_id=content_id, index=index)
        for index, content_id in enumerate(content_ids)
    )


def _datetime(seconds: Optional[int]) -> Optional[datetime.datetime]:
    if not seconds:
        return None
    try:
        return datetime.datetime.fromtimestamp(seconds, tz=datetime.timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.debug("Timestamp %r is out of range; treating as absent", seconds)
        return None


__all__ = ["DelegationMapper", "MappableToken", "fallback_content_id"]
