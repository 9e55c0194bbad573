"""Signature verification collaborators.

Decoders never check signatures themselves; they carry the signature bytes
and, where the encoding defines one, the exact signing input. A
:class:`SignatureVerifier` turns those into the boolean recorded on each
link's :class:`~ucan_inspect.delegation.link.SignatureInfo`.

:class:`Ed25519SignatureVerifier` wraps the ``cryptography`` package's
Ed25519 primitives and resolves the issuer's public key from its
``did:key`` DID. Other key types are reported as unsupported rather than
guessed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from ucan_inspect.did.did_key import ED25519_PUB, resolve_did_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of checking one signature.

    Parameters
    ----------
    checked:
        True when the verifier was able to evaluate the signature at all.
    valid:
        The verdict when ``checked`` is True, otherwise None.
    error:
        Reason the signature could not be checked or failed.
    """

    checked: bool
    valid: Optional[bool] = None
    error: Optional[str] = None


class SignatureVerifier(Protocol):
    """Interface for external signature verification."""

    def verify(
        self, issuer: str, signing_input: bytes, signature: bytes
    ) -> VerificationOutcome:
        """Check *signature* over *signing_input* against *issuer*'s key."""
        ...


class Ed25519SignatureVerifier:
    """Verify Ed25519 signatures for ``did:key`` issuers.

    Example
    -------
    ::

        verifier = Ed25519SignatureVerifier()
        outcome = verifier.verify("did:key:z6Mk...", b"header.payload", signature)
        if outcome.checked and outcome.valid:
            ...
    """

    def verify(
        self, issuer: str, signing_input: bytes, signature: bytes
    ) -> VerificationOutcome:
        """Verify an Ed25519 signature.

        Parameters
        ----------
        issuer:
            The ``did:key`` DID of the signer.
        signing_input:
            The exact bytes that were signed.
        signature:
            The 64-byte raw signature.

        Returns
        -------
        VerificationOutcome
            ``checked`` is False for non ``did:key`` issuers and non-Ed25519
            keys; ``valid`` is False when the signature does not match.
        """
        try:
            document = resolve_did_key(issuer)
        except ValueError as exc:
            return VerificationOutcome(checked=False, error=str(exc))

        if document.codec != ED25519_PUB:
            return VerificationOutcome(
                checked=False,
                error=f"Unsupported key type {document.key_type} for {issuer!r}.",
            )

        try:
            public_key = Ed25519PublicKey.from_public_bytes(document.public_key)
        except ValueError as exc:
            return VerificationOutcome(checked=False, error=f"Invalid Ed25519 key: {exc}")

        try:
            public_key.verify(signature, signing_input)
        except InvalidSignature:
            logger.debug("Signature by %s failed verification", issuer)
            return VerificationOutcome(
                checked=True, valid=False, error="Signature does not match issuer key."
            )
        return VerificationOutcome(checked=True, valid=True)


__all__ = ["Ed25519SignatureVerifier", "SignatureVerifier", "VerificationOutcome"]
