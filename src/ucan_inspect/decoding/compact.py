"""Compact token decoding.

Token format
------------
The token is a dot-separated string::

    base64url(header).base64url(payload).base64url(signature)

Segments may omit base64 padding. Header and payload must be JSON objects;
the payload is read as the canonical claim set. The signature is carried
for an external verifier together with the signing input
``header_segment.payload_segment``; nothing is verified here.
"""
from __future__ import annotations

import base64
import binascii
import json

from ucan_inspect.decoding.claims import CanonicalClaims, TokenFormat, extract_claims
from ucan_inspect.values import to_map


class CompactFormatError(ValueError):
    """Raised when the input is not three dot-separated segments."""


class SegmentError(ValueError):
    """Raised when one of the three segments cannot be decoded.

    Parameters
    ----------
    segment:
        ``"header"``, ``"payload"`` or ``"signature"``.
    reason:
        Why decoding failed.
    """

    def __init__(self, segment: str, reason: str) -> None:
        self.segment = segment
        self.reason = reason
        super().__init__(f"Malformed {segment} segment: {reason}")


class CompactClaimsError(ValueError):
    """Raised when the payload decodes but names no issuer or audience."""


def decode_compact(data: bytes) -> CanonicalClaims:
    """Decode a compact three-segment token.

    Parameters
    ----------
    data:
        The token as bytes (ASCII text).

    Returns
    -------
    CanonicalClaims

    Raises
    ------
    CompactFormatError
        If *data* is not text with exactly three segments.
    SegmentError
        If a segment is not valid base64url, or header/payload is not a
        JSON object.
    CompactClaimsError
        If the payload has neither ``iss`` nor ``aud``.
    """
    try:
        text = bytes(data).decode("ascii").strip()
    except UnicodeDecodeError as exc:
        raise CompactFormatError("Compact tokens must be ASCII text.") from exc

    parts = text.split(".")
    if len(parts) != 3:
        raise CompactFormatError(f"Expected 3 segments, got {len(parts)}.")
    header_b64, payload_b64, signature_b64 = parts
    if not header_b64 or not payload_b64:
        raise CompactFormatError("Header and payload segments must not be empty.")

    header = _json_segment("header", header_b64)
    payload = _json_segment("payload", payload_b64)
    signature = decode_segment("signature", signature_b64)

    fields = extract_claims(payload)
    if not fields.has_principals:
        raise CompactClaimsError("Payload contained no recognizable issuer or audience.")

    return CanonicalClaims(
        token_format=TokenFormat.COMPACT,
        source=bytes(data),
        issuer=fields.issuer,
        audience=fields.audience,
        expiration=fields.expiration,
        not_before=fields.not_before,
        nonce=fields.nonce,
        facts=tuple(fields.facts),
        proofs=tuple(fields.proofs),
        capabilities=tuple(fields.capabilities),
        content_id=fields.content_id,
        header=to_map(header),
        signature=signature,
        signing_input=f"{header_b64}.{payload_b64}".encode("ascii"),
    )


def decode_segment(name: str, segment: str) -> bytes:
    """Decode one base64url segment, restoring any stripped padding."""
    padded = segment + "=" * (-len(segment) % 4)
    try:
        return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SegmentError(name, str(exc)) from exc


def _json_segment(name: str, segment: str) -> dict:
    raw = decode_segment(name, segment)
    try:
        parsed = json.loads(raw.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise SegmentError(name, f"not JSON ({exc})") from exc
    if not isinstance(parsed, dict):
        raise SegmentError(name, "not a JSON object")
    return parsed


__all__ = [
    "CompactClaimsError",
    "CompactFormatError",
    "SegmentError",
    "decode_compact",
    "decode_segment",
]
