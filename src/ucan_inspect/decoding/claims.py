"""CanonicalClaims — the single claim set every non-archive decoder fills.

UCAN payloads come in overlapping shapes:

* legacy (0.x): ``iss``, ``aud``, ``exp``, ``nbf``, ``nnc``, ``fct``, ``prf``
  and ``att``, where ``att`` is either a list of ``{with, can, nb}`` maps or
  a ``{resource: {ability: [caveats, ...]}}`` map;
* modern (1.0): ``iss``, ``aud``, ``sub``, ``cmd``, ``pol``, ``nonce``,
  ``meta``.

:func:`extract_claims` scans every field first and only then synthesizes a
capability from ``cmd``/``sub``/``pol``, so field order in the source map
never changes the result. Malformed fields are skipped.
"""
from __future__ import annotations

import base64
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from multiformats import CID

from ucan_inspect.did.did_key import format_principal
from ucan_inspect.values import Value, cid_text, to_map, to_value

logger = logging.getLogger(__name__)


class TokenFormat(str, Enum):
    """Wire encodings accepted by the decoder, in detection order."""

    ARCHIVE = "car"
    BLOCK = "cbor"
    COMPACT = "jwt"


@dataclass(frozen=True)
class RawCapability:
    """A capability as read from the payload, before mapping."""

    resource: str
    ability: str
    caveats: dict[str, Value] = field(default_factory=dict)


@dataclass(frozen=True)
class CanonicalClaims:
    """Claims decoded from a raw block or compact token.

    Parameters
    ----------
    token_format:
        Which decoder produced these claims.
    source:
        The original input bytes (used for the fallback content id).
    issuer, audience:
        Principal DIDs; empty string when absent.
    expiration, not_before:
        Unix timestamps in seconds, None when absent.
    capabilities:
        Capabilities in payload order (possibly synthesized from ``cmd``).
    header:
        Decoded header map, empty when the encoding has none.
    signature:
        Raw signature bytes, empty when none was found.
    signing_input:
        The bytes the signature covers, when the encoding defines them.
    """

    token_format: TokenFormat
    source: bytes
    issuer: str = ""
    audience: str = ""
    expiration: Optional[int] = None
    not_before: Optional[int] = None
    nonce: Optional[str] = None
    facts: tuple[Value, ...] = ()
    proofs: tuple[str, ...] = ()
    capabilities: tuple[RawCapability, ...] = ()
    content_id: str = ""
    header: dict[str, Value] = field(default_factory=dict)
    signature: bytes = b""
    signing_input: Optional[bytes] = None

    @property
    def has_principals(self) -> bool:
        """True when an issuer or an audience was recognized."""
        return bool(self.issuer or self.audience)


@dataclass
class ClaimFields:
    """Mutable accumulator used while scanning a payload map."""

    issuer: str = ""
    audience: str = ""
    expiration: Optional[int] = None
    not_before: Optional[int] = None
    nonce: Optional[str] = None
    facts: list[Value] = field(default_factory=list)
    proofs: list[str] = field(default_factory=list)
    capabilities: list[RawCapability] = field(default_factory=list)
    content_id: str = ""

    @property
    def has_principals(self) -> bool:
        return bool(self.issuer or self.audience)


_CAPABILITY_KEYS = ("att", "capabilities", "caps")


def extract_claims(payload: object) -> ClaimFields:
    """Scan a decoded payload map into :class:`ClaimFields`.

    Parameters
    ----------
    payload:
        A map from a CBOR or JSON decoder. Anything else yields empty fields.

    Returns
    -------
    ClaimFields
    """
    fields = ClaimFields()
    if not isinstance(payload, dict):
        return fields

    command: Optional[str] = None
    subject: Optional[str] = None
    policy: Value = None
    has_policy = False

    for key, value in payload.items():
        if key == "iss":
            fields.issuer = format_principal(value)
        elif key == "aud":
            fields.audience = format_principal(value)
        elif key == "exp":
            fields.expiration = _timestamp(value)
        elif key == "nbf":
            fields.not_before = _timestamp(value)
        elif key in ("nnc", "nonce"):
            fields.nonce = _nonce(value)
        elif key == "fct":
            fields.facts.extend(_facts(value))
        elif key == "meta":
            meta = to_value(value)
            if meta is not None:
                fields.facts.append({"meta": meta})
        elif key == "prf":
            fields.proofs.extend(_proof_ids(value))
        elif key in _CAPABILITY_KEYS:
            fields.capabilities.extend(parse_capabilities(value))
        elif key == "cmd" and isinstance(value, str):
            command = value
        elif key == "sub":
            subject = format_principal(value) if value is not None else None
        elif key == "pol":
            policy = to_value(value)
            has_policy = True
        elif key == "cid" and isinstance(value, str):
            fields.content_id = value

    if not fields.capabilities and command:
        caveats: dict[str, Value] = {"policy": policy} if has_policy else {}
        fields.capabilities.append(
            RawCapability(resource=subject or "", ability=command, caveats=caveats)
        )
        logger.debug("Synthesized capability %r from command field", command)

    return fields


def parse_capabilities(value: object) -> list[RawCapability]:
    """Read capabilities in either list-of-maps or resource-map form."""
    capabilities: list[RawCapability] = []
    if isinstance(value, list):
        for item in value:
            if not isinstance(item, dict):
                continue
            resource = item.get("with")
            ability = item.get("can")
            capabilities.append(
                RawCapability(
                    resource=resource if isinstance(resource, str) else "",
                    ability=ability if isinstance(ability, str) else "",
                    caveats=to_map(item.get("nb")),
                )
            )
    elif isinstance(value, dict):
        for resource, abilities in value.items():
            if not isinstance(resource, str) or not isinstance(abilities, dict):
                continue
            for ability, caveat_list in abilities.items():
                if not isinstance(ability, str):
                    continue
                entries = caveat_list if isinstance(caveat_list, list) else []
                caveat_maps = [to_map(entry) for entry in entries if isinstance(entry, dict)]
                for caveats in caveat_maps or [{}]:
                    capabilities.append(
                        RawCapability(resource=resource, ability=ability, caveats=caveats)
                    )
    return capabilities


def _timestamp(value: object) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    seconds = int(value)
    return seconds if seconds != 0 else None


def _nonce(value: object) -> Optional[str]:
    if isinstance(value, str):
        return value or None
    if isinstance(value, (bytes, bytearray)) and value:
        return base64.urlsafe_b64encode(bytes(value)).decode("ascii").rstrip("=")
    return None


def _facts(value: object) -> list[Value]:
    if isinstance(value, list):
        return [to_value(item) for item in value]
    if isinstance(value, dict):
        return [to_value(value)]
    return []


def _proof_ids(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    ids: list[str] = []
    for item in value:
        if isinstance(item, CID):
            ids.append(cid_text(item))
        elif isinstance(item, str) and item:
            ids.append(item)
    return ids


__all__ = [
    "CanonicalClaims",
    "ClaimFields",
    "RawCapability",
    "TokenFormat",
    "extract_claims",
    "parse_capabilities",
]
