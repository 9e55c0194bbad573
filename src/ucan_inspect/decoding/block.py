"""Raw block decoding — a single DAG-CBOR encoded token.

A raw block is an array whose elements are, in any order:

* an optional header map;
* the payload map, possibly wrapped one or more times as
  ``{"ucan/<version>": payload}`` (UCAN 1.0 envelopes also carry an
  ``"h"`` varsig header next to the wrapper key);
* the signature, recognized as the 64-byte byte string.
"""
from __future__ import annotations

import logging
from typing import Optional

import dag_cbor

from ucan_inspect.decoding.archive import DECODE_ERRORS
from ucan_inspect.decoding.claims import (
    CanonicalClaims,
    ClaimFields,
    TokenFormat,
    extract_claims,
)
from ucan_inspect.values import Value, to_map

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH: int = 64

_WRAPPER_PREFIX = "ucan/"
_MAX_WRAPPER_DEPTH = 8


class BlockFormatError(ValueError):
    """Raised when bytes are not a DAG-CBOR token array."""


class BlockClaimsError(ValueError):
    """Raised when a token array holds no recognizable issuer or audience."""


def decode_block(data: bytes) -> CanonicalClaims:
    """Decode a raw DAG-CBOR token block into canonical claims.

    Parameters
    ----------
    data:
        The block bytes.

    Returns
    -------
    CanonicalClaims

    Raises
    ------
    BlockFormatError
        If *data* is not DAG-CBOR or not an array.
    BlockClaimsError
        If the array decodes but no element yields an issuer or audience.
    """
    try:
        node = dag_cbor.decode(data)
    except DECODE_ERRORS as exc:
        raise BlockFormatError(f"Not a DAG-CBOR block: {exc}") from exc
    if not isinstance(node, list):
        raise BlockFormatError(f"Expected an array block, got {type(node).__name__}.")

    fields: Optional[ClaimFields] = None
    header: dict[str, Value] = {}
    signature = b""
    signing_input: Optional[bytes] = None

    for item in node:
        if isinstance(item, dict):
            payload = unwrap_payload(item)
            if payload is not None:
                fields = extract_claims(payload)
                if "h" in item:
                    signing_input = dag_cbor.encode(item)
                    if isinstance(item["h"], dict):
                        header = to_map(item["h"])
                continue
            if fields is None or not fields.has_principals:
                candidate = extract_claims(item)
                if candidate.has_principals:
                    fields = candidate
                    continue
            header = to_map(item)
        elif isinstance(item, bytes) and len(item) == SIGNATURE_LENGTH:
            signature = item

    if fields is None or not fields.has_principals:
        raise BlockClaimsError("Array block contained no recognizable UCAN payload.")

    logger.debug("Decoded raw block for issuer %s", fields.issuer)
    return CanonicalClaims(
        token_format=TokenFormat.BLOCK,
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
        header=header,
        signature=signature,
        signing_input=signing_input,
    )


def unwrap_payload(node: dict) -> Optional[dict]:
    """Follow ``ucan/<version>`` wrapper keys down to the payload map.

    Returns None when *node* carries no wrapper key.
    """
    current: object = node
    unwrapped = False
    for _ in range(_MAX_WRAPPER_DEPTH):
        if not isinstance(current, dict):
            break
        inner = _wrapped_value(current)
        if inner is None:
            break
        current = inner
        unwrapped = True
    if unwrapped and isinstance(current, dict):
        return current
    return None


def _wrapped_value(node: dict) -> Optional[object]:
    for key, value in node.items():
        if isinstance(key, str) and key.startswith(_WRAPPER_PREFIX):
            return value
    return None


__all__ = [
    "BlockClaimsError",
    "BlockFormatError",
    "SIGNATURE_LENGTH",
    "decode_block",
    "unwrap_payload",
]
