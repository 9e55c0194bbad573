"""Token decoding: wire format detection and canonical claims.

Quick start
-----------
::

    from ucan_inspect.decoding import TokenDecoder, TokenFormat

    decoded = TokenDecoder().decode(token_bytes)
    if decoded.token_format is TokenFormat.ARCHIVE:
        print(len(decoded.store), "blocks in archive")
"""
from __future__ import annotations

from ucan_inspect.decoding.archive import ArchivedDelegation, BlockStore, decode_archive
from ucan_inspect.decoding.block import decode_block
from ucan_inspect.decoding.claims import CanonicalClaims, RawCapability, TokenFormat
from ucan_inspect.decoding.compact import decode_compact
from ucan_inspect.decoding.decoder import DecodeError, DecodeErrorKind, DecodedToken, TokenDecoder
from ucan_inspect.decoding.normalize import normalize_token

__all__ = [
    "ArchivedDelegation",
    "BlockStore",
    "CanonicalClaims",
    "DecodeError",
    "DecodeErrorKind",
    "DecodedToken",
    "RawCapability",
    "TokenDecoder",
    "TokenFormat",
    "decode_archive",
    "decode_block",
    "decode_compact",
    "normalize_token",
]
