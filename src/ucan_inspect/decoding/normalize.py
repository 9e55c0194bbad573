"""Text-to-bytes normalization for tokens pasted or stored as text.

Archive and block tokens are binary, so tools commonly exchange them as
standard base64 or hex. Compact tokens are already text and pass through.

Hex digits are a subset of the base64 alphabet, so one input can be valid
in both encodings. Every plausible decoding is returned and the caller
keeps the first one that decodes as a token.
"""
from __future__ import annotations

import base64
import binascii
import re

_BASE64_RE = re.compile(rb"^[A-Za-z0-9+/]+={0,2}$")
_HEX_RE = re.compile(rb"^(0x)?([0-9a-fA-F]{2})+$")


def normalize_token(data: bytes) -> list[bytes]:
    """Decode a text-encoded binary token.

    Parameters
    ----------
    data:
        Raw input as received.

    Returns
    -------
    list[bytes]
        Candidate decodings, most likely first: standard base64 when the
        text is valid base64, then hex (optionally ``0x``-prefixed). Empty
        when *data* is neither, in which case the input should be used as is.
    """
    text = bytes(data).strip()
    if not text or b"." in text:
        return []

    candidates: list[bytes] = []
    if len(text) % 4 == 0 and _BASE64_RE.match(text):
        try:
            candidates.append(base64.b64decode(text, validate=True))
        except binascii.Error:
            pass
    if _HEX_RE.match(text):
        decoded = binascii.unhexlify(text[2:] if text.startswith(b"0x") else text)
        if decoded not in candidates:
            candidates.append(decoded)
    return candidates


__all__ = ["normalize_token"]
