"""Principal identifiers: ``did:key`` decoding and byte-principal formatting."""
from __future__ import annotations

from ucan_inspect.did.did_key import (
    DIDKeyDocument,
    ED25519_PUB,
    format_principal,
    public_key_to_did,
    resolve_did_key,
)

__all__ = [
    "DIDKeyDocument",
    "ED25519_PUB",
    "format_principal",
    "public_key_to_did",
    "resolve_did_key",
]
