"""did:key decoding and principal formatting.

Implements the read side of the ``did:key`` DID method
(https://w3c-ccg.github.io/did-method-key/):

1. Strip the ``did:key:`` prefix.
2. Multibase-decode the remainder (``z`` = base58btc).
3. Read the varint multicodec prefix naming the key type.
4. The rest is the raw public key.

Delegation blocks inside CAR archives store principals as bytes rather
than strings. :func:`format_principal` turns either representation into a
DID string: multicodec-prefixed key bytes become ``did:key:z...`` and bytes
carrying the DID-core prefix (``0x0d1d``) become ``did:<rest>``.
"""
from __future__ import annotations

from dataclasses import dataclass

from multiformats import multibase, varint

# ---------------------------------------------------------------------------
# Multicodec codes for public keys
# ---------------------------------------------------------------------------

ED25519_PUB: int = 0xED
SECP256K1_PUB: int = 0xE7
P256_PUB: int = 0x1200
RSA_PUB: int = 0x1205

_DID_CORE: int = 0x0D1D

_KEY_TYPES: dict[int, str] = {
    ED25519_PUB: "Ed25519",
    SECP256K1_PUB: "secp256k1",
    P256_PUB: "P-256",
    RSA_PUB: "RSA",
}

_DID_KEY_PREFIX = "did:key:"


@dataclass(frozen=True)
class DIDKeyDocument:
    """Public key material decoded from a ``did:key`` string.

    Parameters
    ----------
    did:
        The fully qualified ``did:key:z<encoded>`` string.
    codec:
        Multicodec code of the key type (``0xed`` for Ed25519).
    public_key:
        Raw public key bytes with the multicodec prefix removed.
    """

    did: str
    codec: int
    public_key: bytes

    @property
    def key_type(self) -> str:
        """Human-readable key type, or ``"unknown"``."""
        return _KEY_TYPES.get(self.codec, "unknown")


def resolve_did_key(did: str) -> DIDKeyDocument:
    """Decode the public key embedded in a ``did:key`` DID.

    Parameters
    ----------
    did:
        A ``did:key:<multibase>`` string.

    Returns
    -------
    DIDKeyDocument

    Raises
    ------
    ValueError
        If the DID is not a ``did:key`` or its multibase/multicodec
        encoding is invalid.
    """
    if not did.startswith(_DID_KEY_PREFIX) or len(did) == len(_DID_KEY_PREFIX):
        raise ValueError(
            f"Invalid did:key format: {did!r}. "
            "Expected format: did:key:z<base58btc-encoded-public-key>"
        )
    try:
        decoded = multibase.decode(did[len(_DID_KEY_PREFIX):])
        codec, prefix_len, _ = varint.decode_raw(decoded)
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Invalid did:key encoding in {did!r}: {exc}") from exc
    public_key = bytes(decoded[prefix_len:])
    if not public_key:
        raise ValueError(f"Invalid did:key format: {did!r}. The encoded key portion is empty.")
    return DIDKeyDocument(did=did, codec=codec, public_key=public_key)


def public_key_to_did(codec: int, public_key: bytes) -> str:
    """Encode a raw public key as a ``did:key`` DID."""
    encoded = multibase.encode(varint.encode(codec) + public_key, "base58btc")
    return f"{_DID_KEY_PREFIX}{encoded}"


def format_principal(value: object) -> str:
    """Render a principal from a decoded token as a DID string.

    Parameters
    ----------
    value:
        A DID string, or principal bytes as stored in archived delegations.

    Returns
    -------
    str
        The DID, or ``""`` when *value* is neither a string nor decodable bytes.
    """
    if isinstance(value, str):
        return value
    if not isinstance(value, (bytes, bytearray, memoryview)):
        return ""
    raw = bytes(value)
    if not raw:
        return ""
    try:
        codec, prefix_len, _ = varint.decode_raw(raw)
    except ValueError:
        return ""
    if codec == _DID_CORE:
        try:
            return "did:" + raw[prefix_len:].decode("utf-8")
        except UnicodeDecodeError:
            return ""
    return f"{_DID_KEY_PREFIX}{multibase.encode(raw, 'base58btc')}"


__all__ = [
    "DIDKeyDocument",
    "ED25519_PUB",
    "P256_PUB",
    "RSA_PUB",
    "SECP256K1_PUB",
    "format_principal",
    "public_key_to_did",
    "resolve_did_key",
]
