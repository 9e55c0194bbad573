"""Content-addressed archive (CARv1) decoding.

Archive layout
--------------
::

    varint(len) || dag-cbor({"version": 1, "roots": [CID, ...]})
    varint(len) || CID || block bytes      (repeated until end of input)

Archived delegations are exported with a variant root block
``{"ucan@<version>": CID}`` pointing at the delegation block; archives whose
root is the delegation block itself are accepted too. Every block lands in
an in-memory :class:`BlockStore`, which the chain resolver later uses to
materialize proofs.

Delegation blocks store principals as bytes and signatures in varsig form
(``varint(code) || varint(length) || raw``); both are normalized here so that
the mapper only ever sees DIDs and raw signature bytes.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterator, Optional

import dag_cbor
from dag_cbor.decoding import CBORDecodingError
from multiformats import CID, varint

from ucan_inspect.decoding.claims import RawCapability, TokenFormat, parse_capabilities
from ucan_inspect.did.did_key import format_principal
from ucan_inspect.values import Value, cid_text, to_value

logger = logging.getLogger(__name__)

_VARIANT_PREFIX = "ucan@"

# Everything dag_cbor/multiformats raise for undecodable input.
DECODE_ERRORS: tuple[type[Exception], ...] = (
    CBORDecodingError,
    ValueError,
    KeyError,
    IndexError,
    OverflowError,
)

# Varsig signature codes used by archived delegations.
_VARSIG_ALGORITHMS: dict[int, str] = {
    0xD000: "NonStandard",
    0xD0E7: "ES256K",
    0xD0EA: "BLS12381G1",
    0xD0EB: "BLS12381G2",
    0xD0ED: "EdDSA",
    0xD01200: "ES256",
    0xD01201: "ES384",
    0xD01202: "ES512",
    0xD01205: "RS256",
    0xD191: "EIP191",
}


class ArchiveFormatError(ValueError):
    """Raised when bytes are not a readable archive of a delegation."""


class BlockStore:
    """Read-only map from content id to block bytes.

    Keys are stored as CID strings so lookups work with either a
    :class:`~multiformats.CID` or its string form.
    """

    def __init__(self, blocks: Optional[dict[str, bytes]] = None) -> None:
        self._blocks: dict[str, bytes] = dict(blocks or {})

    def put(self, cid: CID, block: bytes) -> None:
        """Store *block* under *cid* (first write wins)."""
        self._blocks.setdefault(link_text(cid), block)

    def get(self, cid: object) -> Optional[bytes]:
        """Return the block for *cid*, or None when it is not in the store."""
        return self._blocks.get(link_text(cid))

    def __contains__(self, cid: object) -> bool:
        return link_text(cid) in self._blocks

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[str]:
        return iter(self._blocks)


@dataclass(frozen=True)
class ArchivedDelegation:
    """A delegation block viewed through the archive it came from.

    Accessors expose already-normalized values: DIDs for principals,
    ``CID`` strings for proofs, ``None`` for absent timestamps.

    Parameters
    ----------
    cid:
        Content id of the delegation block.
    data:
        The decoded delegation block.
    store:
        Every block of the archive, shared by all views from one input.
    """

    cid: CID
    data: dict
    store: BlockStore

    token_format = TokenFormat.ARCHIVE

    @property
    def content_id(self) -> str:
        return cid_text(self.cid)

    @property
    def version(self) -> str:
        version = self.data.get("v")
        return version if isinstance(version, str) else ""

    @property
    def issuer(self) -> str:
        return format_principal(self.data.get("iss"))

    @property
    def audience(self) -> str:
        return format_principal(self.data.get("aud"))

    @property
    def capabilities(self) -> list[RawCapability]:
        return parse_capabilities(self.data.get("att"))

    @property
    def proofs(self) -> list[str]:
        links = self.data.get("prf")
        if not isinstance(links, list):
            return []
        return [link_text(link) for link in links if isinstance(link, (CID, str))]

    @property
    def expiration(self) -> int:
        """Expiration in seconds; 0 when absent (stored as null for "never")."""
        return _seconds(self.data.get("exp"))

    @property
    def not_before(self) -> int:
        return _seconds(self.data.get("nbf"))

    @property
    def nonce(self) -> str:
        nonce = self.data.get("nnc")
        return nonce if isinstance(nonce, str) else ""

    @property
    def facts(self) -> list[Value]:
        facts = self.data.get("fct")
        if not isinstance(facts, list):
            return []
        return [to_value(fact) for fact in facts]

    @property
    def signature(self) -> tuple[str, bytes]:
        """Return ``(algorithm, raw signature bytes)`` unpacked from varsig."""
        return unpack_varsig(self.data.get("s"))

    def view(self, cid: object) -> Optional["ArchivedDelegation"]:
        """Return the delegation stored under *cid* in this archive, or None."""
        return load_delegation(self.store, cid)


def load_delegation(store: BlockStore, cid: object) -> Optional[ArchivedDelegation]:
    """Decode the delegation stored under *cid*.

    Returns None when the block is missing, undecodable, or not a delegation.
    """
    block = store.get(cid)
    if block is None:
        return None
    try:
        data = dag_cbor.decode(block)
        link = cid if isinstance(cid, CID) else CID.decode(str(cid))
    except DECODE_ERRORS as exc:
        logger.debug("Block %s could not be decoded: %s", cid, exc)
        return None
    if not _looks_like_delegation(data):
        return None
    return ArchivedDelegation(cid=link, data=data, store=store)


def link_text(link: object) -> str:
    """Return the canonical text of a CID or CID string.

    Strings that do not parse as a CID are returned unchanged.
    """
    if isinstance(link, CID):
        return cid_text(link)
    text = str(link)
    try:
        return cid_text(CID.decode(text))
    except DECODE_ERRORS:
        return text


def read_archive(data: bytes) -> tuple[list[CID], BlockStore]:
    """Parse CARv1 bytes into its roots and a populated :class:`BlockStore`.

    Raises
    ------
    ArchiveFormatError
        If the header or any section is malformed.
    """
    view = memoryview(data)
    try:
        header_len, prefix_len, _ = varint.decode_raw(view)
    except ValueError as exc:
        raise ArchiveFormatError(f"Archive header length unreadable: {exc}") from exc
    offset = prefix_len
    if header_len == 0 or offset + header_len > len(view):
        raise ArchiveFormatError("Archive header length exceeds input.")

    try:
        header = dag_cbor.decode(bytes(view[offset:offset + header_len]))
    except DECODE_ERRORS as exc:
        raise ArchiveFormatError(f"Archive header is not DAG-CBOR: {exc}") from exc
    offset += header_len

    if not isinstance(header, dict) or header.get("version") != 1:
        raise ArchiveFormatError("Archive header must be a version 1 map.")
    roots = header.get("roots")
    if not isinstance(roots, list) or not roots or not all(isinstance(r, CID) for r in roots):
        raise ArchiveFormatError("Archive header has no roots.")

    store = BlockStore()
    while offset < len(view):
        try:
            section_len, prefix_len, _ = varint.decode_raw(view[offset:])
        except ValueError as exc:
            raise ArchiveFormatError(f"Section length unreadable at {offset}: {exc}") from exc
        start = offset + prefix_len
        end = start + section_len
        if section_len == 0 or end > len(view):
            raise ArchiveFormatError(f"Section at {offset} exceeds input.")
        cid_len = _cid_length(view[start:end])
        try:
            cid = CID.decode(bytes(view[start:start + cid_len]))
        except DECODE_ERRORS as exc:
            raise ArchiveFormatError(f"Section at {offset} has an invalid CID: {exc}") from exc
        store.put(cid, bytes(view[start + cid_len:end]))
        offset = end

    return roots, store


def decode_archive(data: bytes) -> ArchivedDelegation:
    """Extract the root delegation from archive bytes.

    Raises
    ------
    ArchiveFormatError
        If the bytes are not an archive or its root is not a delegation.
    """
    roots, store = read_archive(data)
    root = roots[0]
    block = store.get(root)
    if block is None:
        raise ArchiveFormatError(f"Root block {root} is missing from the archive.")
    try:
        value = dag_cbor.decode(block)
    except DECODE_ERRORS as exc:
        raise ArchiveFormatError(f"Root block is not DAG-CBOR: {exc}") from exc

    target = _variant_target(value)
    if target is not None:
        delegation = load_delegation(store, target)
        if delegation is None:
            raise ArchiveFormatError(f"Variant root points at missing delegation {target}.")
        return delegation

    if _looks_like_delegation(value):
        return ArchivedDelegation(cid=root, data=value, store=store)
    raise ArchiveFormatError("Archive root is neither a delegation nor a variant.")


def unpack_varsig(value: object) -> tuple[str, bytes]:
    """Split a varsig-encoded signature into ``(algorithm, raw bytes)``.

    Bytes that do not parse as varsig are returned whole with algorithm
    ``"EdDSA"`` when 64 bytes long and ``"unknown"`` otherwise.
    """
    if not isinstance(value, (bytes, bytearray)) or not value:
        return "unknown", b""
    raw = bytes(value)
    try:
        code, code_len, _ = varint.decode_raw(raw)
        size, size_len, _ = varint.decode_raw(raw[code_len:])
    except ValueError:
        return _fallback_algorithm(raw), raw
    body = raw[code_len + size_len:]
    if code not in _VARSIG_ALGORITHMS or len(body) != size:
        return _fallback_algorithm(raw), raw
    return _VARSIG_ALGORITHMS[code], body


def _fallback_algorithm(raw: bytes) -> str:
    return "EdDSA" if len(raw) == 64 else "unknown"


def _variant_target(value: object) -> Optional[CID]:
    if not isinstance(value, dict) or len(value) != 1:
        return None
    key, target = next(iter(value.items()))
    if isinstance(key, str) and key.startswith(_VARIANT_PREFIX) and isinstance(target, CID):
        return target
    return None


def _looks_like_delegation(value: object) -> bool:
    return isinstance(value, dict) and ("iss" in value or "aud" in value)


def _cid_length(section: memoryview) -> int:
    """Return the byte length of the CID at the start of *section*."""
    # CIDv0 is a bare sha2-256 multihash: 0x12 0x20 + 32 digest bytes.
    if len(section) >= 2 and section[0] == 0x12 and section[1] == 0x20:
        return 34
    try:
        offset = 0
        for _ in range(3):  # version, codec, multihash code
            _, read, _ = varint.decode_raw(section[offset:])
            offset += read
        digest_len, read, _ = varint.decode_raw(section[offset:])
    except ValueError as exc:
        raise ArchiveFormatError(f"Section CID unreadable: {exc}") from exc
    length = offset + read + digest_len
    if length > len(section):
        raise ArchiveFormatError("Section CID exceeds section length.")
    return length


def _seconds(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return int(value)


__all__ = [
    "ArchiveFormatError",
    "ArchivedDelegation",
    "BlockStore",
    "DECODE_ERRORS",
    "decode_archive",
    "link_text",
    "load_delegation",
    "read_archive",
    "unpack_varsig",
]
