"""Value — the loosely-typed tree used for caveats, facts and policies.

Decoders hand back library-native nodes (``dag_cbor`` maps and lists,
``multiformats.CID`` links, JSON objects). Everything past the decoder
boundary works on the plain :data:`Value` union produced here, so core
logic never inspects a concrete decoding-library type.

Conversion never raises: a node of an unknown kind becomes ``None``.
"""
from __future__ import annotations

import base64
from typing import Union

from multiformats import CID

Value = Union[None, bool, int, float, str, bytes, list["Value"], dict[str, "Value"]]

# Nesting beyond this depth is truncated to ``None``.
_MAX_DEPTH = 64


def to_value(node: object, _depth: int = 0) -> Value:
    """Deep-copy *node* into a :data:`Value` tree.

    Parameters
    ----------
    node:
        Any object returned by a decoder.

    Returns
    -------
    Value
        ``CID`` links are rendered as their string form, tuples become lists,
        map keys are coerced to ``str``. Unknown kinds map to ``None``.
    """
    if _depth > _MAX_DEPTH:
        return None
    if node is None or isinstance(node, (bool, int, float, str)):
        return node
    if isinstance(node, (bytes, bytearray, memoryview)):
        return bytes(node)
    if isinstance(node, CID):
        return cid_text(node)
    if isinstance(node, (list, tuple)):
        return [to_value(item, _depth + 1) for item in node]
    if isinstance(node, dict):
        return {str(key): to_value(item, _depth + 1) for key, item in node.items()}
    return None


def cid_text(cid: CID) -> str:
    """Render *cid* in its canonical text form.

    CIDv1 uses base32 (``bafy...``) regardless of the multibase it was decoded
    with; CIDv0 has no multibase prefix and stays base58btc (``Qm...``).
    """
    if cid.version == 0:
        return str(cid)
    return cid.encode("base32")


def to_map(node: object) -> dict[str, Value]:
    """Convert *node* to a map, returning ``{}`` when it is not a map."""
    converted = to_value(node)
    if isinstance(converted, dict):
        return converted
    return {}


def to_json_value(value: Value) -> object:
    """Render *value* as JSON-compatible data.

    Byte strings use the DAG-JSON convention ``{"/": {"bytes": "<base64>"}}``.
    """
    if isinstance(value, bytes):
        encoded = base64.b64encode(value).decode("ascii").rstrip("=")
        return {"/": {"bytes": encoded}}
    if isinstance(value, list):
        return [to_json_value(item) for item in value]
    if isinstance(value, dict):
        return {key: to_json_value(item) for key, item in value.items()}
    return value


def is_number(value: Value) -> bool:
    """Return True for ints and floats, excluding booleans."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


__all__ = ["Value", "cid_text", "is_number", "to_json_value", "to_map", "to_value"]
