"""Shared fixtures: principals with real Ed25519 keys and token builders.

Every builder produces bytes in one of the three wire encodings so tests
exercise the same decoding path a caller would.
"""
from __future__ import annotations

import base64
import json
import time
from dataclasses import dataclass
from typing import Optional

import dag_cbor
import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from multiformats import CID, multihash, varint

from ucan_inspect.did.did_key import ED25519_PUB, public_key_to_did

EDDSA_VARSIG: int = 0xD0ED
DAY: int = 24 * 60 * 60


# ---------------------------------------------------------------------------
# Principals
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Principal:
    """An Ed25519 key pair with its did:key."""

    private_key: Ed25519PrivateKey
    public_key: bytes
    did: str

    @classmethod
    def generate(cls) -> "Principal":
        private_key = Ed25519PrivateKey.generate()
        public_key = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        return cls(private_key, public_key, public_key_to_did(ED25519_PUB, public_key))

    @property
    def principal_bytes(self) -> bytes:
        """Multicodec-prefixed key, the form archived delegations store."""
        return varint.encode(ED25519_PUB) + self.public_key

    def sign(self, data: bytes) -> bytes:
        return self.private_key.sign(data)


# ---------------------------------------------------------------------------
# Token builders
# ---------------------------------------------------------------------------


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def block_cid(block: bytes) -> CID:
    return CID("base32", 1, "dag-cbor", multihash.digest(block, "sha2-256"))


def car_bytes(roots: list[CID], blocks: list[tuple[CID, bytes]]) -> bytes:
    header = dag_cbor.encode({"version": 1, "roots": roots})
    out = bytearray(varint.encode(len(header)) + header)
    for cid, block in blocks:
        section = bytes(cid) + block
        out += varint.encode(len(section)) + section
    return bytes(out)


class TokenFactory:
    """Mint tokens in every supported encoding."""

    def __init__(self) -> None:
        self.now = int(time.time())

    def capability(
        self,
        resource: str = "storage:alice/photos",
        ability: str = "store/add",
        caveats: Optional[dict] = None,
    ) -> dict:
        return {"with": resource, "can": ability, "nb": caveats or {}}

    # -- compact -----------------------------------------------------------

    def jwt(
        self,
        issuer: Principal,
        audience: Principal,
        capabilities: Optional[list[dict]] = None,
        expiration: Optional[int] = None,
        **extra: object,
    ) -> bytes:
        header = {"alg": "EdDSA", "typ": "JWT", "ucv": "0.9.1"}
        payload: dict[str, object] = {
            "iss": issuer.did,
            "aud": audience.did,
            "att": capabilities if capabilities is not None else [self.capability()],
            "exp": expiration if expiration is not None else self.now + 2 * DAY,
            "prf": [],
        }
        payload.update(extra)
        signing_input = (
            f"{_b64url(json.dumps(header).encode())}.{_b64url(json.dumps(payload).encode())}"
        )
        signature = issuer.sign(signing_input.encode("ascii"))
        return f"{signing_input}.{_b64url(signature)}".encode("ascii")

    # -- raw block ---------------------------------------------------------

    def legacy_block(self, issuer: Principal, audience: Principal) -> bytes:
        payload = {
            "iss": issuer.did,
            "aud": audience.did,
            "att": [self.capability()],
            "exp": self.now + 2 * DAY,
        }
        signature = issuer.sign(dag_cbor.encode(payload))
        return dag_cbor.encode([{"alg": "EdDSA", "typ": "JWT"}, payload, signature])

    def modern_block(
        self,
        issuer: Principal,
        audience: Principal,
        command: str = "/store/add",
        subject: Optional[str] = None,
        policy: Optional[list] = None,
    ) -> bytes:
        payload = {
            "iss": issuer.did,
            "aud": audience.did,
            "sub": subject if subject is not None else issuer.did,
            "cmd": command,
            "pol": policy if policy is not None else [],
            "nonce": b"\x01\x02\x03\x04",
            "exp": self.now + 2 * DAY,
        }
        envelope = {"h": b"\x34\xed\x01\xed\x01\x13", "ucan/dlg@1.0.0-rc.1": payload}
        signature = issuer.sign(dag_cbor.encode(envelope))
        return dag_cbor.encode([signature, envelope])

    # -- archive -----------------------------------------------------------

    def delegation_block(
        self,
        issuer: Principal,
        audience: Principal,
        capabilities: Optional[list[dict]] = None,
        proofs: Optional[list[CID]] = None,
        expiration: Optional[int] = None,
    ) -> tuple[CID, bytes]:
        data = {
            "v": "0.9.1",
            "iss": issuer.principal_bytes,
            "aud": audience.principal_bytes,
            "att": capabilities if capabilities is not None else [self.capability()],
            "prf": proofs or [],
            "exp": expiration,
        }
        unsigned = dag_cbor.encode(data)
        signature = issuer.sign(unsigned)
        data["s"] = varint.encode(EDDSA_VARSIG) + varint.encode(len(signature)) + signature
        block = dag_cbor.encode(data)
        return block_cid(block), block

    def archive(
        self, root: tuple[CID, bytes], *proofs: tuple[CID, bytes], variant: bool = True
    ) -> bytes:
        blocks = [root, *proofs]
        if not variant:
            return car_bytes([root[0]], blocks)
        variant_block = dag_cbor.encode({"ucan@0.9.1": root[0]})
        variant_cid = block_cid(variant_block)
        return car_bytes([variant_cid], [(variant_cid, variant_block), *blocks])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def factory() -> TokenFactory:
    return TokenFactory()


@pytest.fixture()
def alice() -> Principal:
    return Principal.generate()


@pytest.fixture()
def bob() -> Principal:
    return Principal.generate()


@pytest.fixture()
def carol() -> Principal:
    return Principal.generate()


@pytest.fixture()
def delegation_chain(
    factory: TokenFactory, alice: Principal, bob: Principal, carol: Principal
) -> dict[str, object]:
    """Archive holding Bob -> Carol, which cites Alice -> Bob as proof."""
    expiration = factory.now + 2 * DAY
    parent = factory.delegation_block(
        alice,
        bob,
        capabilities=[factory.capability("storage:*", "store/*", {"size": 1024})],
        expiration=expiration,
    )
    child = factory.delegation_block(
        bob,
        carol,
        capabilities=[factory.capability("storage:alice/photos", "store/add", {"size": 512})],
        proofs=[parent[0]],
        expiration=expiration,
    )
    return {
        "archive": factory.archive(child, parent),
        "parent_cid": str(parent[0]),
        "child_cid": str(child[0]),
    }
