"""Tests for ucan_inspect.chain — ChainResolver and describe_chain."""
from __future__ import annotations

import logging

import pytest
from multiformats import CID, multihash

from ucan_inspect.chain import (
    ChainResolver,
    PrincipalRole,
    ResolveError,
    ResolveErrorKind,
    describe_chain,
)
from ucan_inspect.config import InspectorConfig
from ucan_inspect.decoding import TokenDecoder
from ucan_inspect.delegation import DelegationLink

from conftest import Principal, TokenFactory


@pytest.fixture()
def resolver() -> ChainResolver:
    return ChainResolver()


def missing_cid() -> CID:
    return CID("base32", 1, "dag-cbor", multihash.digest(b"not stored", "sha2-256"))


class TestChainResolution:
    def test_two_link_chain(self, resolver: ChainResolver, delegation_chain: dict) -> None:
        chain = resolver.resolve(delegation_chain["archive"])
        assert [link.content_id for link in chain] == [
            delegation_chain["child_cid"],
            delegation_chain["parent_cid"],
        ]
        assert chain[1].level > chain[0].level
        assert [link.level for link in chain] == [0, 1]

    def test_accepts_decoded_token(
        self, resolver: ChainResolver, delegation_chain: dict
    ) -> None:
        decoded = TokenDecoder().decode(delegation_chain["archive"])
        assert len(resolver.resolve(decoded)) == 2

    def test_discovery_order(
        self,
        resolver: ChainResolver,
        factory: TokenFactory,
        alice: Principal,
        bob: Principal,
        carol: Principal,
    ) -> None:
        # root cites [p1, p2]; p1 cites [p1a]. Expected order: root, p1, p1a, p2.
        p1a = factory.delegation_block(alice, bob)
        p1 = factory.delegation_block(alice, bob, proofs=[p1a[0]])
        p2 = factory.delegation_block(carol, bob)
        root = factory.delegation_block(bob, carol, proofs=[p1[0], p2[0]])
        chain = resolver.resolve(factory.archive(root, p2, p1a, p1))
        assert [link.content_id for link in chain] == [
            str(root[0]),
            str(p1[0]),
            str(p1a[0]),
            str(p2[0]),
        ]
        assert [link.level for link in chain] == [0, 1, 2, 1]

    def test_missing_proof_dropped(
        self,
        resolver: ChainResolver,
        factory: TokenFactory,
        alice: Principal,
        bob: Principal,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        root = factory.delegation_block(alice, bob, proofs=[missing_cid()])
        with caplog.at_level(logging.DEBUG, logger="ucan_inspect.chain.resolver"):
            chain = resolver.resolve(factory.archive(root))
        assert len(chain) == 1
        assert chain[0].content_id == str(root[0])
        assert "Dropping unresolvable proof" in caplog.text

    def test_compact_token_is_single_link(
        self, resolver: ChainResolver, factory: TokenFactory, alice: Principal, bob: Principal
    ) -> None:
        chain = resolver.resolve(factory.jwt(alice, bob, prf=["bafyproof"]))
        assert len(chain) == 1
        assert chain[0].level == 0
        assert chain[0].proofs[0].content_id == "bafyproof"

    def test_link_passes_through(self, resolver: ChainResolver) -> None:
        link = DelegationLink(
            issuer="did:a", audience="did:b", capabilities=(), proofs=(), content_id="c"
        )
        assert resolver.resolve(link) == [link]


class TestChainLimits:
    def build_linear_chain(
        self, factory: TokenFactory, principal: Principal, length: int
    ) -> bytes:
        blocks = [factory.delegation_block(principal, principal)]
        for _ in range(length - 1):
            blocks.append(factory.delegation_block(principal, principal, proofs=[blocks[-1][0]]))
        return factory.archive(blocks[-1], *blocks[:-1])

    def test_chain_too_deep(self, factory: TokenFactory, alice: Principal) -> None:
        resolver = ChainResolver(InspectorConfig(max_chain_depth=2))
        with pytest.raises(ResolveError) as info:
            resolver.resolve(self.build_linear_chain(factory, alice, 4))
        assert info.value.kind is ResolveErrorKind.CHAIN_TOO_DEEP

    def test_depth_at_limit_allowed(self, factory: TokenFactory, alice: Principal) -> None:
        resolver = ChainResolver(InspectorConfig(max_chain_depth=2))
        chain = resolver.resolve(self.build_linear_chain(factory, alice, 3))
        assert [link.level for link in chain] == [0, 1, 2]

    def test_chain_too_large(
        self, factory: TokenFactory, alice: Principal, bob: Principal
    ) -> None:
        shared = factory.delegation_block(alice, bob)
        middle = [
            factory.delegation_block(alice, bob, proofs=[shared[0]], expiration=factory.now + i)
            for i in range(1, 4)
        ]
        root = factory.delegation_block(bob, alice, proofs=[m[0] for m in middle])
        resolver = ChainResolver(InspectorConfig(max_chain_links=5))
        with pytest.raises(ResolveError) as info:
            resolver.resolve(factory.archive(root, shared, *middle))
        assert info.value.kind is ResolveErrorKind.CHAIN_TOO_LARGE


class TestDescribeChain:
    def test_two_link_chain(
        self,
        resolver: ChainResolver,
        delegation_chain: dict,
        alice: Principal,
        bob: Principal,
        carol: Principal,
    ) -> None:
        info = describe_chain(resolver.resolve(delegation_chain["archive"]))
        assert info.total_levels == 2
        assert info.root_content_id == delegation_chain["child_cid"]
        assert info.leaf_content_ids == (delegation_chain["parent_cid"],)
        assert info.is_complete is True
        roles = {p.did: p.role for p in info.principals}
        assert roles == {
            bob.did: PrincipalRole.ROOT,
            carol.did: PrincipalRole.ROOT,
            alice.did: PrincipalRole.LEAF,
        }
        assert [event.type for event in info.timeline] == ["expires", "expires"]

    def test_unresolved_proof_marks_incomplete(
        self, resolver: ChainResolver, factory: TokenFactory, alice: Principal, bob: Principal
    ) -> None:
        root = factory.delegation_block(alice, bob, proofs=[missing_cid()])
        info = describe_chain(resolver.resolve(factory.archive(root)))
        assert info.is_complete is False

    def test_empty_chain(self) -> None:
        info = describe_chain([])
        assert info.total_levels == 0
        assert info.principals == ()
