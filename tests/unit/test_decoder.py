"""Tests for ucan_inspect.decoding — format detection and claim extraction."""
from __future__ import annotations

import base64
import json
import random

import dag_cbor
import pytest
from multiformats import CID

from ucan_inspect.config import InspectorConfig
from ucan_inspect.decoding import (
    ArchivedDelegation,
    CanonicalClaims,
    DecodeError,
    DecodeErrorKind,
    TokenDecoder,
    TokenFormat,
    normalize_token,
)
from ucan_inspect.decoding.archive import BlockStore, unpack_varsig
from ucan_inspect.decoding.claims import extract_claims, parse_capabilities

from conftest import Principal, TokenFactory


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


@pytest.fixture()
def decoder() -> TokenDecoder:
    return TokenDecoder()


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------


class TestArchiveDecoding:
    def test_variant_root_resolves_to_delegation(
        self, decoder: TokenDecoder, factory: TokenFactory, alice: Principal, bob: Principal
    ) -> None:
        root = factory.delegation_block(alice, bob)
        decoded = decoder.decode(factory.archive(root))
        assert isinstance(decoded, ArchivedDelegation)
        assert decoded.token_format is TokenFormat.ARCHIVE
        assert decoded.content_id == str(root[0])
        assert decoded.issuer == alice.did
        assert decoded.audience == bob.did

    def test_direct_delegation_root(
        self, decoder: TokenDecoder, factory: TokenFactory, alice: Principal, bob: Principal
    ) -> None:
        root = factory.delegation_block(alice, bob)
        decoded = decoder.decode(factory.archive(root, variant=False))
        assert isinstance(decoded, ArchivedDelegation)
        assert decoded.version == "0.9.1"

    def test_accessors_normalize_fields(
        self, decoder: TokenDecoder, factory: TokenFactory, alice: Principal, bob: Principal
    ) -> None:
        root = factory.delegation_block(alice, bob)
        decoded = decoder.decode(factory.archive(root))
        assert isinstance(decoded, ArchivedDelegation)
        assert decoded.expiration == 0
        assert decoded.nonce == ""
        assert decoded.proofs == []
        algorithm, raw = decoded.signature
        assert algorithm == "EdDSA"
        assert len(raw) == 64
        [capability] = decoded.capabilities
        assert capability.resource == "storage:alice/photos"
        assert capability.ability == "store/add"

    def test_block_store_holds_every_block(
        self, decoder: TokenDecoder, delegation_chain: dict
    ) -> None:
        decoded = decoder.decode(delegation_chain["archive"])
        assert isinstance(decoded, ArchivedDelegation)
        assert len(decoded.store) == 3
        assert delegation_chain["parent_cid"] in decoded.store
        proof = decoded.view(delegation_chain["parent_cid"])
        assert proof is not None
        assert proof.content_id == delegation_chain["parent_cid"]

    def test_content_ids_use_canonical_base32(
        self, decoder: TokenDecoder, delegation_chain: dict
    ) -> None:
        decoded = decoder.decode(delegation_chain["archive"])
        assert isinstance(decoded, ArchivedDelegation)
        assert decoded.content_id.startswith("bafy")
        assert decoded.content_id == delegation_chain["child_cid"]
        assert decoded.proofs == [delegation_chain["parent_cid"]]

    def test_store_lookup_accepts_any_multibase(
        self, decoder: TokenDecoder, delegation_chain: dict
    ) -> None:
        decoded = decoder.decode(delegation_chain["archive"])
        assert isinstance(decoded, ArchivedDelegation)
        base58 = CID.decode(delegation_chain["parent_cid"]).encode("base58btc")
        assert base58.startswith("z")
        proof = decoded.view(base58)
        assert proof is not None
        assert proof.content_id == delegation_chain["parent_cid"]

    def test_non_finite_timestamps_are_absent(self) -> None:
        delegation = ArchivedDelegation(
            cid=CID.decode(b"\x12\x20" + b"\x00" * 32),
            data={"iss": "did:a", "exp": float("inf"), "nbf": float("nan")},
            store=BlockStore(),
        )
        assert delegation.expiration == 0
        assert delegation.not_before == 0


class TestUnpackVarsig:
    def test_eddsa_varsig(self) -> None:
        raw = bytes(range(64))
        assert unpack_varsig(b"\xed\xa1\x03\x40" + raw) == ("EdDSA", raw)

    def test_bare_64_bytes_assumed_eddsa(self) -> None:
        raw = b"\xff" * 64
        assert unpack_varsig(raw) == ("EdDSA", raw)

    def test_missing_signature(self) -> None:
        assert unpack_varsig(None) == ("unknown", b"")


# ---------------------------------------------------------------------------
# Raw block
# ---------------------------------------------------------------------------


class TestBlockDecoding:
    def test_legacy_array(
        self, decoder: TokenDecoder, factory: TokenFactory, alice: Principal, bob: Principal
    ) -> None:
        decoded = decoder.decode(factory.legacy_block(alice, bob))
        assert isinstance(decoded, CanonicalClaims)
        assert decoded.token_format is TokenFormat.BLOCK
        assert decoded.issuer == alice.did
        assert decoded.header == {"alg": "EdDSA", "typ": "JWT"}
        assert len(decoded.signature) == 64
        assert len(decoded.capabilities) == 1

    def test_version_wrapper_with_modern_fields(
        self, decoder: TokenDecoder, factory: TokenFactory, alice: Principal, bob: Principal
    ) -> None:
        decoded = decoder.decode(factory.modern_block(alice, bob, policy=[["==", ".x", 1]]))
        assert isinstance(decoded, CanonicalClaims)
        [capability] = decoded.capabilities
        assert capability.ability == "/store/add"
        assert capability.resource == alice.did
        assert capability.caveats == {"policy": [["==", ".x", 1]]}
        assert decoded.nonce == "AQIDBA"
        assert decoded.signing_input is not None

    def test_signature_found_regardless_of_position(
        self, decoder: TokenDecoder, alice: Principal, bob: Principal
    ) -> None:
        signature = b"\x07" * 64
        payload = {"iss": alice.did, "aud": bob.did}
        decoded = decoder.decode(dag_cbor.encode([signature, payload]))
        assert isinstance(decoded, CanonicalClaims)
        assert decoded.signature == signature

    def test_nested_version_wrappers(
        self, decoder: TokenDecoder, alice: Principal, bob: Principal
    ) -> None:
        payload = {"iss": alice.did, "aud": bob.did, "att": [{"with": "r", "can": "a/b"}]}
        wrapped = {"ucan/0.10.0": {"ucan/dlg@1.0.0": payload}}
        decoded = decoder.decode(dag_cbor.encode([wrapped, b"\x01" * 64]))
        assert isinstance(decoded, CanonicalClaims)
        assert decoded.issuer == alice.did
        assert decoded.audience == bob.did
        [capability] = decoded.capabilities
        assert capability.ability == "a/b"
        assert decoded.signature == b"\x01" * 64

    def test_array_without_principals(self, decoder: TokenDecoder) -> None:
        data = dag_cbor.encode([{"alg": "EdDSA"}, {"foo": "bar"}])
        with pytest.raises(DecodeError) as info:
            decoder.decode(data)
        assert info.value.kind is DecodeErrorKind.NO_RECOGNIZABLE_CLAIMS


# ---------------------------------------------------------------------------
# Compact
# ---------------------------------------------------------------------------


class TestCompactDecoding:
    def test_signed_token(
        self, decoder: TokenDecoder, factory: TokenFactory, alice: Principal, bob: Principal
    ) -> None:
        token = factory.jwt(alice, bob)
        decoded = decoder.decode(token)
        assert isinstance(decoded, CanonicalClaims)
        assert decoded.token_format is TokenFormat.COMPACT
        assert decoded.header["alg"] == "EdDSA"
        assert decoded.signing_input == token.rsplit(b".", 1)[0]
        assert alice.sign(decoded.signing_input) == decoded.signature

    def test_padded_segments_tolerated(
        self, decoder: TokenDecoder, alice: Principal, bob: Principal
    ) -> None:
        header = base64.urlsafe_b64encode(b'{"alg":"none"}').decode()
        payload = base64.urlsafe_b64encode(
            json.dumps({"iss": alice.did, "aud": bob.did}).encode()
        ).decode()
        decoded = decoder.decode(f"{header}.{payload}.".encode())
        assert isinstance(decoded, CanonicalClaims)
        assert decoded.signature == b""

    def test_malformed_segment(self, decoder: TokenDecoder) -> None:
        with pytest.raises(DecodeError) as info:
            decoder.decode(b"e30.!!!.sig")
        assert info.value.kind is DecodeErrorKind.MALFORMED_SEGMENT

    def test_non_finite_timestamps_are_absent(
        self, decoder: TokenDecoder, alice: Principal, bob: Principal
    ) -> None:
        header = b64url(b'{"alg":"EdDSA"}')
        payload = b64url(
            f'{{"iss":"{alice.did}","aud":"{bob.did}","exp":1e400,"nbf":NaN}}'.encode()
        )
        decoded = decoder.decode(f"{header}.{payload}.".encode())
        assert isinstance(decoded, CanonicalClaims)
        assert decoded.expiration is None
        assert decoded.not_before is None

    def test_payload_without_principals(self, decoder: TokenDecoder) -> None:
        header = b64url(b"{}")
        payload = b64url(json.dumps({"exp": 1}).encode())
        token = f"{header}.{payload}.".encode()
        with pytest.raises(DecodeError) as info:
            decoder.decode(token)
        assert info.value.kind is DecodeErrorKind.NO_RECOGNIZABLE_CLAIMS


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


class TestDetection:
    @pytest.mark.parametrize(
        "data",
        [b"not a token at all", b"\xff\x00\x13garbage", b"a.b", b"\x00"],
    )
    def test_garbage_is_unrecognized(self, decoder: TokenDecoder, data: bytes) -> None:
        with pytest.raises(DecodeError) as info:
            decoder.decode(data)
        assert info.value.kind is DecodeErrorKind.UNRECOGNIZED_FORMAT

    def test_oversized_cbor_head_is_unrecognized(self, decoder: TokenDecoder) -> None:
        # Text string head announcing an 8-byte length.
        with pytest.raises(DecodeError) as info:
            decoder.decode(bytes.fromhex("7bd7cdd9c4555de34a2827d9cb61"))
        assert info.value.kind is DecodeErrorKind.UNRECOGNIZED_FORMAT

    def test_empty_cid_link_is_unrecognized(self, decoder: TokenDecoder) -> None:
        # Tag 42 wrapping an empty byte string.
        with pytest.raises(DecodeError) as info:
            decoder.decode(bytes.fromhex("81d82a40"))
        assert info.value.kind is DecodeErrorKind.UNRECOGNIZED_FORMAT

    def test_random_bytes_never_escape(self, decoder: TokenDecoder) -> None:
        rng = random.Random(1234)
        for _ in range(2000):
            data = bytes(rng.getrandbits(8) for _ in range(rng.randint(1, 48)))
            try:
                decoder.decode(data)
            except DecodeError:
                pass

    def test_empty_input(self, decoder: TokenDecoder) -> None:
        with pytest.raises(DecodeError) as info:
            decoder.decode(b"")
        assert info.value.kind is DecodeErrorKind.UNRECOGNIZED_FORMAT

    def test_input_too_large(self) -> None:
        decoder = TokenDecoder(InspectorConfig(max_input_bytes=8))
        with pytest.raises(DecodeError) as info:
            decoder.decode(b"x" * 9)
        assert info.value.kind is DecodeErrorKind.INPUT_TOO_LARGE

    def test_format_hint_runs_one_strategy(
        self, decoder: TokenDecoder, factory: TokenFactory, alice: Principal, bob: Principal
    ) -> None:
        token = factory.jwt(alice, bob)
        with pytest.raises(DecodeError):
            decoder.decode(token, TokenFormat.ARCHIVE)
        assert isinstance(decoder.decode(token, TokenFormat.COMPACT), CanonicalClaims)

    def test_error_message_names_kind(self, decoder: TokenDecoder) -> None:
        with pytest.raises(DecodeError, match="unrecognized_format"):
            decoder.decode(b"garbage")


class TestNormalizeToken:
    def test_hex(self) -> None:
        assert normalize_token(b"0x0a0b") == [b"\x0a\x0b"]
        assert normalize_token(b"0a0b0c\n") == [b"\x0a\x0b\x0c"]

    def test_base64(self) -> None:
        assert normalize_token(base64.b64encode(b"\x00\x01\x02")) == [b"\x00\x01\x02"]

    def test_base64_of_hex_digits_tried_first(self) -> None:
        assert normalize_token(b"AAEC") == [b"\x00\x01\x02", b"\xaa\xec"]

    def test_ambiguous_hex_keeps_both_readings(self) -> None:
        candidates = normalize_token(b"0a0b")
        assert candidates[0] == base64.b64decode(b"0a0b")
        assert candidates[-1] == b"\x0a\x0b"

    def test_compact_tokens_pass_through(self) -> None:
        assert normalize_token(b"e30.e30.") == []

    def test_plain_text(self) -> None:
        assert normalize_token(b"hello world") == []


# ---------------------------------------------------------------------------
# Claim extraction
# ---------------------------------------------------------------------------


class TestExtractClaims:
    def test_zero_timestamps_are_absent(self) -> None:
        fields = extract_claims({"iss": "did:a", "exp": 0, "nbf": 0})
        assert fields.expiration is None
        assert fields.not_before is None

    def test_non_finite_timestamps_are_absent(self) -> None:
        fields = extract_claims({"iss": "did:a", "exp": float("inf"), "nbf": float("nan")})
        assert fields.expiration is None
        assert fields.not_before is None

    def test_synthesis_is_order_independent(self) -> None:
        forward = extract_claims({"cmd": "/x", "sub": "did:s", "pol": [], "iss": "did:a"})
        backward = extract_claims({"iss": "did:a", "pol": [], "sub": "did:s", "cmd": "/x"})
        assert forward.capabilities == backward.capabilities
        assert len(forward.capabilities) == 1

    def test_att_wins_over_cmd(self) -> None:
        fields = extract_claims(
            {"iss": "did:a", "cmd": "/x", "att": [{"with": "r", "can": "a/b"}]}
        )
        [capability] = fields.capabilities
        assert capability.ability == "a/b"

    def test_null_subject_becomes_empty_resource(self) -> None:
        fields = extract_claims({"iss": "did:a", "cmd": "/x", "sub": None})
        assert fields.capabilities[0].resource == ""

    def test_meta_recorded_as_fact(self) -> None:
        fields = extract_claims({"iss": "did:a", "meta": {"k": "v"}})
        assert fields.facts == [{"meta": {"k": "v"}}]

    def test_malformed_fields_skipped(self) -> None:
        fields = extract_claims({"iss": "did:a", "exp": "soon", "prf": "x", "att": 5})
        assert fields.expiration is None
        assert fields.proofs == []
        assert fields.capabilities == []


class TestParseCapabilities:
    def test_list_form(self) -> None:
        [cap] = parse_capabilities([{"with": "r", "can": "a", "nb": {"n": 1}}, "junk"])
        assert (cap.resource, cap.ability, cap.caveats) == ("r", "a", {"n": 1})

    def test_resource_map_form(self) -> None:
        caps = parse_capabilities({"r": {"a/x": [{"n": 1}, {"n": 2}], "a/y": []}})
        assert [(c.ability, c.caveats) for c in caps] == [
            ("a/x", {"n": 1}),
            ("a/x", {"n": 2}),
            ("a/y", {}),
        ]
