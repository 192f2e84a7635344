"""CBOR proof bundle tests."""

from __future__ import annotations

import cbor2
import pytest

from zkgate_relay.proving.bundle import (
    BUNDLE_MAX_BYTES,
    BundleError,
    ProofBundle,
    SizeLimitError,
    decode_bundle,
    encode_bundle,
)
from zkgate_relay.proving.constants import BUNDLE_V, MAX_META_BYTES, MAX_PROOF_BYTES
from zkgate_relay.proving.pipeline import ProofResult


def _bundle(**overrides) -> ProofBundle:
    values = dict(
        v=BUNDLE_V,
        circuit="min_balance",
        proof=b"\x01" * 256,
        public_inputs=b"\x00" * 76,
        meta={"threshold": "100"},
    )
    values.update(overrides)
    return ProofBundle(**values)


def test_bundle_from_result() -> None:
    result = ProofResult("min_balance", b"p", b"w", {"proofSize": 1})
    bundle = ProofBundle.from_result(result)
    assert decode_bundle(encode_bundle(bundle)) == bundle


def test_meta_is_nested_cbor() -> None:
    payload = cbor2.loads(encode_bundle(_bundle()))
    assert isinstance(payload["meta"], bytes)
    assert cbor2.loads(payload["meta"]) == {"threshold": "100"}


def test_rejects_unknown_version() -> None:
    with pytest.raises(BundleError):
        encode_bundle(_bundle(v=BUNDLE_V + 1))


def test_rejects_empty_proof() -> None:
    with pytest.raises(BundleError):
        encode_bundle(_bundle(proof=b""))


def test_rejects_oversized_proof() -> None:
    with pytest.raises(SizeLimitError):
        encode_bundle(_bundle(proof=b"\x01" * (MAX_PROOF_BYTES + 1)))


def test_rejects_oversized_meta() -> None:
    with pytest.raises(SizeLimitError):
        encode_bundle(_bundle(meta={"blob": "x" * MAX_META_BYTES}))


def test_decode_rejects_garbage() -> None:
    with pytest.raises(BundleError):
        decode_bundle(b"\xff\xff\xff")


def test_decode_rejects_non_map() -> None:
    with pytest.raises(BundleError):
        decode_bundle(cbor2.dumps([1, 2, 3]))


def test_decode_rejects_oversized_blob() -> None:
    with pytest.raises(SizeLimitError):
        decode_bundle(b"\x00" * (BUNDLE_MAX_BYTES + 1))


def test_decode_requires_bytes_fields() -> None:
    blob = cbor2.dumps(
        {"v": BUNDLE_V, "circuit": "min_balance", "proof": "text", "public_inputs": b"x"}
    )
    with pytest.raises(BundleError):
        decode_bundle(blob)


def test_bundle_errors_are_client_errors() -> None:
    with pytest.raises(BundleError) as excinfo:
        decode_bundle(b"\xff")
    assert excinfo.value.status == 400


def test_decode_rejects_corrupt_meta() -> None:
    blob = cbor2.dumps(
        {
            "v": BUNDLE_V,
            "circuit": "min_balance",
            "proof": b"\x01" * 8,
            "public_inputs": b"\x02" * 8,
            "meta": b"\x9f\x01",
        }
    )
    with pytest.raises(BundleError, match="invalid meta encoding"):
        decode_bundle(blob)


@pytest.mark.parametrize("version", ["1", [1], None, True])
def test_decode_rejects_non_integer_version(version) -> None:
    blob = cbor2.dumps(
        {
            "v": version,
            "circuit": "min_balance",
            "proof": b"\x01" * 8,
            "public_inputs": b"\x02" * 8,
        }
    )
    with pytest.raises(BundleError):
        decode_bundle(blob)
