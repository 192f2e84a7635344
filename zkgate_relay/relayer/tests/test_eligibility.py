"""Tests for eligibility bundle checks."""

from __future__ import annotations

import pytest

from zkgate_relay.errors import (
    EligibilityVerificationError,
    ErrorCodes,
    ProofVerificationError,
)
from zkgate_relay.relayer.eligibility import EligibilityVerifier, parse_bundle


def _entry(kind: str = "min_balance", **overrides) -> dict:
    entry = {"type": kind, "proof": [1, 2, 3], "publicInputs": [4, 5]}
    entry.update(overrides)
    return entry


def test_parse_bundle_maps_type_to_circuit() -> None:
    bundle = parse_bundle(_entry("exclusion"))
    assert bundle.circuit == "smt_exclusion"
    assert bundle.proof == b"\x01\x02\x03"
    assert bundle.public_inputs == b"\x04\x05"


@pytest.mark.parametrize(
    "entry",
    [
        "not-a-dict",
        _entry("unknown"),
        _entry(["min_balance"]),
        _entry(proof=[]),
        _entry(publicInputs=[300]),
        _entry(proof=None),
    ],
)
def test_parse_bundle_rejects_malformed(entry) -> None:
    with pytest.raises(EligibilityVerificationError) as excinfo:
        parse_bundle(entry)
    assert excinfo.value.status == 400


def test_shape_only_without_callback() -> None:
    bundles = EligibilityVerifier().verify([_entry(), _entry("token_holder")])
    assert [b.circuit for b in bundles] == ["min_balance", "token_holder"]


def test_required_but_empty() -> None:
    with pytest.raises(EligibilityVerificationError) as excinfo:
        EligibilityVerifier().verify([], require=True)
    assert excinfo.value.message == "Eligibility proofs required"


def test_not_required_and_empty() -> None:
    assert EligibilityVerifier().verify(None) == []


def test_callback_receives_each_bundle() -> None:
    seen = []

    def verifier(circuit, proof, public_inputs) -> bool:
        seen.append((circuit, proof, public_inputs))
        return True

    EligibilityVerifier(verifier).verify([_entry(), _entry("exclusion")])
    assert seen == [
        ("min_balance", b"\x01\x02\x03", b"\x04\x05"),
        ("smt_exclusion", b"\x01\x02\x03", b"\x04\x05"),
    ]


def test_rejected_proof_fails() -> None:
    with pytest.raises(EligibilityVerificationError) as excinfo:
        EligibilityVerifier(lambda *args: False).verify([_entry()])
    assert excinfo.value.message == "Eligibility proof verification failed"
    assert excinfo.value.code == ErrorCodes.ELIGIBILITY_VERIFICATION_FAILED


def test_verifier_error_is_wrapped() -> None:
    def verifier(circuit, proof, public_inputs) -> bool:
        raise ProofVerificationError(f"Verifying key not found for {circuit}")

    with pytest.raises(EligibilityVerificationError) as excinfo:
        EligibilityVerifier(verifier).verify([_entry()])
    assert excinfo.value.message == "Verifying key not found for min_balance"
    assert excinfo.value.details == ErrorCodes.PROOF_VERIFICATION_FAILED
