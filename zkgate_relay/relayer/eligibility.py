"""Eligibility verifier for proofs attached to relay requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from ..errors import EligibilityVerificationError, ZkGateError
from ..proving.service import coerce_bytes
from .constants import ELIGIBILITY_CIRCUITS

logger = logging.getLogger(__name__)

ProofVerifier = Callable[[str, bytes, bytes], bool]


@dataclass(frozen=True)
class EligibilityBundle:
    type: str
    circuit: str
    proof: bytes
    public_inputs: bytes


def parse_bundle(entry: Any) -> EligibilityBundle:
    if not isinstance(entry, dict):
        raise EligibilityVerificationError("Invalid eligibility proof")
    kind = entry.get("type")
    circuit = ELIGIBILITY_CIRCUITS.get(kind) if isinstance(kind, str) else None
    if circuit is None:
        raise EligibilityVerificationError(
            "Invalid eligibility proof", f"unknown type: {entry.get('type')!r}"
        )
    try:
        proof = coerce_bytes(entry.get("proof"), "proof")
        public_inputs = coerce_bytes(entry.get("publicInputs"), "publicInputs")
    except ZkGateError as exc:
        raise EligibilityVerificationError("Invalid eligibility proof", exc.details) from exc
    return EligibilityBundle(
        type=entry["type"], circuit=circuit, proof=proof, public_inputs=public_inputs
    )


class EligibilityVerifier:
    """
    Validate eligibility bundles before a relay is attempted.

    Without a verifier callback only the shape of each bundle is checked. With
    one, every bundle is also verified against its circuit's verifying key and
    any failure is reported as an eligibility failure.
    """

    def __init__(self, verifier: Optional[ProofVerifier] = None) -> None:
        self._verifier = verifier

    def verify(
        self, entries: Iterable[Any], require: bool = False
    ) -> list[EligibilityBundle]:
        bundles = [parse_bundle(entry) for entry in entries or []]
        if require and not bundles:
            raise EligibilityVerificationError("Eligibility proofs required")
        if self._verifier is None:
            return bundles

        for bundle in bundles:
            try:
                verified = self._verifier(bundle.circuit, bundle.proof, bundle.public_inputs)
            except ZkGateError as exc:
                logger.warning("Eligibility check for %s failed: %s", bundle.type, exc)
                raise EligibilityVerificationError(exc.message, exc.code) from exc
            if not verified:
                raise EligibilityVerificationError(
                    "Eligibility proof verification failed", bundle.type
                )
        logger.info("Verified %d eligibility proof(s)", len(bundles))
        return bundles
