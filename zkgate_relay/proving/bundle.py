"""CBOR proof bundles written by ``zkgate-relay prove`` and read by ``verify``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import cbor2

from ..errors import InvalidRequestError
from .constants import BUNDLE_V, MAX_META_BYTES, MAX_PROOF_BYTES, MAX_PUBLIC_INPUTS_BYTES
from .pipeline import ProofResult

BUNDLE_OVERHEAD_BYTES = 2048
BUNDLE_MAX_BYTES = (
    MAX_PUBLIC_INPUTS_BYTES + MAX_PROOF_BYTES + MAX_META_BYTES + BUNDLE_OVERHEAD_BYTES
)


class BundleError(InvalidRequestError):
    """Raised when a bundle fails schema validation."""


class SizeLimitError(BundleError):
    """Raised when a bundle exceeds configured size limits."""


def _require_bytes(value: Any, field: str) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise BundleError(f"{field} must be bytes")
    return bytes(value)


@dataclass(frozen=True)
class ProofBundle:
    v: int
    circuit: str
    proof: bytes
    public_inputs: bytes
    meta: Dict[str, Any]

    def validate(self) -> None:
        if self.v != BUNDLE_V:
            raise BundleError("unsupported bundle version")
        if not isinstance(self.circuit, str) or not self.circuit:
            raise BundleError("circuit must be a non-empty string")
        proof = _require_bytes(self.proof, "proof")
        public_inputs = _require_bytes(self.public_inputs, "public_inputs")
        if not proof:
            raise BundleError("proof required")
        if not public_inputs:
            raise BundleError("public_inputs required")
        if len(proof) > MAX_PROOF_BYTES:
            raise SizeLimitError("proof too large")
        if len(public_inputs) > MAX_PUBLIC_INPUTS_BYTES:
            raise SizeLimitError("public_inputs too large")
        if not isinstance(self.meta, dict):
            raise BundleError("meta must be a dict")

    @classmethod
    def from_result(cls, result: ProofResult) -> "ProofBundle":
        return cls(
            v=BUNDLE_V,
            circuit=result.circuit,
            proof=result.proof,
            public_inputs=result.public_inputs,
            meta=dict(result.metadata),
        )


def _encode_meta(meta: Optional[Dict[str, Any]]) -> bytes:
    encoded = cbor2.dumps(meta or {})
    if len(encoded) > MAX_META_BYTES:
        raise SizeLimitError("meta too large")
    return encoded


def encode_bundle(bundle: ProofBundle) -> bytes:
    bundle.validate()
    payload = {
        "v": bundle.v,
        "circuit": bundle.circuit,
        "proof": bytes(bundle.proof),
        "public_inputs": bytes(bundle.public_inputs),
        "meta": _encode_meta(bundle.meta),
    }
    blob = cbor2.dumps(payload)
    if len(blob) > BUNDLE_MAX_BYTES:
        raise SizeLimitError("bundle too large")
    return blob


def decode_bundle(blob: bytes) -> ProofBundle:
    if not isinstance(blob, (bytes, bytearray)):
        raise BundleError("bundle blob must be bytes")
    blob_bytes = bytes(blob)
    if len(blob_bytes) > BUNDLE_MAX_BYTES:
        raise SizeLimitError("bundle too large")
    try:
        payload = cbor2.loads(blob_bytes)
    except (cbor2.CBORDecodeError, ValueError) as exc:
        raise BundleError(f"invalid bundle encoding: {exc}") from exc
    if not isinstance(payload, dict):
        raise BundleError("bundle payload must be a dict")

    meta_blob = _require_bytes(payload.get("meta", b""), "meta")
    if len(meta_blob) > MAX_META_BYTES:
        raise SizeLimitError("meta too large")
    try:
        meta = cbor2.loads(meta_blob) if meta_blob else {}
    except (cbor2.CBORDecodeError, ValueError) as exc:
        raise BundleError(f"invalid meta encoding: {exc}") from exc

    version = payload.get("v", -1)
    if isinstance(version, bool) or not isinstance(version, int):
        raise BundleError("bundle version must be an integer")

    bundle = ProofBundle(
        v=version,
        circuit=payload.get("circuit", ""),
        proof=_require_bytes(payload.get("proof", b""), "proof"),
        public_inputs=_require_bytes(payload.get("public_inputs", b""), "public_inputs"),
        meta=meta,
    )
    bundle.validate()
    return bundle
