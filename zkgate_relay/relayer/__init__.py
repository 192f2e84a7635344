"""Relay submission engine: eligibility, nullifier derivation and simulate-before-send."""

from .eligibility import EligibilityBundle, EligibilityVerifier
from .engine import RelaySubmissionEngine
from .messages import RelayerRequest, RelayerResponse
from .nullifier import NullifierMeta, build_debug_snapshot, build_nullifier_meta
from .rpc import ChainRpc, SimulationResult, SignatureState, SolanaRpc

__all__ = [
    "ChainRpc",
    "EligibilityBundle",
    "EligibilityVerifier",
    "NullifierMeta",
    "RelaySubmissionEngine",
    "RelayerRequest",
    "RelayerResponse",
    "SignatureState",
    "SimulationResult",
    "SolanaRpc",
    "build_debug_snapshot",
    "build_nullifier_meta",
]
