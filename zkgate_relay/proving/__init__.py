"""Proof-artifact pipeline: field codec, artifact store, toolchain and orchestrator."""

from .artifacts import ArtifactKind, ArtifactStore, CircuitConfig, create_circuit_config
from .circuits import CIRCUITS, CircuitDefinition, get_circuit
from .fixture import FixtureToolchain
from .locks import CircuitLocks
from .pipeline import PipelineStage, ProofPipeline, ProofResult
from .service import ProofService
from .toolchain import SubprocessToolchain, Toolchain, ToolExecutionError, ToolStatus

__all__ = [
    "ArtifactKind",
    "ArtifactStore",
    "CIRCUITS",
    "CircuitConfig",
    "CircuitDefinition",
    "CircuitLocks",
    "FixtureToolchain",
    "PipelineStage",
    "ProofPipeline",
    "ProofResult",
    "ProofService",
    "SubprocessToolchain",
    "ToolExecutionError",
    "ToolStatus",
    "Toolchain",
    "create_circuit_config",
    "get_circuit",
]
