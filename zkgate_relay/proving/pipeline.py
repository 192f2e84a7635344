"""
Pipeline orchestrator: compile -> witness -> setup -> prove, with caching.

A run moves through ``PipelineStage`` values in order and stops at the first
failure. Each stage re-runs only when the artifact store reports its output
missing or stale, so repeated requests with unchanged sources skip straight
to witness generation and proving.
"""

from __future__ import annotations

import enum
import logging
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

import tomli_w

from ..errors import (
    CircuitNotCompiledError,
    ProofGenerationError,
    ProofVerificationError,
    ToolsNotAvailableError,
    WitnessGenerationError,
)
from .artifacts import (
    ArtifactKind,
    ArtifactStore,
    CircuitConfig,
    ProofFiles,
    create_circuit_config,
)
from .circuits import CircuitDefinition
from .constants import MAX_PROOF_BYTES, MAX_PUBLIC_INPUTS_BYTES, NARGO, SUNSPOT
from .locks import CircuitLocks
from .toolchain import Toolchain, ToolExecutionError, ToolNotFoundError, ToolStatus

logger = logging.getLogger(__name__)

# nargo reports unsatisfied constraints on stderr with one of these phrases
_ASSERTION_PATTERN = re.compile(
    r"failed assertion|assertion failed|cannot satisfy constraint", re.IGNORECASE
)


class PipelineStage(enum.Enum):
    UNCOMPILED = "uncompiled"
    COMPILED = "compiled"
    WITNESS_PENDING = "witness_pending"
    WITNESSED = "witnessed"
    SETUP_PENDING = "setup_pending"
    SETUP_DONE = "setup_done"
    PROVEN = "proven"


@dataclass(frozen=True)
class ProofResult:
    circuit: str
    proof: bytes
    public_inputs: bytes
    metadata: dict = field(default_factory=dict)

    def to_json(self) -> dict:
        return {
            "success": True,
            "circuit": self.circuit,
            "proof": list(self.proof),
            "publicInputs": list(self.public_inputs),
            "metadata": dict(self.metadata),
        }


def is_assertion_failure(exc: ToolExecutionError) -> bool:
    """True when a witness failure means the inputs violate the circuit."""
    if exc.timed_out or exc.returncode != 1:
        return False
    return _ASSERTION_PATTERN.search(exc.stderr) is not None


class ProofPipeline:
    def __init__(
        self,
        toolchain: Toolchain,
        circuit_root: Path | str,
        keys_dir: Path | str,
        store: Optional[ArtifactStore] = None,
        locks: Optional[CircuitLocks] = None,
        auto_compile: bool = True,
    ) -> None:
        self._toolchain = toolchain
        # tools run with cwd set to the circuit dir, so every path handed to them is absolute
        self._circuit_root = Path(circuit_root).resolve()
        self._keys_dir = Path(keys_dir).resolve()
        self._store = store or ArtifactStore()
        self._locks = locks or CircuitLocks()
        self._auto_compile = auto_compile

    @property
    def store(self) -> ArtifactStore:
        return self._store

    def config_for(self, name: str) -> CircuitConfig:
        return create_circuit_config(name, self._circuit_root)

    def tool_status(self) -> ToolStatus:
        return self._toolchain.status()

    def status(self, name: str) -> dict:
        config = self.config_for(name)
        tools = self._toolchain.status()
        is_compiled = self._store.is_compiled(config)
        return {
            "ready": tools.all_available and is_compiled,
            "isCompiled": is_compiled,
            "tools": {**tools.to_dict(), "allAvailable": tools.all_available},
        }

    def generate(
        self,
        circuit: CircuitDefinition,
        inputs: dict[str, Any],
        metadata: Optional[dict] = None,
    ) -> ProofResult:
        config = self.config_for(circuit.name)
        self._require_tools()

        with self._locks.hold(circuit.name):
            self._transition(config, PipelineStage.UNCOMPILED)
            self._ensure_compiled(config)
            self._transition(config, PipelineStage.COMPILED)

            self._write_inputs(config, inputs)
            self._transition(config, PipelineStage.WITNESS_PENDING)
            self._generate_witness(config, circuit)
            self._transition(config, PipelineStage.WITNESSED)

            self._transition(config, PipelineStage.SETUP_PENDING)
            self._ensure_setup(config)
            self._transition(config, PipelineStage.SETUP_DONE)

            files = self._prove(config)
            self._transition(config, PipelineStage.PROVEN)

        result_meta = dict(metadata or {})
        result_meta["proofSize"] = len(files.proof)
        result_meta["publicInputsSize"] = len(files.public_witness)
        logger.info(
            "Proof generated for %s (%d bytes proof, %d bytes public witness)",
            circuit.name,
            len(files.proof),
            len(files.public_witness),
        )
        return ProofResult(
            circuit=circuit.name,
            proof=files.proof,
            public_inputs=files.public_witness,
            metadata=result_meta,
        )

    def verify(self, name: str, proof: bytes, public_inputs: bytes) -> bool:
        """
        Check a proof against the circuit's verifying key.

        Returns False when the verifier rejects the proof. Raises
        ProofVerificationError when no verifying key can be found.
        """
        config = self.config_for(name)
        self._require_tools()

        with self._locks.hold(name):
            if self._store.is_compiled(config):
                self._ensure_setup(config)

        vk_path = self._store.resolve_verifying_key(config, self._keys_dir)
        if vk_path is None:
            raise ProofVerificationError(f"Verifying key not found for {name}")

        nonce = uuid.uuid4().hex
        config.target_dir.mkdir(parents=True, exist_ok=True)
        proof_path = config.target_dir / f"{name}.{nonce}.proof"
        witness_path = config.target_dir / f"{name}.{nonce}.pw"
        try:
            proof_path.write_bytes(bytes(proof))
            witness_path.write_bytes(bytes(public_inputs))
            self._toolchain.verify(config, vk_path, proof_path, witness_path)
        except ToolNotFoundError as exc:
            raise ToolsNotAvailableError([SUNSPOT]) from exc
        except ToolExecutionError as exc:
            logger.info("Proof rejected for %s: %s", name, exc)
            return False
        finally:
            proof_path.unlink(missing_ok=True)
            witness_path.unlink(missing_ok=True)
        return True

    def _require_tools(self) -> None:
        tools = self._toolchain.status()
        if not tools.all_available:
            logger.error("Required tools not found: %s", ", ".join(tools.missing))
            raise ToolsNotAvailableError(tools.missing)

    def _ensure_compiled(self, config: CircuitConfig) -> None:
        if not self._store.needs_compile(config):
            return
        compiled = self._store.is_compiled(config)
        if compiled and not config.source_path.is_file():
            logger.debug("No source for %s, using prebuilt program", config.name)
            return
        if not self._auto_compile:
            if not compiled:
                raise CircuitNotCompiledError(config.name)
            logger.warning("Program for %s is stale; auto compile disabled", config.name)
            return

        logger.info("Compiling circuit %s", config.name)
        self._run_stage(
            self._toolchain.compile,
            config,
            NARGO,
            lambda details: CircuitNotCompiledError(config.name, details),
        )
        if not self._store.is_compiled(config):
            raise CircuitNotCompiledError(
                config.name, "nargo compile completed but no program was written"
            )
        self._store.record(config, ArtifactKind.PROGRAM)

    def _write_inputs(self, config: CircuitConfig, inputs: dict[str, Any]) -> None:
        config.prover_toml_path.write_text(tomli_w.dumps(inputs), encoding="utf-8")
        logger.debug("Wrote %s", config.prover_toml_path)

    def _generate_witness(self, config: CircuitConfig, circuit: CircuitDefinition) -> None:
        config.artifact_path(ArtifactKind.WITNESS).unlink(missing_ok=True)
        try:
            self._toolchain.execute(config)
        except ToolNotFoundError as exc:
            raise ToolsNotAvailableError([NARGO]) from exc
        except ToolExecutionError as exc:
            if is_assertion_failure(exc):
                logger.info("Circuit %s rejected the inputs", config.name)
                raise circuit.rejection() from exc
            logger.error("nargo execute failed for %s: %s", config.name, exc)
            raise WitnessGenerationError(
                "Witness generation failed", exc.stderr.strip() or str(exc)
            ) from exc

        if not self._store.is_witness_generated(config):
            raise WitnessGenerationError(
                "Witness generation failed",
                "nargo execute completed but witness file was not created",
            )

    def _ensure_setup(self, config: CircuitConfig) -> None:
        if self._store.needs_ccs(config):
            logger.info("Compiling constraint system for %s", config.name)
            self._run_stage(
                self._toolchain.compile_ccs,
                config,
                SUNSPOT,
                lambda details: ProofGenerationError("sunspot compile failed", details),
            )
            self._store.record(config, ArtifactKind.CONSTRAINTS)
        if self._store.needs_setup(config):
            logger.info("Running key setup for %s", config.name)
            self._run_stage(
                self._toolchain.setup,
                config,
                SUNSPOT,
                lambda details: ProofGenerationError("sunspot setup failed", details),
            )
            self._store.record(config, ArtifactKind.PROVING_KEY, ArtifactKind.VERIFYING_KEY)

    def _prove(self, config: CircuitConfig) -> ProofFiles:
        # a prove that exits 0 without writing must not return the previous proof
        config.artifact_path(ArtifactKind.PROOF).unlink(missing_ok=True)
        config.artifact_path(ArtifactKind.PUBLIC_WITNESS).unlink(missing_ok=True)
        self._run_stage(
            self._toolchain.prove,
            config,
            SUNSPOT,
            lambda details: ProofGenerationError("sunspot prove failed", details),
        )
        try:
            files = self._store.read_proof_files(config)
        except OSError as exc:
            raise ProofGenerationError(
                "Proof generation failed", "sunspot prove completed but proof files are missing"
            ) from exc
        if len(files.proof) > MAX_PROOF_BYTES:
            raise ProofGenerationError("Proof generation failed", "proof too large")
        if len(files.public_witness) > MAX_PUBLIC_INPUTS_BYTES:
            raise ProofGenerationError("Proof generation failed", "public_inputs too large")
        return files

    def _run_stage(
        self,
        step: Callable[[CircuitConfig], None],
        config: CircuitConfig,
        tool: str,
        on_failure: Callable[[str], Exception],
    ) -> None:
        try:
            step(config)
        except ToolNotFoundError as exc:
            raise ToolsNotAvailableError([tool]) from exc
        except ToolExecutionError as exc:
            logger.error("%s", exc)
            raise on_failure(exc.stderr.strip() or str(exc)) from exc

    @staticmethod
    def _transition(config: CircuitConfig, stage: PipelineStage) -> None:
        logger.debug("Circuit %s -> %s", config.name, stage.value)
