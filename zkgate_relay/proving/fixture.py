"""
Deterministic stand-in for the nargo/sunspot toolchain.

It writes artifacts with the same names the real tools produce, checks a
reference predicate in place of circuit constraints, and records every
invocation. It does NOT provide real cryptographic security; it exists for
tests and local demos without the external tools installed.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from pathlib import Path
from typing import Callable, Mapping, Optional

import tomli

from .artifacts import ArtifactKind, CircuitConfig
from .circuits import CIRCUITS, MIN_BALANCE, SHIELDED_SPEND, SMT_EXCLUSION, TOKEN_HOLDER
from .constants import BN254_MODULUS, FIELD_BYTES, NARGO, SUNSPOT
from .toolchain import ToolExecutionError, ToolStatus

logger = logging.getLogger(__name__)

FIXTURE_PROOF_BYTES = 256

Predicate = Callable[[dict], bool]


def _min_balance(inputs: dict) -> bool:
    balance = int(inputs["balance"])
    return balance >= int(inputs["threshold"]) and int(inputs["state_root"]) == balance + 32


def _token_holder(inputs: dict) -> bool:
    return int(inputs["token_amount"]) >= int(inputs["min_required"])


def _smt_exclusion(inputs: dict) -> bool:
    expected = (int(inputs["address"]) * 31 + 17) % BN254_MODULUS
    address_hash = int(inputs["address_hash"])
    return address_hash == expected and int(inputs["blacklist_root"]) != address_hash


def _shielded_spend(inputs: dict) -> bool:
    return inputs["amount"] == inputs["amount_pub"] and len(inputs["merkle_path"]) == len(
        inputs["merkle_indices"]
    )


DEFAULT_PREDICATES: dict[str, Predicate] = {
    MIN_BALANCE: _min_balance,
    TOKEN_HOLDER: _token_holder,
    SMT_EXCLUSION: _smt_exclusion,
    SHIELDED_SPEND: _shielded_spend,
}


class FixtureToolchain:
    def __init__(
        self,
        available: bool = True,
        predicates: Optional[Mapping[str, Predicate]] = None,
        public_inputs: Optional[Mapping[str, tuple[str, ...]]] = None,
    ) -> None:
        self._available = available
        self._predicates = dict(DEFAULT_PREDICATES if predicates is None else predicates)
        if public_inputs is None:
            public_inputs = {name: c.public_inputs for name, c in CIRCUITS.items()}
        self._public_inputs = dict(public_inputs)
        self._calls_lock = threading.Lock()
        self.calls: list[tuple[str, str]] = []

    def status(self) -> ToolStatus:
        return ToolStatus(nargo=self._available, sunspot=self._available)

    def count(self, step: str, circuit: Optional[str] = None) -> int:
        with self._calls_lock:
            return sum(
                1
                for name, target in self.calls
                if name == step and (circuit is None or target == circuit)
            )

    def compile(self, config: CircuitConfig) -> None:
        self._record("compile", config)
        source = self._require(config.source_path, [NARGO, "compile"])
        self._write(config, ArtifactKind.PROGRAM, _digest(b"program", source))

    def execute(self, config: CircuitConfig) -> None:
        self._record("execute", config)
        command = [NARGO, "execute"]
        self._require(config.artifact_path(ArtifactKind.PROGRAM), command)
        raw = self._require(config.prover_toml_path, command)
        try:
            inputs = tomli.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, tomli.TOMLDecodeError) as exc:
            raise ToolExecutionError(
                command, 1, stderr=f"error: invalid Prover.toml: {exc}"
            ) from exc

        predicate = self._predicates.get(config.name)
        try:
            satisfied = predicate is None or predicate(inputs)
        except (KeyError, TypeError, ValueError) as exc:
            raise ToolExecutionError(
                command, 1, stderr=f"error: missing or malformed input: {exc}"
            ) from exc
        if not satisfied:
            raise ToolExecutionError(command, 1, stderr="error: Failed assertion")
        self._write(config, ArtifactKind.WITNESS, _digest(b"witness", raw))

    def compile_ccs(self, config: CircuitConfig) -> None:
        self._record("compile_ccs", config)
        program = self._require(
            config.artifact_path(ArtifactKind.PROGRAM),
            [SUNSPOT, "compile", config.relative_artifact(ArtifactKind.PROGRAM)],
        )
        self._write(config, ArtifactKind.CONSTRAINTS, _digest(b"ccs", program))

    def setup(self, config: CircuitConfig) -> None:
        self._record("setup", config)
        ccs = self._require(
            config.artifact_path(ArtifactKind.CONSTRAINTS),
            [SUNSPOT, "setup", config.relative_artifact(ArtifactKind.CONSTRAINTS)],
        )
        self._write(config, ArtifactKind.PROVING_KEY, _digest(b"pk", ccs))
        self._write(config, ArtifactKind.VERIFYING_KEY, _digest(b"vk", ccs))

    def prove(self, config: CircuitConfig) -> None:
        self._record("prove", config)
        command = [SUNSPOT, "prove"]
        self._require(config.artifact_path(ArtifactKind.WITNESS), command)
        self._require(config.artifact_path(ArtifactKind.PROVING_KEY), command)
        vk = self._require(config.artifact_path(ArtifactKind.VERIFYING_KEY), command)
        raw = self._require(config.prover_toml_path, command)
        inputs = tomli.loads(raw.decode("utf-8"))

        public_witness = encode_public_witness(
            [inputs[name] for name in self._public_inputs.get(config.name, ())]
        )
        self._write(config, ArtifactKind.PUBLIC_WITNESS, public_witness)
        self._write(config, ArtifactKind.PROOF, fixture_proof(vk, public_witness))

    def verify(
        self, config: CircuitConfig, vk: Path, proof: Path, public_witness: Path
    ) -> None:
        self._record("verify", config)
        command = [SUNSPOT, "verify", str(vk), str(proof), str(public_witness)]
        expected = fixture_proof(
            self._require(vk, command), self._require(public_witness, command)
        )
        if self._require(proof, command) != expected:
            raise ToolExecutionError(command, 1, stderr="error: proof verification failed")

    def _record(self, step: str, config: CircuitConfig) -> None:
        logger.debug("fixture %s for %s", step, config.name)
        with self._calls_lock:
            self.calls.append((step, config.name))

    @staticmethod
    def _require(path: Path, command: list[str]) -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            raise ToolExecutionError(
                command, 1, stderr=f"error: cannot read {path.name}"
            ) from exc

    @staticmethod
    def _write(config: CircuitConfig, kind: ArtifactKind, payload: bytes) -> None:
        config.target_dir.mkdir(parents=True, exist_ok=True)
        config.artifact_path(kind).write_bytes(payload)


def encode_public_witness(values: list) -> bytes:
    """gnark-style public witness: 12-byte header then 32-byte big-endian values."""
    header = (
        len(values).to_bytes(4, "big")
        + (0).to_bytes(4, "big")
        + len(values).to_bytes(4, "big")
    )
    body = b"".join(
        (int(value) % BN254_MODULUS).to_bytes(FIELD_BYTES, "big") for value in values
    )
    return header + body


def fixture_proof(vk: bytes, public_witness: bytes) -> bytes:
    out = b""
    counter = 0
    while len(out) < FIXTURE_PROOF_BYTES:
        out += hashlib.sha256(
            b"proof" + counter.to_bytes(4, "big") + vk + public_witness
        ).digest()
        counter += 1
    return out[:FIXTURE_PROOF_BYTES]


def _digest(tag: bytes, payload: bytes) -> bytes:
    return tag + b":" + hashlib.sha256(payload).hexdigest().encode("ascii")
