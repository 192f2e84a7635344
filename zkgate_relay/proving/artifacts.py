"""Artifact store: per-circuit paths, staleness checks and the fingerprint manifest."""

from __future__ import annotations

import enum
import hashlib
import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .constants import (
    FALLBACK_VK_NAME,
    MANIFEST_SUFFIX,
    PROVER_INPUT_FILE,
    SOURCE_RELATIVE_PATH,
    TARGET_DIR_NAME,
)


class ArtifactKind(enum.Enum):
    PROGRAM = "json"
    WITNESS = "gz"
    CONSTRAINTS = "ccs"
    PROVING_KEY = "pk"
    VERIFYING_KEY = "vk"
    PROOF = "proof"
    PUBLIC_WITNESS = "pw"


@dataclass(frozen=True)
class CircuitConfig:
    name: str
    circuit_dir: Path
    target_dir: Path

    @property
    def source_path(self) -> Path:
        return self.circuit_dir / SOURCE_RELATIVE_PATH

    @property
    def prover_toml_path(self) -> Path:
        return self.circuit_dir / PROVER_INPUT_FILE

    @property
    def manifest_path(self) -> Path:
        return self.target_dir / f"{self.name}{MANIFEST_SUFFIX}"

    def artifact_path(self, kind: ArtifactKind) -> Path:
        return self.target_dir / f"{self.name}.{kind.value}"

    def relative_artifact(self, kind: ArtifactKind) -> str:
        return f"{TARGET_DIR_NAME}/{self.name}.{kind.value}"


def create_circuit_config(name: str, circuit_root: Path | str) -> CircuitConfig:
    circuit_dir = Path(circuit_root) / name
    return CircuitConfig(
        name=name,
        circuit_dir=circuit_dir,
        target_dir=circuit_dir / TARGET_DIR_NAME,
    )


@dataclass(frozen=True)
class Fingerprint:
    size: int
    mtime_ns: int
    sha256: str

    def to_dict(self) -> dict:
        return {"size": self.size, "mtime_ns": self.mtime_ns, "sha256": self.sha256}

    @classmethod
    def from_dict(cls, data: dict) -> "Fingerprint":
        return cls(
            size=int(data["size"]),
            mtime_ns=int(data["mtime_ns"]),
            sha256=str(data["sha256"]),
        )


@dataclass(frozen=True)
class ProofFiles:
    proof: bytes
    public_witness: bytes


class ArtifactStore:
    """
    Answer staleness questions for a circuit's generated artifacts.

    An artifact is fresh when it exists and the fingerprint of the file it was
    produced from matches the one recorded in the manifest at production time.
    Artifacts with no manifest entry (built outside this process) fall back to
    modification-time ordering. Any missing file or failed stat reports
    "needs regeneration". No locking happens here; callers serialize per
    circuit.
    """

    def is_compiled(self, config: CircuitConfig) -> bool:
        return config.artifact_path(ArtifactKind.PROGRAM).is_file()

    def is_witness_generated(self, config: CircuitConfig) -> bool:
        return config.artifact_path(ArtifactKind.WITNESS).is_file()

    def needs_compile(self, config: CircuitConfig) -> bool:
        return self._is_stale(config, ArtifactKind.PROGRAM)

    def needs_ccs(self, config: CircuitConfig) -> bool:
        return self._is_stale(config, ArtifactKind.CONSTRAINTS)

    def needs_setup(self, config: CircuitConfig) -> bool:
        return self._is_stale(config, ArtifactKind.PROVING_KEY) or self._is_stale(
            config, ArtifactKind.VERIFYING_KEY
        )

    def record(self, config: CircuitConfig, *kinds: ArtifactKind) -> None:
        """Store the current fingerprint of each artifact's dependency."""
        manifest = self._load_manifest(config)
        for kind in kinds:
            dependency = self.dependency_path(config, kind)
            fingerprint = _fingerprint(dependency)
            if fingerprint is None:
                manifest.pop(kind.value, None)
            else:
                manifest[kind.value] = fingerprint.to_dict()
        self._write_manifest(config, manifest)

    def dependency_path(self, config: CircuitConfig, kind: ArtifactKind) -> Path:
        if kind is ArtifactKind.PROGRAM:
            return config.source_path
        if kind is ArtifactKind.WITNESS:
            return config.prover_toml_path
        if kind is ArtifactKind.CONSTRAINTS:
            return config.artifact_path(ArtifactKind.PROGRAM)
        if kind in (ArtifactKind.PROVING_KEY, ArtifactKind.VERIFYING_KEY):
            return config.artifact_path(ArtifactKind.CONSTRAINTS)
        return config.artifact_path(ArtifactKind.PROVING_KEY)

    def resolve_verifying_key(
        self, config: CircuitConfig, keys_dir: Path | str
    ) -> Optional[Path]:
        candidates = [
            config.artifact_path(ArtifactKind.VERIFYING_KEY),
            Path(keys_dir) / config.name / FALLBACK_VK_NAME,
        ]
        return _first_existing(candidates)

    def read_proof_files(self, config: CircuitConfig) -> ProofFiles:
        return ProofFiles(
            proof=config.artifact_path(ArtifactKind.PROOF).read_bytes(),
            public_witness=config.artifact_path(ArtifactKind.PUBLIC_WITNESS).read_bytes(),
        )

    def describe(self, config: CircuitConfig) -> dict:
        return {
            kind.name.lower(): config.artifact_path(kind).is_file()
            for kind in ArtifactKind
        }

    def _is_stale(self, config: CircuitConfig, kind: ArtifactKind) -> bool:
        artifact = config.artifact_path(kind)
        dependency = self.dependency_path(config, kind)
        try:
            artifact_stat = artifact.stat()
            dependency_stat = dependency.stat()
        except OSError:
            return True

        recorded = self._load_manifest(config).get(kind.value)
        if recorded is not None:
            try:
                expected = Fingerprint.from_dict(recorded)
            except (KeyError, TypeError, ValueError):
                return True
            current = _fingerprint(dependency)
            return current != expected

        return dependency_stat.st_mtime_ns > artifact_stat.st_mtime_ns

    def _load_manifest(self, config: CircuitConfig) -> dict:
        try:
            data = json.loads(config.manifest_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_manifest(self, config: CircuitConfig, manifest: dict) -> None:
        config.target_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(config.target_dir), prefix=f".{config.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(manifest, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, config.manifest_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _fingerprint(path: Path) -> Optional[Fingerprint]:
    try:
        stat = path.stat()
        digest = hashlib.sha256()
        with path.open("rb") as handle:
            for chunk in iter(lambda: handle.read(1 << 20), b""):
                digest.update(chunk)
    except OSError:
        return None
    return Fingerprint(size=stat.st_size, mtime_ns=stat.st_mtime_ns, sha256=digest.hexdigest())


def _first_existing(candidates: Iterable[Path]) -> Optional[Path]:
    for path in candidates:
        if path.is_file():
            return path
    return None
