"""Unit tests for the artifact store."""

from __future__ import annotations

import os
from pathlib import Path

from zkgate_relay.proving.artifacts import (
    ArtifactKind,
    ArtifactStore,
    CircuitConfig,
    create_circuit_config,
)


def _make_circuit(root: Path, name: str = "min_balance") -> CircuitConfig:
    config = create_circuit_config(name, root)
    config.source_path.parent.mkdir(parents=True, exist_ok=True)
    config.source_path.write_text("fn main() {}\n", encoding="utf-8")
    config.target_dir.mkdir(parents=True, exist_ok=True)
    return config


def _write(config: CircuitConfig, kind: ArtifactKind, payload: bytes = b"x") -> Path:
    path = config.artifact_path(kind)
    path.write_bytes(payload)
    return path


def _set_mtime(path: Path, seconds: int) -> None:
    ns = seconds * 1_000_000_000
    os.utime(path, ns=(ns, ns))


def test_circuit_config_paths(tmp_path: Path) -> None:
    config = create_circuit_config("token_holder", tmp_path)
    assert config.circuit_dir == tmp_path / "token_holder"
    assert config.source_path == tmp_path / "token_holder" / "src" / "main.nr"
    assert config.prover_toml_path == tmp_path / "token_holder" / "Prover.toml"
    assert config.artifact_path(ArtifactKind.PROGRAM) == (
        tmp_path / "token_holder" / "target" / "token_holder.json"
    )
    assert config.relative_artifact(ArtifactKind.WITNESS) == "target/token_holder.gz"


def test_missing_program_needs_compile(tmp_path: Path) -> None:
    config = _make_circuit(tmp_path)
    store = ArtifactStore()
    assert store.is_compiled(config) is False
    assert store.needs_compile(config) is True


def test_recorded_program_is_fresh_until_source_changes(tmp_path: Path) -> None:
    config = _make_circuit(tmp_path)
    store = ArtifactStore()
    _write(config, ArtifactKind.PROGRAM)
    store.record(config, ArtifactKind.PROGRAM)

    assert store.needs_compile(config) is False

    config.source_path.write_text("fn main() { assert(1 == 1); }\n", encoding="utf-8")
    assert store.needs_compile(config) is True


def test_touching_source_marks_program_stale(tmp_path: Path) -> None:
    config = _make_circuit(tmp_path)
    store = ArtifactStore()
    _set_mtime(config.source_path, 1_000)
    _write(config, ArtifactKind.PROGRAM)
    store.record(config, ArtifactKind.PROGRAM)

    _set_mtime(config.source_path, 2_000)
    assert store.needs_compile(config) is True


def test_mtime_fallback_without_manifest(tmp_path: Path) -> None:
    config = _make_circuit(tmp_path)
    store = ArtifactStore()
    program = _write(config, ArtifactKind.PROGRAM)

    _set_mtime(config.source_path, 1_000)
    _set_mtime(program, 2_000)
    assert store.needs_compile(config) is False

    _set_mtime(config.source_path, 3_000)
    assert store.needs_compile(config) is True


def test_corrupt_manifest_falls_back_to_mtime(tmp_path: Path) -> None:
    config = _make_circuit(tmp_path)
    store = ArtifactStore()
    program = _write(config, ArtifactKind.PROGRAM)
    config.manifest_path.write_text("{not json", encoding="utf-8")

    _set_mtime(config.source_path, 1_000)
    _set_mtime(program, 2_000)
    assert store.needs_compile(config) is False


def test_missing_source_needs_regeneration(tmp_path: Path) -> None:
    config = _make_circuit(tmp_path)
    store = ArtifactStore()
    _write(config, ArtifactKind.PROGRAM)
    config.source_path.unlink()
    assert store.needs_compile(config) is True


def test_setup_chain_staleness(tmp_path: Path) -> None:
    config = _make_circuit(tmp_path)
    store = ArtifactStore()
    _write(config, ArtifactKind.PROGRAM)
    assert store.needs_ccs(config) is True
    assert store.needs_setup(config) is True

    _write(config, ArtifactKind.CONSTRAINTS)
    store.record(config, ArtifactKind.CONSTRAINTS)
    assert store.needs_ccs(config) is False

    _write(config, ArtifactKind.PROVING_KEY)
    store.record(config, ArtifactKind.PROVING_KEY)
    # verifying key still missing
    assert store.needs_setup(config) is True

    _write(config, ArtifactKind.VERIFYING_KEY)
    store.record(config, ArtifactKind.VERIFYING_KEY)
    assert store.needs_setup(config) is False

    _write(config, ArtifactKind.CONSTRAINTS, b"changed")
    assert store.needs_setup(config) is True


def test_witness_detection(tmp_path: Path) -> None:
    config = _make_circuit(tmp_path)
    store = ArtifactStore()
    assert store.is_witness_generated(config) is False
    _write(config, ArtifactKind.WITNESS)
    assert store.is_witness_generated(config) is True


def test_resolve_verifying_key_prefers_target(tmp_path: Path) -> None:
    config = _make_circuit(tmp_path / "circuits")
    keys_dir = tmp_path / "keys"
    fallback = keys_dir / "min_balance" / "verifying_key.vk"
    fallback.parent.mkdir(parents=True)
    fallback.write_bytes(b"fallback")
    store = ArtifactStore()

    assert store.resolve_verifying_key(config, keys_dir) == fallback

    primary = _write(config, ArtifactKind.VERIFYING_KEY)
    assert store.resolve_verifying_key(config, keys_dir) == primary


def test_resolve_verifying_key_missing(tmp_path: Path) -> None:
    config = _make_circuit(tmp_path)
    assert ArtifactStore().resolve_verifying_key(config, tmp_path / "keys") is None


def test_read_proof_files(tmp_path: Path) -> None:
    config = _make_circuit(tmp_path)
    _write(config, ArtifactKind.PROOF, b"proof-bytes")
    _write(config, ArtifactKind.PUBLIC_WITNESS, b"pw-bytes")
    files = ArtifactStore().read_proof_files(config)
    assert files.proof == b"proof-bytes"
    assert files.public_witness == b"pw-bytes"
