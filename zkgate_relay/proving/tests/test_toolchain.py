"""Tests for the subprocess toolchain driver, using small shell scripts as tools."""

from __future__ import annotations

import stat
import sys
from pathlib import Path

import pytest

from zkgate_relay.errors import CircuitNotCompiledError
from zkgate_relay.proving.artifacts import create_circuit_config
from zkgate_relay.proving.toolchain import (
    SubprocessToolchain,
    ToolExecutionError,
    ToolNotFoundError,
    ToolStatus,
)

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="requires /bin/sh")


def _script(path: Path, body: str) -> str:
    path.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


def _recording_tool(tmp_path: Path, name: str) -> tuple[str, Path]:
    log = tmp_path / f"{name}.log"
    tool = _script(tmp_path / name, f'echo "$PWD|$*" >> "{log}"')
    return tool, log


def _config(tmp_path: Path):
    config = create_circuit_config("min_balance", tmp_path / "circuits")
    config.target_dir.mkdir(parents=True)
    return config


def test_commands_run_in_circuit_dir(tmp_path: Path) -> None:
    nargo, nargo_log = _recording_tool(tmp_path, "nargo")
    sunspot, sunspot_log = _recording_tool(tmp_path, "sunspot")
    config = _config(tmp_path)
    toolchain = SubprocessToolchain(nargo_bin=nargo, sunspot_bin=sunspot, timeout=10)

    toolchain.compile(config)
    toolchain.execute(config)
    toolchain.compile_ccs(config)
    toolchain.setup(config)
    toolchain.prove(config)

    cwd = str(config.circuit_dir.resolve())
    nargo_lines = nargo_log.read_text(encoding="utf-8").splitlines()
    assert [line.split("|")[1] for line in nargo_lines] == ["compile", "execute"]
    assert all(Path(line.split("|")[0]).resolve() == Path(cwd) for line in nargo_lines)

    sunspot_lines = sunspot_log.read_text(encoding="utf-8").splitlines()
    assert [line.split("|")[1] for line in sunspot_lines] == [
        "compile target/min_balance.json",
        "setup target/min_balance.ccs",
        "prove target/min_balance.json target/min_balance.gz "
        "target/min_balance.ccs target/min_balance.pk",
    ]


def test_verify_passes_explicit_paths(tmp_path: Path) -> None:
    sunspot, log = _recording_tool(tmp_path, "sunspot")
    config = _config(tmp_path)
    toolchain = SubprocessToolchain(nargo_bin="nargo", sunspot_bin=sunspot, timeout=10)

    toolchain.verify(config, Path("/keys/a.vk"), Path("/tmp/p.proof"), Path("/tmp/p.pw"))

    line = log.read_text(encoding="utf-8").strip()
    assert line.split("|")[1] == "verify /keys/a.vk /tmp/p.proof /tmp/p.pw"


def test_nonzero_exit_raises_with_captured_output(tmp_path: Path) -> None:
    nargo = _script(
        tmp_path / "nargo", 'echo "partial output"\necho "error: Failed assertion" >&2\nexit 1'
    )
    config = _config(tmp_path)
    toolchain = SubprocessToolchain(nargo_bin=nargo, sunspot_bin="sunspot", timeout=10)

    with pytest.raises(ToolExecutionError) as excinfo:
        toolchain.execute(config)

    err = excinfo.value
    assert err.returncode == 1
    assert err.timed_out is False
    assert "Failed assertion" in err.stderr
    assert "partial output" in err.stdout
    assert err.command == [nargo, "execute"]


def test_missing_binary_raises_tool_not_found(tmp_path: Path) -> None:
    config = _config(tmp_path)
    toolchain = SubprocessToolchain(
        nargo_bin=str(tmp_path / "does-not-exist"), sunspot_bin="sunspot", timeout=10
    )
    with pytest.raises(ToolNotFoundError):
        toolchain.compile(config)


def test_timeout_is_reported(tmp_path: Path) -> None:
    sunspot = _script(tmp_path / "sunspot", "exec sleep 5")
    config = _config(tmp_path)
    toolchain = SubprocessToolchain(nargo_bin="nargo", sunspot_bin=sunspot, timeout=0.5)

    with pytest.raises(ToolExecutionError) as excinfo:
        toolchain.setup(config)

    assert excinfo.value.timed_out is True
    assert excinfo.value.returncode is None
    assert "timed out" in str(excinfo.value)


def test_status_reports_each_tool(tmp_path: Path) -> None:
    nargo = _script(tmp_path / "nargo", "exit 0")
    toolchain = SubprocessToolchain(
        nargo_bin=nargo, sunspot_bin=str(tmp_path / "missing-sunspot"), timeout=10
    )
    status = toolchain.status()
    assert status == ToolStatus(nargo=True, sunspot=False)
    assert status.all_available is False
    assert status.missing == ["sunspot"]
    assert status.to_dict() == {"nargo": True, "sunspot": False}


def test_verify_paths_are_made_absolute(tmp_path: Path, monkeypatch) -> None:
    sunspot, log = _recording_tool(tmp_path, "sunspot")
    config = _config(tmp_path)
    toolchain = SubprocessToolchain(nargo_bin="nargo", sunspot_bin=sunspot, timeout=10)
    monkeypatch.chdir(tmp_path)

    toolchain.verify(config, Path("keys/a.vk"), Path("p.proof"), Path("p.pw"))

    args = log.read_text(encoding="utf-8").strip().split("|")[1].split()
    assert args[0] == "verify"
    assert [Path(arg) for arg in args[1:]] == [
        Path.cwd() / "keys" / "a.vk",
        Path.cwd() / "p.proof",
        Path.cwd() / "p.pw",
    ]


def test_missing_circuit_dir_is_not_a_missing_tool(tmp_path: Path) -> None:
    nargo = _script(tmp_path / "nargo", "exit 0")
    config = create_circuit_config("min_balance", tmp_path / "nowhere")
    toolchain = SubprocessToolchain(nargo_bin=nargo, sunspot_bin="sunspot", timeout=10)

    with pytest.raises(CircuitNotCompiledError) as excinfo:
        toolchain.compile(config)

    assert "circuit directory not found" in excinfo.value.details
    assert str(config.circuit_dir) in excinfo.value.details
