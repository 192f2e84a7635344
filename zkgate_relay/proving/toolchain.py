"""Toolchain driver: runs nargo and sunspot as subprocesses."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence

from ..errors import CircuitNotCompiledError
from .artifacts import ArtifactKind, CircuitConfig
from .constants import DEFAULT_TOOL_TIMEOUT, NARGO, SUNSPOT

logger = logging.getLogger(__name__)


class ToolExecutionError(RuntimeError):
    """Raised when a toolchain command exits non-zero or times out."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int],
        stdout: str = "",
        stderr: str = "",
        timed_out: bool = False,
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        self.timed_out = timed_out
        if timed_out:
            summary = "timed out"
        else:
            summary = self.stderr.strip() or f"exit code {returncode}"
        super().__init__(f"{' '.join(self.command)} failed: {summary}")


class ToolNotFoundError(FileNotFoundError):
    """Raised when a toolchain binary cannot be launched."""


@dataclass(frozen=True)
class ToolStatus:
    nargo: bool
    sunspot: bool

    @property
    def all_available(self) -> bool:
        return self.nargo and self.sunspot

    @property
    def missing(self) -> list[str]:
        names = []
        if not self.nargo:
            names.append(NARGO)
        if not self.sunspot:
            names.append(SUNSPOT)
        return names

    def to_dict(self) -> dict:
        return {NARGO: self.nargo, SUNSPOT: self.sunspot}


class Toolchain(Protocol):
    def status(self) -> ToolStatus:
        ...

    def compile(self, config: CircuitConfig) -> None:
        ...

    def execute(self, config: CircuitConfig) -> None:
        ...

    def compile_ccs(self, config: CircuitConfig) -> None:
        ...

    def setup(self, config: CircuitConfig) -> None:
        ...

    def prove(self, config: CircuitConfig) -> None:
        ...

    def verify(
        self, config: CircuitConfig, vk: Path, proof: Path, public_witness: Path
    ) -> None:
        ...


class SubprocessToolchain:
    """
    Invoke the external tools with argument lists and captured output.

    Every command runs with ``cwd`` set to the circuit directory so relative
    ``target/`` paths resolve the same way they do from a shell. Failures are
    reported as-is; deciding what a failure means is the pipeline's job.
    """

    def __init__(
        self,
        nargo_bin: str = NARGO,
        sunspot_bin: str = SUNSPOT,
        timeout: float = DEFAULT_TOOL_TIMEOUT,
    ) -> None:
        self._nargo = nargo_bin
        self._sunspot = sunspot_bin
        self._timeout = timeout

    def status(self) -> ToolStatus:
        return ToolStatus(
            nargo=shutil.which(self._nargo) is not None,
            sunspot=shutil.which(self._sunspot) is not None,
        )

    def compile(self, config: CircuitConfig) -> None:
        self._run(config, [self._nargo, "compile"])

    def execute(self, config: CircuitConfig) -> None:
        self._run(config, [self._nargo, "execute"])

    def compile_ccs(self, config: CircuitConfig) -> None:
        self._run(
            config,
            [self._sunspot, "compile", config.relative_artifact(ArtifactKind.PROGRAM)],
        )

    def setup(self, config: CircuitConfig) -> None:
        self._run(
            config,
            [self._sunspot, "setup", config.relative_artifact(ArtifactKind.CONSTRAINTS)],
        )

    def prove(self, config: CircuitConfig) -> None:
        self._run(
            config,
            [
                self._sunspot,
                "prove",
                config.relative_artifact(ArtifactKind.PROGRAM),
                config.relative_artifact(ArtifactKind.WITNESS),
                config.relative_artifact(ArtifactKind.CONSTRAINTS),
                config.relative_artifact(ArtifactKind.PROVING_KEY),
            ],
        )

    def verify(
        self, config: CircuitConfig, vk: Path, proof: Path, public_witness: Path
    ) -> None:
        self._run(
            config,
            [
                self._sunspot,
                "verify",
                str(vk.absolute()),
                str(proof.absolute()),
                str(public_witness.absolute()),
            ],
        )

    def _run(self, config: CircuitConfig, command: list[str]) -> str:
        logger.debug("Running %s in %s", " ".join(command), config.circuit_dir)
        if not config.circuit_dir.is_dir():
            raise CircuitNotCompiledError(
                config.name, f"circuit directory not found: {config.circuit_dir}"
            )
        try:
            result = subprocess.run(
                command,
                cwd=str(config.circuit_dir),
                capture_output=True,
                text=True,
                check=False,
                timeout=self._timeout,
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(f"missing tool binary: {command[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise ToolExecutionError(
                command,
                None,
                stdout=_as_text(exc.stdout),
                stderr=_as_text(exc.stderr),
                timed_out=True,
            ) from exc

        if result.returncode != 0:
            raise ToolExecutionError(
                command, result.returncode, stdout=result.stdout, stderr=result.stderr
            )
        return result.stdout


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
