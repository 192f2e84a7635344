"""Request-level proof service used by the HTTP and CLI surfaces."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ..errors import InvalidRequestError, MissingParametersError
from .circuits import CIRCUITS, exclusion_inputs, get_circuit
from .pipeline import ProofPipeline, ProofResult

logger = logging.getLogger(__name__)

NARGO_INSTALL = (
    "curl -L https://raw.githubusercontent.com/noir-lang/noirup/refs/heads/main/install"
    " | bash && noirup -v 1.0.0-beta.1"
)
SUNSPOT_INSTALL = (
    "git clone https://github.com/reilabs/sunspot.git && cd sunspot/go && "
    "go build -o sunspot . && sudo mv sunspot /usr/local/bin/"
)


def coerce_bytes(value: Any, label: str) -> bytes:
    """Accept a JSON array of byte values (0-255) and return bytes."""
    if isinstance(value, (bytes, bytearray)):
        data = bytes(value)
    elif isinstance(value, list):
        if any(
            isinstance(item, bool) or not isinstance(item, int) or not 0 <= item <= 255
            for item in value
        ):
            raise InvalidRequestError(
                f"Invalid {label}", f"{label} must be an array of byte values"
            )
        data = bytes(value)
    else:
        raise InvalidRequestError(f"Invalid {label}", f"{label} must be an array of byte values")
    if not data:
        raise InvalidRequestError(f"Invalid {label}", f"{label} must not be empty")
    return data


class ProofService:
    def __init__(self, pipeline: ProofPipeline) -> None:
        self._pipeline = pipeline

    @property
    def pipeline(self) -> ProofPipeline:
        return self._pipeline

    def prove(self, circuit_name: str, params: Mapping[str, Any]) -> ProofResult:
        circuit = get_circuit(circuit_name)
        inputs, metadata = circuit.prepare(params)
        logger.info("Generating %s proof", circuit.name)
        return self._pipeline.generate(circuit, inputs, metadata)

    def verify(self, circuit_name: str, proof: Any, public_inputs: Any) -> bool:
        circuit = get_circuit(circuit_name)
        return self._pipeline.verify(
            circuit.name,
            coerce_bytes(proof, "proof"),
            coerce_bytes(public_inputs, "publicInputs"),
        )

    def preview_exclusion(self, params: Mapping[str, Any]) -> dict:
        address = params.get("address")
        if not address:
            raise MissingParametersError(["address"], "Missing address")
        if not isinstance(address, str):
            raise InvalidRequestError("Invalid address", "address must be a string")
        return {"success": True, "inputs": exclusion_inputs(address)}

    def readiness(self, circuit_name: str) -> dict:
        circuit = get_circuit(circuit_name)
        status = self._pipeline.status(circuit.name)
        tools = status["tools"]
        payload = {
            "status": "ready" if status["ready"] else "setup_required",
            "circuit": circuit.name,
            "isCompiled": status["isCompiled"],
            "tools": tools,
            "description": circuit.description,
            "inputs": circuit.describe_inputs(),
        }
        if not status["ready"]:
            payload["setupInstructions"] = _setup_instructions(
                circuit.name, tools, status["isCompiled"]
            )
        return payload

    def circuits(self) -> list[str]:
        return sorted(CIRCUITS)


def _setup_instructions(name: str, tools: dict, is_compiled: bool) -> dict:
    return {
        "nargo": None if tools.get("nargo") else NARGO_INSTALL,
        "sunspot": None if tools.get("sunspot") else SUNSPOT_INSTALL,
        "compile": None if is_compiled else f"cd circuits/{name} && nargo compile",
    }
