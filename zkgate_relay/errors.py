"""
Error taxonomy shared by the proof pipeline, the relayer and the HTTP layer.

Every error carries a stable machine-readable ``code`` and the HTTP status the
outer surfaces should answer with. Business-rule failures are 4xx,
infrastructure failures are 5xx.
"""

from __future__ import annotations

from typing import Any, Optional


class ErrorCodes:
    # Validation errors (4xx)
    MISSING_PARAMS = "MISSING_PARAMS"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_BALANCE = "INVALID_BALANCE"
    BALANCE_BELOW_THRESHOLD = "BALANCE_BELOW_THRESHOLD"
    INSUFFICIENT_HOLDINGS = "INSUFFICIENT_HOLDINGS"
    ADDRESS_BLACKLISTED = "ADDRESS_BLACKLISTED"
    NOTE_VERIFICATION_FAILED = "NOTE_VERIFICATION_FAILED"
    PROOF_VERIFICATION_FAILED = "PROOF_VERIFICATION_FAILED"
    ELIGIBILITY_VERIFICATION_FAILED = "ELIGIBILITY_VERIFICATION_FAILED"

    # Setup/tool errors (5xx)
    TOOLS_NOT_AVAILABLE = "TOOLS_NOT_AVAILABLE"
    CIRCUIT_NOT_COMPILED = "CIRCUIT_NOT_COMPILED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Runtime errors (5xx)
    WITNESS_GENERATION_FAILED = "WITNESS_GENERATION_FAILED"
    PROOF_GENERATION_FAILED = "PROOF_GENERATION_FAILED"
    SIMULATION_FAILED = "SIMULATION_FAILED"
    TRANSACTION_NOT_CONFIRMED = "TRANSACTION_NOT_CONFIRMED"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ZkGateError(Exception):
    """Base exception for zkgate relay errors."""

    code = ErrorCodes.INTERNAL_ERROR
    status = 500

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict:
        payload: dict = {
            "error": self.message,
            "errorCode": self.code,
            "status": self.status,
        }
        if self.details not in (None, ""):
            payload["details"] = self.details
        return payload


class MissingParametersError(ZkGateError):
    """Required request parameters are absent."""

    code = ErrorCodes.MISSING_PARAMS
    status = 400

    def __init__(self, params: list[str], message: Optional[str] = None) -> None:
        self.params = list(params)
        joined = ", ".join(self.params)
        super().__init__(
            message or f"Missing required parameters: {joined}",
            f"All parameters must be provided: {joined}",
        )


class InvalidRequestError(ZkGateError):
    """A request parameter is present but malformed."""

    code = ErrorCodes.INVALID_REQUEST
    status = 400


class BusinessRuleError(ZkGateError):
    """
    The circuit rejected the inputs (e.g. balance below threshold).

    Recoverable from the user's side: adjusting the inputs and retrying can
    succeed. The message explains the rule, never the private values.
    """

    status = 400

    def __init__(self, code: str, message: str, details: Optional[str] = None) -> None:
        super().__init__(message, details)
        self.code = code


class ToolsNotAvailableError(ZkGateError):
    code = ErrorCodes.TOOLS_NOT_AVAILABLE

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            f"Required tools not found: {', '.join(self.missing)}",
            "Install nargo: noirup -v 1.0.0-beta.1 | Install sunspot: see sunspot repo",
        )


class CircuitNotCompiledError(ZkGateError):
    code = ErrorCodes.CIRCUIT_NOT_COMPILED

    def __init__(self, circuit: str, details: Optional[str] = None) -> None:
        self.circuit = circuit
        super().__init__(
            f"Circuit {circuit} not compiled",
            details or f"Run: cd circuits/{circuit} && nargo compile",
        )


class WitnessGenerationError(ZkGateError):
    code = ErrorCodes.WITNESS_GENERATION_FAILED


class ProofGenerationError(ZkGateError):
    code = ErrorCodes.PROOF_GENERATION_FAILED


class ProofVerificationError(ZkGateError):
    code = ErrorCodes.PROOF_VERIFICATION_FAILED
    status = 400


class EligibilityVerificationError(ZkGateError):
    code = ErrorCodes.ELIGIBILITY_VERIFICATION_FAILED
    status = 400


class SimulationFailedError(ZkGateError):
    """Transaction simulation reported an error; nothing was broadcast."""

    code = ErrorCodes.SIMULATION_FAILED

    def __init__(
        self,
        details: Any,
        logs: Optional[list[str]] = None,
        debug: Optional[dict] = None,
    ) -> None:
        super().__init__("Simulation failed", details)
        self.logs = list(logs or [])
        self.debug = debug or {}

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["logs"] = self.logs
        payload["debug"] = self.debug
        return payload


class TransactionNotConfirmedError(ZkGateError):
    code = ErrorCodes.TRANSACTION_NOT_CONFIRMED


class TransactionFailedError(ZkGateError):
    code = ErrorCodes.TRANSACTION_FAILED


class ConfigurationError(ZkGateError):
    code = ErrorCodes.CONFIGURATION_ERROR


class InternalError(ZkGateError):
    code = ErrorCodes.INTERNAL_ERROR

    def __init__(self, details: Any = None) -> None:
        super().__init__("Internal error", details)
