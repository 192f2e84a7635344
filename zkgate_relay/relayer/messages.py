"""Relayer request and response schemas."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import InvalidRequestError, MissingParametersError, ZkGateError
from ..proving.service import coerce_bytes
from .constants import REQUEST_FIELDS


def _is_missing(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


@dataclass(frozen=True)
class RelayerRequest:
    proof: bytes
    public_inputs: bytes
    instruction_data: bytes
    accounts: Dict[str, str]
    eligibility_proofs: List[Any] = field(default_factory=list)
    require_eligibility: bool = False

    @classmethod
    def from_json(cls, body: Any) -> "RelayerRequest":
        if not isinstance(body, dict):
            raise MissingParametersError(list(REQUEST_FIELDS), "Missing parameters")
        missing = [name for name in REQUEST_FIELDS if _is_missing(body.get(name))]
        if missing:
            raise MissingParametersError(missing, "Missing parameters")

        accounts = body["accounts"]
        if not isinstance(accounts, dict) or not all(
            isinstance(value, str) for value in accounts.values()
        ):
            raise InvalidRequestError(
                "Invalid accounts", "accounts must map names to base58 addresses"
            )

        eligibility = body.get("eligibilityProofs")
        if eligibility is None:
            eligibility = []
        if not isinstance(eligibility, list):
            raise InvalidRequestError(
                "Invalid eligibility proof", "eligibilityProofs must be an array"
            )

        require_eligibility = body.get("requireEligibility", False)
        if require_eligibility is None:
            require_eligibility = False
        if not isinstance(require_eligibility, bool):
            raise InvalidRequestError(
                "Invalid requireEligibility", "requireEligibility must be a boolean"
            )

        return cls(
            proof=coerce_bytes(body["proof"], "proof"),
            public_inputs=coerce_bytes(body["publicInputs"], "publicInputs"),
            instruction_data=_decode_instruction_data(body["instructionData"]),
            accounts=dict(accounts),
            eligibility_proofs=list(eligibility),
            require_eligibility=require_eligibility,
        )


def _decode_instruction_data(value: Any) -> bytes:
    if not isinstance(value, str):
        raise InvalidRequestError(
            "Invalid instructionData", "instructionData must be a base64 string"
        )
    try:
        data = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidRequestError("Invalid instructionData", str(exc)) from exc
    if not data:
        raise InvalidRequestError("Invalid instructionData", "instructionData is empty")
    return data


@dataclass(frozen=True)
class RelayerResponse:
    success: bool
    signature: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    details: Any = None
    logs: Optional[List[str]] = None
    debug: Optional[Dict[str, Any]] = None

    @classmethod
    def ok(cls, signature: str) -> "RelayerResponse":
        return cls(success=True, signature=signature)

    @classmethod
    def from_error(cls, exc: ZkGateError) -> "RelayerResponse":
        payload = exc.to_payload()
        return cls(
            success=False,
            error=payload["error"],
            error_code=payload["errorCode"],
            details=payload.get("details"),
            logs=payload.get("logs"),
            debug=payload.get("debug"),
        )

    def to_json(self) -> dict:
        if self.success:
            return {"success": True, "signature": self.signature}
        payload: dict = {
            "success": False,
            "error": self.error,
            "errorCode": self.error_code,
        }
        if self.details not in (None, ""):
            payload["details"] = self.details
        if self.logs is not None:
            payload["logs"] = list(self.logs)
        if self.debug is not None:
            payload["debug"] = dict(self.debug)
        return payload
