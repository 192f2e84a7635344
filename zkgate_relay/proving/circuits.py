"""Circuit catalogue: request parameters, prover inputs and rejection messages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from ..errors import (
    BusinessRuleError,
    ErrorCodes,
    InvalidRequestError,
    MissingParametersError,
)
from .fields import address_to_field, generate_address_hash, to_field_string

MIN_BALANCE = "min_balance"
TOKEN_HOLDER = "token_holder"
SMT_EXCLUSION = "smt_exclusion"
SHIELDED_SPEND = "shielded_spend"

# min_balance demo tree: leaf = balance, node = left + right + 1, all siblings 0
ACCOUNT_DATA_BYTES = 165
MERKLE_DEPTH = 32

ProverInputs = dict[str, Any]
InputBuilder = Callable[[Mapping[str, Any]], tuple[ProverInputs, dict]]


@dataclass(frozen=True)
class CircuitDefinition:
    name: str
    description: str
    required: tuple[str, ...]
    private_inputs: tuple[str, ...]
    public_inputs: tuple[str, ...]
    rejection_code: str
    rejection_message: str
    build: InputBuilder
    rejection_details: str | None = None
    optional: Mapping[str, Any] = field(default_factory=dict)

    def prepare(self, params: Mapping[str, Any]) -> tuple[ProverInputs, dict]:
        """Validate request parameters and render the circuit's prover inputs."""
        missing = [name for name in self.required if _is_missing(params.get(name))]
        if missing:
            raise MissingParametersError(missing)
        merged = dict(self.optional)
        merged.update({k: v for k, v in params.items() if v is not None})
        return self.build(merged)

    def rejection(self) -> BusinessRuleError:
        return BusinessRuleError(
            self.rejection_code, self.rejection_message, self.rejection_details
        )

    def describe_inputs(self) -> dict:
        return {"private": list(self.private_inputs), "public": list(self.public_inputs)}


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _field(params: Mapping[str, Any], name: str) -> str:
    try:
        return to_field_string(params[name], name)
    except ValueError as exc:
        raise InvalidRequestError(f"Invalid {name}", str(exc)) from exc


def _field_list(params: Mapping[str, Any], name: str) -> list[str]:
    values = params[name]
    if not isinstance(values, (list, tuple)):
        raise InvalidRequestError(f"Invalid {name}", f"{name} must be an array")
    rendered = []
    for index, value in enumerate(values):
        try:
            rendered.append(to_field_string(value, f"{name}[{index}]"))
        except ValueError as exc:
            raise InvalidRequestError(f"Invalid {name}", str(exc)) from exc
    return rendered


def _address(params: Mapping[str, Any], name: str) -> str:
    value = params[name]
    if not isinstance(value, str):
        raise InvalidRequestError(f"Invalid {name}", f"{name} must be a string")
    return address_to_field(value.strip())


def _build_min_balance(params: Mapping[str, Any]) -> tuple[ProverInputs, dict]:
    try:
        balance = to_field_string(params["balance"], "balance")
    except ValueError as exc:
        raise BusinessRuleError(
            ErrorCodes.INVALID_BALANCE,
            "Invalid balance: must be non-negative",
            str(exc),
        ) from exc
    threshold = _field(params, "threshold")
    inputs = {
        "balance": balance,
        "account_data": [0] * ACCOUNT_DATA_BYTES,
        "merkle_path": ["0"] * MERKLE_DEPTH,
        "merkle_indices": "0",
        "state_root": str(int(balance) + MERKLE_DEPTH),
        "threshold": threshold,
    }
    return inputs, {"threshold": threshold}


def _build_token_holder(params: Mapping[str, Any]) -> tuple[ProverInputs, dict]:
    token_amount = _field(params, "token_amount")
    min_required = _field(params, "min_required")
    inputs = {
        "token_amount": token_amount,
        "user_address": _address(params, "user_address"),
        "token_mint": _address(params, "token_mint"),
        "min_required": min_required,
    }
    return inputs, {"token_mint": params["token_mint"], "min_required": min_required}


def exclusion_inputs(address: str, blacklist_root: Any = "0") -> ProverInputs:
    address_field = address_to_field(address.strip())
    try:
        root = to_field_string(blacklist_root, "blacklist_root")
    except ValueError as exc:
        raise InvalidRequestError("Invalid blacklist_root", str(exc)) from exc
    return {
        "address": address_field,
        "address_hash": generate_address_hash(address_field),
        "blacklist_root": root,
    }


def _build_smt_exclusion(params: Mapping[str, Any]) -> tuple[ProverInputs, dict]:
    if not isinstance(params["address"], str):
        raise InvalidRequestError("Invalid address", "address must be a string")
    inputs = exclusion_inputs(params["address"], params.get("blacklist_root", "0"))
    return inputs, {"blacklist_root": inputs["blacklist_root"]}


def _build_shielded_spend(params: Mapping[str, Any]) -> tuple[ProverInputs, dict]:
    amount = _field(params, "amount")
    merkle_path = _field_list(params, "merkle_path")
    merkle_indices = _field_list(params, "merkle_indices")
    if len(merkle_path) != len(merkle_indices):
        raise InvalidRequestError(
            "Invalid merkle proof",
            "merkle_path and merkle_indices must have the same length",
        )
    inputs = {
        "amount": amount,
        "secret": _field(params, "secret"),
        "nullifier": _field(params, "nullifier"),
        "merkle_path": merkle_path,
        "merkle_indices": merkle_indices,
        "root": _field(params, "root"),
        "nullifier_hash": _field(params, "nullifier_hash"),
        "amount_pub": amount,
        "recipient": _address(params, "recipient"),
        "mint": _address(params, "mint"),
        "pool_id": _address(params, "pool_id"),
    }
    metadata = {
        "amount": amount,
        "recipient": params["recipient"],
        "mint": params["mint"],
        "pool_id": params["pool_id"],
    }
    return inputs, metadata


CIRCUITS: dict[str, CircuitDefinition] = {
    MIN_BALANCE: CircuitDefinition(
        name=MIN_BALANCE,
        description="Proves balance >= threshold without revealing actual balance",
        required=("balance", "threshold"),
        private_inputs=("balance", "account_data", "merkle_path", "merkle_indices"),
        public_inputs=("state_root", "threshold"),
        rejection_code=ErrorCodes.BALANCE_BELOW_THRESHOLD,
        rejection_message="Balance verification failed",
        rejection_details=(
            "The circuit assertion failed. This usually means your balance is "
            "below the required threshold."
        ),
        build=_build_min_balance,
    ),
    TOKEN_HOLDER: CircuitDefinition(
        name=TOKEN_HOLDER,
        description="Proves token ownership >= minimum",
        required=("token_amount", "user_address", "token_mint", "min_required"),
        private_inputs=("token_amount", "user_address"),
        public_inputs=("token_mint", "min_required"),
        rejection_code=ErrorCodes.INSUFFICIENT_HOLDINGS,
        rejection_message="Token holding verification failed",
        build=_build_token_holder,
    ),
    SMT_EXCLUSION: CircuitDefinition(
        name=SMT_EXCLUSION,
        description="Proves address is NOT on a blacklist",
        required=("address",),
        private_inputs=("address", "address_hash"),
        public_inputs=("blacklist_root",),
        rejection_code=ErrorCodes.ADDRESS_BLACKLISTED,
        rejection_message="Address may be blacklisted",
        build=_build_smt_exclusion,
        optional={"blacklist_root": "0"},
    ),
    SHIELDED_SPEND: CircuitDefinition(
        name=SHIELDED_SPEND,
        description="Shielded spend proof (note membership + nullifier + recipient binding)",
        required=(
            "amount",
            "secret",
            "nullifier",
            "nullifier_hash",
            "merkle_path",
            "merkle_indices",
            "root",
            "recipient",
            "mint",
            "pool_id",
        ),
        private_inputs=("amount", "secret", "nullifier", "merkle_path", "merkle_indices"),
        public_inputs=("root", "nullifier_hash", "amount_pub", "recipient", "mint", "pool_id"),
        rejection_code=ErrorCodes.NOTE_VERIFICATION_FAILED,
        rejection_message="Note verification failed",
        build=_build_shielded_spend,
    ),
}


def get_circuit(name: str) -> CircuitDefinition:
    if not isinstance(name, str):
        raise InvalidRequestError("Invalid circuit", "circuit must be a string")
    try:
        return CIRCUITS[name]
    except KeyError:
        raise InvalidRequestError(f"Unknown circuit: {name}") from None
