"""Constants for the relay submission engine."""

from __future__ import annotations

from ..proving.circuits import MIN_BALANCE, SMT_EXCLUSION, TOKEN_HOLDER

NULLIFIER_SEED = b"nullifier"
NULLIFIER_HASH_BYTES = 32
DISCRIMINATOR_BYTES = 8
SWAP_INSTRUCTION_NAME = "swap_private"

DEFAULT_COMPUTE_UNIT_LIMIT = 400_000
DEFAULT_COMPUTE_UNIT_PRICE = 1_000  # micro-lamports per compute unit

DEFAULT_CONFIRM_MAX_POLLS = 30
DEFAULT_CONFIRM_POLL_INTERVAL = 1.0

# eligibility bundle type -> circuit verified against
ELIGIBILITY_CIRCUITS = {
    "min_balance": MIN_BALANCE,
    "token_holder": TOKEN_HOLDER,
    "exclusion": SMT_EXCLUSION,
}

REQUEST_FIELDS = ("proof", "publicInputs", "instructionData", "accounts")

REQUIRED_ACCOUNTS = (
    "pool",
    "inputShieldedPool",
    "inputRootHistory",
    "verifierProgram",
    "tokenProgram",
    "systemProgram",
    "shieldedVaultIn",
    "reserveIn",
    "reserveOut",
    "recipientToken",
)
