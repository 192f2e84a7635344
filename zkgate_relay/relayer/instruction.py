"""Swap instruction and transaction assembly."""

from __future__ import annotations

from typing import Mapping, Sequence

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from ..errors import InvalidRequestError
from .constants import REQUIRED_ACCOUNTS


def parse_pubkey(value: str, label: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRequestError(f"Invalid {label}", f"{label} is not a valid address") from exc


def missing_accounts(accounts: Mapping[str, str]) -> list[str]:
    return [name for name in REQUIRED_ACCOUNTS if not accounts.get(name)]


def build_instruction(
    instruction_data: bytes,
    accounts: Mapping[str, str],
    relayer: Pubkey,
    nullifier_address: Pubkey,
    program_id: Pubkey,
) -> Instruction:
    """
    Assemble the swap instruction.

    Account order is fixed by the program: pool, input shielded pool, root
    history, verifier, nullifier, relayer (signer, pays), token program,
    system program, then the remaining accounts.
    """

    def meta(name: str, writable: bool) -> AccountMeta:
        return AccountMeta(parse_pubkey(accounts[name], name), is_signer=False, is_writable=writable)

    keys = [
        meta("pool", True),
        meta("inputShieldedPool", True),
        meta("inputRootHistory", True),
        meta("verifierProgram", False),
        AccountMeta(nullifier_address, is_signer=False, is_writable=True),
        AccountMeta(relayer, is_signer=True, is_writable=True),
        meta("tokenProgram", False),
        meta("systemProgram", False),
        meta("shieldedVaultIn", True),
        meta("reserveIn", True),
        meta("reserveOut", True),
        meta("recipientToken", True),
    ]
    return Instruction(program_id, bytes(instruction_data), keys)


def compute_budget_instructions(unit_limit: int, unit_price: int) -> list[Instruction]:
    return [set_compute_unit_limit(unit_limit), set_compute_unit_price(unit_price)]


def build_transaction(
    instructions: Sequence[Instruction], payer: Keypair, blockhash: Hash
) -> Transaction:
    message = Message.new_with_blockhash(list(instructions), payer.pubkey(), blockhash)
    return Transaction([payer], message, blockhash)
