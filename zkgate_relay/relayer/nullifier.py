"""
Nullifier hash extraction and nullifier account derivation.

The swap instruction payload is laid out as::

    discriminator (8)
    proof          (u32 LE length + bytes)
    public_inputs  (u32 LE length + bytes)
    amount_in      (u64 LE)
    min_out        (u64 LE)
    is_a_to_b      (bool, 1 byte)
    nullifier_hash ([u8; 32])

When the payload does not decode, the nullifier hash is taken from the second
32-byte slot of the public inputs, skipping a 12-byte gnark header if present.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Mapping, Optional

from solders.pubkey import Pubkey

from ..errors import InvalidRequestError
from ..proving.constants import PUBLIC_WITNESS_HEADER_BYTES
from .constants import (
    DISCRIMINATOR_BYTES,
    NULLIFIER_HASH_BYTES,
    NULLIFIER_SEED,
    SWAP_INSTRUCTION_NAME,
)
from .instruction import parse_pubkey

_U32 = struct.Struct("<I")
_TAIL = struct.Struct("<QQ?")

SOURCE_INSTRUCTION = "instruction"
SOURCE_PUBLIC_INPUTS = "public_inputs"


@dataclass(frozen=True)
class DecodedInstruction:
    name: str
    proof: bytes
    public_inputs: bytes
    amount_in: int
    min_out: int
    is_a_to_b: bool
    nullifier_hash: bytes


@dataclass(frozen=True)
class NullifierMeta:
    nullifier_hash: bytes
    source: str
    derivation_seeds: tuple[bytes, ...]
    derived_address: Pubkey
    alternate_address: Pubkey
    provided_address: Optional[Pubkey]
    from_instruction: Optional[bytes]
    from_public_inputs: Optional[bytes]
    instruction_name: Optional[str]
    decoded_proof: Optional[bytes]
    decoded_public_inputs: Optional[bytes]

    @property
    def address(self) -> Pubkey:
        """Nullifier account passed to the program."""
        return self.provided_address or self.derived_address


def _read_vec(data: bytes, offset: int) -> tuple[Optional[bytes], int]:
    if len(data) < offset + _U32.size:
        return None, offset
    (length,) = _U32.unpack_from(data, offset)
    start = offset + _U32.size
    return data[start : start + length], start + length


def decode_proof_and_public(data: bytes) -> tuple[Optional[bytes], Optional[bytes]]:
    """Best-effort decode of the proof and public input vectors."""
    proof, offset = _read_vec(data, DISCRIMINATOR_BYTES)
    if proof is None:
        return None, None
    public_inputs, _ = _read_vec(data, offset)
    return proof, public_inputs


def decode_instruction(data: bytes) -> Optional[DecodedInstruction]:
    if len(data) < DISCRIMINATOR_BYTES + _U32.size:
        return None
    offset = DISCRIMINATOR_BYTES
    (proof_len,) = _U32.unpack_from(data, offset)
    offset += _U32.size
    proof = data[offset : offset + proof_len]
    offset += proof_len
    if len(data) < offset + _U32.size:
        return None
    (public_len,) = _U32.unpack_from(data, offset)
    offset += _U32.size
    public_inputs = data[offset : offset + public_len]
    offset += public_len
    if len(data) < offset + _TAIL.size + NULLIFIER_HASH_BYTES:
        return None
    amount_in, min_out, is_a_to_b = _TAIL.unpack_from(data, offset)
    offset += _TAIL.size
    return DecodedInstruction(
        name=SWAP_INSTRUCTION_NAME,
        proof=proof,
        public_inputs=public_inputs,
        amount_in=amount_in,
        min_out=min_out,
        is_a_to_b=is_a_to_b,
        nullifier_hash=data[offset : offset + NULLIFIER_HASH_BYTES],
    )


def nullifier_from_public_inputs(public_inputs: bytes) -> Optional[bytes]:
    if len(public_inputs) < 2 * NULLIFIER_HASH_BYTES:
        return None
    header = (
        PUBLIC_WITNESS_HEADER_BYTES
        if len(public_inputs) % NULLIFIER_HASH_BYTES == PUBLIC_WITNESS_HEADER_BYTES
        else 0
    )
    start = header + NULLIFIER_HASH_BYTES
    value = public_inputs[start : start + NULLIFIER_HASH_BYTES]
    return value if len(value) == NULLIFIER_HASH_BYTES else None


def derive_nullifier_address(
    program_id: Pubkey, pool: Pubkey, nullifier_hash: bytes
) -> Pubkey:
    address, _bump = Pubkey.find_program_address(
        [NULLIFIER_SEED, bytes(pool), bytes(nullifier_hash)], program_id
    )
    return address


def build_nullifier_meta(
    instruction_data: bytes,
    public_inputs: bytes,
    accounts: Mapping[str, str],
    program_id: Pubkey,
) -> NullifierMeta:
    decoded = decode_instruction(instruction_data)
    decoded_proof, decoded_public = decode_proof_and_public(instruction_data)
    from_public = nullifier_from_public_inputs(public_inputs)

    if decoded is not None:
        nullifier_hash, source = decoded.nullifier_hash, SOURCE_INSTRUCTION
    elif from_public is not None:
        nullifier_hash, source = from_public, SOURCE_PUBLIC_INPUTS
    else:
        raise InvalidRequestError("Unable to decode nullifier hash")

    pool = parse_pubkey(accounts.get("inputShieldedPool", ""), "inputShieldedPool")
    provided = accounts.get("nullifierAccount")
    seeds = (NULLIFIER_SEED, bytes(pool), bytes(nullifier_hash))

    return NullifierMeta(
        nullifier_hash=bytes(nullifier_hash),
        source=source,
        derivation_seeds=seeds,
        derived_address=derive_nullifier_address(program_id, pool, nullifier_hash),
        alternate_address=derive_nullifier_address(
            program_id, pool, bytes(reversed(nullifier_hash))
        ),
        provided_address=parse_pubkey(provided, "nullifierAccount") if provided else None,
        from_instruction=decoded.nullifier_hash if decoded is not None else None,
        from_public_inputs=from_public,
        instruction_name=decoded.name if decoded is not None else None,
        decoded_proof=decoded_proof,
        decoded_public_inputs=decoded_public,
    )


def build_debug_snapshot(
    meta: NullifierMeta,
    accounts: Mapping[str, str],
    program_id: Pubkey,
    request_proof: Optional[bytes],
    request_public_inputs: Optional[bytes],
) -> dict:
    proof = meta.decoded_proof
    commitments = None
    if proof is not None and len(proof) >= 260:
        commitments = int.from_bytes(proof[256:260], "big")

    return {
        "inputShieldedPool": accounts.get("inputShieldedPool"),
        "programId": str(program_id),
        "nullifierSource": meta.source,
        "nullifierHashHex": meta.nullifier_hash.hex(),
        "nullifierFromPublicHex": _hex(meta.from_public_inputs),
        "nullifierFromIxHex": _hex(meta.from_instruction),
        "decodedIxName": meta.instruction_name,
        "derivedNullifierPda": str(meta.derived_address),
        "derivedNullifierPdaAlt": str(meta.alternate_address),
        "providedNullifierPda": accounts.get("nullifierAccount") or None,
        "usingProvidedNullifierPda": meta.provided_address is not None,
        "proofLen": len(proof) if proof is not None else None,
        "publicInputsLen": (
            len(meta.decoded_public_inputs)
            if meta.decoded_public_inputs is not None
            else None
        ),
        "proofCommitments": commitments,
        "requestProofLen": len(request_proof) if request_proof is not None else None,
        "requestPublicLen": (
            len(request_public_inputs) if request_public_inputs is not None else None
        ),
        "proofPrefix": _hex(proof[:8]) if proof is not None else None,
        "requestProofPrefix": _hex(request_proof[:8]) if request_proof is not None else None,
    }


def _hex(value: Optional[bytes]) -> Optional[str]:
    return value.hex() if value is not None else None
