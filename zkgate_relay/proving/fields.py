"""
Field codec: wallet addresses and byte buffers to and from BN254 field strings.

Addresses are mapped to a stable 128-bit fingerprint, not preserved. Two
addresses that share their first 16 bytes map to the same field element.
"""

from __future__ import annotations

import base58

from .constants import ADDRESS_FIELD_BYTES, BN254_MODULUS, FIELD_BYTES

_HEX_PREFIX = "0x"
_U256_MASK = (1 << (8 * FIELD_BYTES)) - 1


def address_to_field(address: str) -> str:
    """
    Convert a base58 (Solana) or hex address to a field element string.

    Rules, applied in order:
        - all-digit input is returned unchanged
        - ``0x`` input: first 16 bytes (32 hex chars) as a big-endian integer
        - otherwise: base58 decode, first 16 bytes folded big-endian
        - on any decode failure: polynomial string hash reduced into the field
    """
    if address.isdigit() and address.isascii():
        return address
    try:
        if address.startswith(_HEX_PREFIX):
            return str(int(address[2 : 2 + 2 * ADDRESS_FIELD_BYTES], 16))
        raw = base58.b58decode(address)[:ADDRESS_FIELD_BYTES]
        return str(int.from_bytes(raw, "big"))
    except ValueError:
        return _string_hash(address)


def _string_hash(value: str) -> str:
    acc = 0
    for char in value:
        acc = (acc << 5) - acc + ord(char)
    return str(abs(acc) % BN254_MODULUS)


def generate_address_hash(address_field: str) -> str:
    """Deterministic address hash used by the blacklist exclusion circuit."""
    value = int(address_field)
    return str((value * 31 + 17) % BN254_MODULUS)


def field_to_le_bytes32(field: str | int) -> bytes:
    return (_parse_field(field) & _U256_MASK).to_bytes(FIELD_BYTES, "little")


def field_to_be_bytes32(field: str | int) -> bytes:
    return (_parse_field(field) & _U256_MASK).to_bytes(FIELD_BYTES, "big")


def be_bytes_to_field(data: bytes | bytearray) -> str:
    return str(int.from_bytes(bytes(data), "big"))


def to_field_string(value, label: str) -> str:
    """Validate a non-negative integer (int or decimal string) and render it."""
    if isinstance(value, bool):
        raise ValueError(f"{label} must be a non-negative integer")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise ValueError(f"{label} must be a non-negative integer")
    if number < 0:
        raise ValueError(f"{label} must be non-negative")
    return str(number)


def _parse_field(field: str | int) -> int:
    if isinstance(field, bool):
        raise ValueError("field must be an integer")
    if isinstance(field, int):
        value = field
    else:
        try:
            value = int(str(field).strip(), 10)
        except ValueError as exc:
            raise ValueError(f"invalid field string: {field!r}") from exc
    if value < 0:
        raise ValueError("field must be non-negative")
    return value
