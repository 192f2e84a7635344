"""Constants for the proof-artifact pipeline."""

from __future__ import annotations

# BN254 scalar field modulus used by Noir circuits
BN254_MODULUS = (
    21888242871839275222246405745257275088548364400416034343698204186575808495617
)

# Address fingerprints fold at most this many bytes (128 bits < BN254 modulus)
ADDRESS_FIELD_BYTES = 16
FIELD_BYTES = 32

SOURCE_RELATIVE_PATH = "src/main.nr"
PROVER_INPUT_FILE = "Prover.toml"
TARGET_DIR_NAME = "target"
FALLBACK_VK_NAME = "verifying_key.vk"
MANIFEST_SUFFIX = ".artifacts.json"

DEFAULT_TOOL_TIMEOUT = 120
NARGO = "nargo"
SUNSPOT = "sunspot"

MAX_PROOF_BYTES = 16384
MAX_PUBLIC_INPUTS_BYTES = 65536
MAX_META_BYTES = 4096
BUNDLE_V = 1

# gnark public witness header: nbPublic (u32) + nbSecret (u32) + len (u32)
PUBLIC_WITNESS_HEADER_BYTES = 12
