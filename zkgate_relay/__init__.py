"""
zkgate-relay: proof-artifact pipeline and relay submission engine.

⚠️ The fixture toolchain produces deterministic stand-in proofs with NO
cryptographic soundness. Use it for tests and demos only.
"""

__version__ = "0.1.0"
