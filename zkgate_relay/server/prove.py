"""
Blueprint: prove_bp

Proof endpoints. POST generates a proof for the route's circuit; GET reports
whether the circuit and tools are ready.
"""

from __future__ import annotations

from flask import Blueprint, jsonify

from ..errors import MissingParametersError
from ..proving.circuits import MIN_BALANCE, SHIELDED_SPEND, SMT_EXCLUSION, TOKEN_HOLDER
from .responses import json_body, services

prove_bp = Blueprint("prove", __name__)


def _prove(circuit: str):
    result = services().proofs.prove(circuit, json_body())
    return jsonify(result.to_json())


def _readiness(circuit: str):
    return jsonify(services().proofs.readiness(circuit))


@prove_bp.route("/api/prove", methods=["POST"])
def prove_min_balance():
    return _prove(MIN_BALANCE)


@prove_bp.route("/api/prove", methods=["GET"])
def min_balance_status():
    return _readiness(MIN_BALANCE)


@prove_bp.route("/api/prove/token-holder", methods=["POST"])
def prove_token_holder():
    return _prove(TOKEN_HOLDER)


@prove_bp.route("/api/prove/token-holder", methods=["GET"])
def token_holder_status():
    return _readiness(TOKEN_HOLDER)


@prove_bp.route("/api/prove/exclusion", methods=["POST"])
def prove_exclusion():
    return _prove(SMT_EXCLUSION)


@prove_bp.route("/api/prove/exclusion", methods=["GET"])
def exclusion_status():
    return _readiness(SMT_EXCLUSION)


@prove_bp.route("/api/prove/exclusion", methods=["PUT"])
def exclusion_inputs_preview():
    """Return the circuit inputs an address maps to, without proving."""
    return jsonify(services().proofs.preview_exclusion(json_body()))


@prove_bp.route("/api/prove/shielded", methods=["POST"])
def prove_shielded():
    return _prove(SHIELDED_SPEND)


@prove_bp.route("/api/prove/shielded", methods=["GET"])
def shielded_status():
    return _readiness(SHIELDED_SPEND)


@prove_bp.route("/api/prove/verify", methods=["POST"])
def verify_proof():
    body = json_body()
    missing = [name for name in ("circuit", "proof", "publicInputs") if not body.get(name)]
    if missing:
        raise MissingParametersError(missing)
    circuit = body["circuit"]
    verified = services().proofs.verify(circuit, body["proof"], body["publicInputs"])
    return jsonify({"success": True, "circuit": circuit, "verified": verified})
