"""
Blueprint: relayer_bp

Gasless relay endpoint. The relay authority signs and pays for the user's
swap instruction after eligibility checks and a clean simulation.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from .responses import services

relayer_bp = Blueprint("relayer", __name__)


@relayer_bp.route("/api/relayer", methods=["POST"])
def relay():
    body = request.get_json(silent=True)
    status, payload = services().relay.submit(body)
    return jsonify(payload), status
