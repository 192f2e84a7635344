"""JSON helpers shared by the blueprints."""

from __future__ import annotations

from typing import Any

from flask import current_app, jsonify, request

from ..errors import InvalidRequestError, ZkGateError
from ..runtime import Services

EXTENSION_KEY = "zkgate"


def services() -> Services:
    return current_app.extensions[EXTENSION_KEY]


def json_body() -> dict[str, Any]:
    """Parsed JSON object body; an empty or absent body reads as ``{}``."""
    if not request.get_data(cache=True):
        return {}
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return body


def error_response(exc: ZkGateError):
    return jsonify(exc.to_payload()), exc.status
