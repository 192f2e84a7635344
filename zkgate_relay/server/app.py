"""
Flask application for the proof and relayer endpoints.

Registers the blueprints and installs JSON error handlers so every failure,
including unknown routes and unexpected exceptions, answers with the same
``{error, errorCode, status}`` shape.
"""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .. import __version__
from ..config import Settings, load_settings
from ..errors import ErrorCodes, InternalError, ZkGateError
from ..proving.toolchain import Toolchain
from ..relayer.rpc import ChainRpc
from ..runtime import build_services
from .prove import prove_bp
from .relayer import relayer_bp
from .responses import EXTENSION_KEY, error_response

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    toolchain: Optional[Toolchain] = None,
    rpc: Optional[ChainRpc] = None,
) -> Flask:
    app = Flask(__name__)
    settings = settings or load_settings()
    app.extensions[EXTENSION_KEY] = build_services(settings, toolchain=toolchain, rpc=rpc)

    app.register_blueprint(prove_bp)
    app.register_blueprint(relayer_bp)

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "version": __version__})

    @app.errorhandler(ZkGateError)
    def handle_zkgate_error(exc):
        if exc.status >= 500:
            logger.error("%s: %s (%s)", exc.code, exc.message, exc.details)
        return error_response(exc)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        code = ErrorCodes.INVALID_REQUEST if exc.code < 500 else ErrorCodes.INTERNAL_ERROR
        payload = {"error": exc.name, "errorCode": code, "status": exc.code}
        return jsonify(payload), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        logger.exception("Unexpected error handling request")
        return error_response(InternalError(str(exc)))

    return app
