"""
api.errors - JSON error handlers for the API blueprint.
"""

import logging

from flask import jsonify
from api import api_bp
from import_engine import ImportStateError

logger = logging.getLogger(__name__)


@api_bp.errorhandler(404)
def api_not_found(_e):
    return jsonify({"error": "not found"}), 404


@api_bp.errorhandler(400)
def api_bad_request(_e):
    return jsonify({"error": "bad request"}), 400


@api_bp.errorhandler(ValueError)
@api_bp.errorhandler(ImportStateError)
def api_invalid_input(e):
    # Unreadable workbooks, bad field definitions, unknown import types
    return jsonify({"error": str(e)}), 400


@api_bp.errorhandler(500)
def api_server_error(e):
    logger.error(f"Unhandled API error: {e}")
    return jsonify({"error": "internal server error"}), 500
