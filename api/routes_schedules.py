"""
api.routes_schedules - Doctor roster import and eligibility recalculation.
"""

from flask import request, jsonify

import config
from api import api_bp, get_store
from import_engine import derive_eligibility, import_schedules
from import_engine.dates import DateOrder
from schema import load_services


@api_bp.route("/schedules/import", methods=["POST"])
def api_import_schedules():
    """
    POST /api/v1/schedules/import
    Multipart: 'file' (.xlsx, every sheet is read).  Replaces all schedules.
    """
    f = request.files.get("file")
    if not f or not f.filename:
        return jsonify({"error": "no file in upload"}), 400

    report = import_schedules(
        f.read(), f.filename, get_store(),
        default_order=DateOrder.from_setting(config.DEFAULT_DATE_ORDER),
    )
    return jsonify(report.to_dict())


@api_bp.route("/eligibility/recalculate", methods=["POST"])
def api_recalculate_eligibility():
    """POST /api/v1/eligibility/recalculate - derive rows for every patient."""
    services = load_services(config.SERVICES_PATH)
    report = derive_eligibility(get_store(), services)
    return jsonify({"services": len(services), **report.to_dict()})
