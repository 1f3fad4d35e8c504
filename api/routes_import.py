"""
api.routes_import - /api/v1/import endpoints.

Accepts a workbook (.xlsx or .csv) via multipart upload, field 'file'.
"""

import json
from datetime import date

from flask import request, jsonify

import config
from api import api_bp, get_registry, get_store
from import_engine import ImportSession, run_import
from import_engine.dates import DateOrder
from import_engine.workbook_reader import read_sheet


def _upload():
    """(content, filename) of the uploaded workbook, or (None, error response)."""
    f = request.files.get("file")
    if not f or not f.filename:
        return None, (jsonify({"error": "no file in upload"}), 400)
    content = f.read()
    if not content:
        return None, (jsonify({"error": "empty file"}), 400)
    return (content, f.filename), None


@api_bp.route("/import/preview", methods=["POST"])
def api_import_preview():
    """
    POST /api/v1/import/preview?type=patients|preventive

    Column mappings, missing required fields, detected date order and
    the first canonical records.  Nothing is written.
    """
    upload, err = _upload()
    if err:
        return err
    content, filename = upload
    import_type = request.args.get("type", "patients")

    sheet = read_sheet(content, filename)
    session = ImportSession(
        get_registry(), import_type,
        default_order=DateOrder.from_setting(config.DEFAULT_DATE_ORDER),
        today=date.today(),
    )
    mappings = session.load(sheet.headers, sheet.rows)
    return jsonify({
        "sheet": sheet.name,
        "total_rows": len(sheet.rows),
        "date_order": session.date_order.value,
        "mappings": [m.to_dict() for m in mappings],
        "missing_required": [d.key for d in session.missing_required()],
        "available_fields": get_registry().available_fields(import_type),
        "preview": session.preview(),
    })


@api_bp.route("/import", methods=["POST"])
def api_import():
    """
    POST /api/v1/import?type=patients|preventive

    Multipart: 'file', optional 'mapping' = JSON {column: field_key|""}
    overriding the automatic column mapping.
    """
    upload, err = _upload()
    if err:
        return err
    content, filename = upload

    overrides = None
    raw_mapping = request.form.get("mapping", "").strip()
    if raw_mapping:
        try:
            overrides = json.loads(raw_mapping)
        except json.JSONDecodeError:
            return jsonify({"error": "mapping is not valid JSON"}), 400
        if not isinstance(overrides, dict):
            return jsonify({"error": "mapping must be a JSON object"}), 400

    report = run_import(
        content, filename, get_store(), get_registry(),
        request.args.get("type", "patients"),
        mapping_overrides=overrides,
    )
    return jsonify(report.to_dict())
