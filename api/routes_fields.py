"""
api.routes_fields - /api/v1/fields: built-in and custom import fields.
"""

from flask import request, jsonify

from api import api_bp, get_registry
from schema import custom_field


@api_bp.route("/fields")
def list_fields():
    """GET /api/v1/fields?type=patients|preventive"""
    registry = get_registry()
    import_type = request.args.get("type", "").strip()
    fields = registry.fields_for_import(import_type) if import_type else registry.all_fields()
    return jsonify({
        "fields": [d.to_dict() for d in fields],
        "custom": [d.to_dict() for d in registry.snapshot()],
    })


@api_bp.route("/fields", methods=["POST"])
def create_field():
    """
    POST /api/v1/fields
    JSON: {name_ar, name_en, target_tables[], data_type, keywords[], options[]}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "JSON body required"}), 400

    tables = data.get("target_tables") or data.get("target_table") or []
    if isinstance(tables, str):
        tables = [tables]

    defn = custom_field(
        name_ar=data.get("name_ar", ""),
        name_en=data.get("name_en", ""),
        target_tables=tables,
        data_type=data.get("data_type", "text"),
        keywords=data.get("keywords") or (),
        options=data.get("options"),
    )
    defn = get_registry().register(defn)
    return jsonify(defn.to_dict()), 201


@api_bp.route("/fields/<key>", methods=["DELETE"])
def delete_field(key: str):
    """DELETE /api/v1/fields/{key} - custom fields only."""
    if not get_registry().unregister(key):
        return jsonify({"error": "not found"}), 404
    return jsonify({"deleted": key})
