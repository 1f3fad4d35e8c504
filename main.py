#!/usr/bin/env python3
"""
Clinic ingest - Spreadsheet import service
==========================================

Single-command run:  python main.py

See config.py for all environment-variable tunables.
"""

import logging

from flask import Flask

import config
from api import api_bp
from db import SqlStore, init_db
from schema import FieldRegistry


def create_app(db_url: str | None = None, custom_fields_path=None) -> Flask:
    """Flask application factory."""

    app = Flask(__name__)
    app.secret_key = config.SECRET
    app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_BYTES

    # ── Initialise database ─────────────────────────────────────────
    db_url = db_url or config.DB_URL
    session_factory = init_db(db_url)
    app.config["STORE"] = SqlStore(session_factory)
    print(f"  Database: {db_url}")

    # ── Field registry (built-ins + persisted custom fields) ────────
    registry = FieldRegistry.load(custom_fields_path or config.CUSTOM_FIELDS_PATH)
    app.config["FIELD_REGISTRY"] = registry
    print(f"  Custom fields: {len(registry.snapshot())}")

    # ── Register blueprints ─────────────────────────────────────────
    app.register_blueprint(api_bp)

    return app


def main():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    print("=" * 56)
    print("  Clinic ingest - Spreadsheet import service")
    print("=" * 56)

    app = create_app()

    print(f"\n  http://{config.HOST}:{config.PORT}/api/v1")
    print(f"  Date order fallback: {config.DEFAULT_DATE_ORDER}")
    print("=" * 56)

    app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG)


if __name__ == "__main__":
    main()
