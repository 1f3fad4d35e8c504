"""
api - REST API layer.

All route modules register on a single Flask Blueprint
with url_prefix /api/v1.  The field registry and the store are
app-level objects, created by main.create_app().
"""

from flask import Blueprint, current_app

api_bp = Blueprint("api", __name__, url_prefix="/api/v1")


def get_registry():
    return current_app.config["FIELD_REGISTRY"]


def get_store():
    return current_app.config["STORE"]


# Import route modules so their @api_bp decorators execute
from api import routes_fields     # noqa: F401, E402
from api import routes_import     # noqa: F401, E402
from api import routes_schedules  # noqa: F401, E402
from api import errors            # noqa: F401, E402
