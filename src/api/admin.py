"""
Property Registry - Administration API Blueprint
"""

from flask import Blueprint, g

from property_registry import PropertyRegistry, get_registry_config

from .state import execute, get_statistics, query
from .utils import get_json_payload, ok, require_api_key, require_caller

admin_bp = Blueprint("admin", __name__)


@admin_bp.route("/admin/initialize", methods=["POST"])
@require_api_key
@require_caller
def initialize():
    """
    Hand over administration and set the reputation threshold.

    Request body:
        {"new_admin": "registrar", "min_reputation": 60}
    """
    data, error = get_json_payload({"new_admin": str, "min_reputation": int})
    if error:
        return error

    result = execute(
        "initialize",
        g.caller,
        PropertyRegistry.initialize,
        data["new_admin"],
        data["min_reputation"],
    )
    return ok(result)


@admin_bp.route("/admin", methods=["GET"])
@require_api_key
def get_administration():
    """Current administration record, record counts and static configuration."""
    administration = query(PropertyRegistry.get_administration)
    return ok({
        "administration": administration.to_dict(),
        "statistics": get_statistics(),
        "config": get_registry_config(),
    })
