"""
Property Registry - Asset API Blueprint

REST endpoints for the asset registry and its ownership history.
"""

from flask import Blueprint, g

from property_registry import PropertyRegistry

from .state import execute, query
from .utils import get_json_payload, ok, require_api_key, require_caller

assets_bp = Blueprint("assets", __name__)


@assets_bp.route("/assets", methods=["POST"])
@require_api_key
@require_caller
def register_asset():
    """
    Register a new asset owned by the caller.

    Request body:
        {
            "title": "Villa",
            "description": "3-bedroom villa",
            "asset_type": "RESIDENTIAL",
            "metadata": "{\\"sqm\\": 240}"
        }

    Returns:
        The new asset id
    """
    data, error = get_json_payload(
        {"title": str, "description": str, "asset_type": str},
        optional_fields={"metadata": str},
    )
    if error:
        return error

    asset_id = execute(
        "register-asset",
        g.caller,
        PropertyRegistry.register_asset,
        data["title"],
        data["description"],
        data["asset_type"],
        data.get("metadata") or "",
    )
    return ok(asset_id, 201)


@assets_bp.route("/assets/<int:asset_id>", methods=["PATCH"])
@require_api_key
@require_caller
def update_asset_details(asset_id):
    """
    Owner-only update. Title, description and metadata are all replaced.
    """
    data, error = get_json_payload({"title": str, "description": str, "metadata": str})
    if error:
        return error

    result = execute(
        "update-asset-details",
        g.caller,
        PropertyRegistry.update_asset_details,
        asset_id,
        data["title"],
        data["description"],
        data["metadata"],
    )
    return ok(result)


@assets_bp.route("/assets/<int:asset_id>/transfer", methods=["POST"])
@require_api_key
@require_caller
def transfer_asset(asset_id):
    """
    Transfer an asset to another verified identity.

    Request body:
        {"new_owner": "bob"}
    """
    data, error = get_json_payload({"new_owner": str})
    if error:
        return error

    result = execute(
        "transfer-asset",
        g.caller,
        PropertyRegistry.transfer_asset,
        asset_id,
        data["new_owner"],
    )
    return ok(result)


# =============================================================================
# Lookups
# =============================================================================


@assets_bp.route("/assets/<int:asset_id>", methods=["GET"])
@require_api_key
def get_asset_details(asset_id):
    asset = query(PropertyRegistry.get_asset_details, asset_id)
    return ok(asset.to_dict() if asset else None)


@assets_bp.route("/assets/<int:asset_id>/owner", methods=["GET"])
@require_api_key
def get_asset_owner(asset_id):
    return ok(query(PropertyRegistry.get_asset_owner, asset_id))


@assets_bp.route("/assets/<int:asset_id>/history", methods=["GET"])
@require_api_key
def get_ownership_history(asset_id):
    entries = query(PropertyRegistry.get_ownership_history, asset_id)
    return ok({
        "length": len(entries),
        "entries": [entry.to_dict() for entry in entries],
    })


@assets_bp.route("/assets/<int:asset_id>/history/<int:index>", methods=["GET"])
@require_api_key
def get_ownership_history_entry(asset_id, index):
    entry = query(PropertyRegistry.get_ownership_history_entry, asset_id, index)
    return ok(entry.to_dict() if entry else None)
