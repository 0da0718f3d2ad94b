"""
Property Registry - Identity API Blueprint

REST endpoints for the identity registry:
- Register and update the caller's own identity
- Set and remove the caller's identity attributes
- Administrator verification and reputation updates
- Identity lookups
"""

from flask import Blueprint, g

from property_registry import PropertyRegistry

from .state import execute, query
from .utils import get_json_payload, ok, require_api_key, require_caller

identities_bp = Blueprint("identities", __name__)


# =============================================================================
# Caller-owned Identity
# =============================================================================


@identities_bp.route("/identities", methods=["POST"])
@require_api_key
@require_caller
def register_identity():
    """
    Register the caller's identity.

    Request body:
        {"name": "Alice", "email": "alice@example.com"}
    """
    data, error = get_json_payload({"name": str, "email": str})
    if error:
        return error

    result = execute(
        "register-identity",
        g.caller,
        PropertyRegistry.register_identity,
        data["name"],
        data["email"],
    )
    return ok(result, 201)


@identities_bp.route("/identities/me", methods=["PUT"])
@require_api_key
@require_caller
def update_identity():
    data, error = get_json_payload({"name": str, "email": str})
    if error:
        return error

    result = execute(
        "update-identity",
        g.caller,
        PropertyRegistry.update_identity,
        data["name"],
        data["email"],
    )
    return ok(result)


@identities_bp.route("/identities/me/attributes/<name>", methods=["PUT"])
@require_api_key
@require_caller
def set_identity_attribute(name):
    """
    Set one attribute on the caller's identity.

    Request body:
        {"value": "licensed-appraiser"}
    """
    data, error = get_json_payload({"value": str})
    if error:
        return error

    result = execute(
        "set-identity-attribute",
        g.caller,
        PropertyRegistry.set_identity_attribute,
        name,
        data["value"],
    )
    return ok(result)


@identities_bp.route("/identities/me/attributes/<name>", methods=["DELETE"])
@require_api_key
@require_caller
def remove_identity_attribute(name):
    result = execute(
        "remove-identity-attribute",
        g.caller,
        PropertyRegistry.remove_identity_attribute,
        name,
    )
    return ok(result)


# =============================================================================
# Administrator Actions
# =============================================================================


@identities_bp.route("/identities/<actor>/verify", methods=["POST"])
@require_api_key
@require_caller
def verify_identity(actor):
    result = execute("verify-identity", g.caller, PropertyRegistry.verify_identity, actor)
    return ok(result)


@identities_bp.route("/identities/<actor>/reputation", methods=["PUT"])
@require_api_key
@require_caller
def update_reputation(actor):
    """
    Overwrite an identity's reputation score.

    Request body:
        {"score": 75}
    """
    data, error = get_json_payload({"score": int})
    if error:
        return error

    result = execute(
        "update-reputation",
        g.caller,
        PropertyRegistry.update_reputation,
        actor,
        data["score"],
    )
    return ok(result)


# =============================================================================
# Lookups
# =============================================================================


@identities_bp.route("/identities/<actor>", methods=["GET"])
@require_api_key
def get_identity_details(actor):
    identity = query(PropertyRegistry.get_identity_details, actor)
    return ok(identity.to_dict() if identity else None)


@identities_bp.route("/identities/<actor>/attributes/<name>", methods=["GET"])
@require_api_key
def get_identity_attribute(actor, name):
    return ok(query(PropertyRegistry.get_identity_attribute, actor, name))


@identities_bp.route("/identities/<actor>/verified", methods=["GET"])
@require_api_key
def is_identity_verified(actor):
    return ok(query(PropertyRegistry.is_identity_verified, actor))


@identities_bp.route("/identities/<actor>/reputation", methods=["GET"])
@require_api_key
def get_reputation_score(actor):
    return ok(query(PropertyRegistry.get_reputation_score, actor))
