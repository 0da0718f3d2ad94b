"""
Property Registry - Attestation API Blueprint

REST endpoints for the attestation ledger. Attestations are keyed by
(attester, asset id, claim type); the attester is always the caller for
mutations.
"""

from flask import Blueprint, g

from property_registry import PropertyRegistry

from .state import execute, query
from .utils import get_json_payload, ok, require_api_key, require_caller

attestations_bp = Blueprint("attestations", __name__)


@attestations_bp.route("/attestations", methods=["POST"])
@require_api_key
@require_caller
def make_attestation():
    """
    Attest a claim about an asset.

    Request body:
        {"asset_id": 0, "claim_type": "VALUATION", "value": "450000 EUR"}
    """
    data, error = get_json_payload({"asset_id": int, "claim_type": str, "value": str})
    if error:
        return error

    result = execute(
        "make-attestation",
        g.caller,
        PropertyRegistry.make_attestation,
        data["asset_id"],
        data["claim_type"],
        data["value"],
    )
    return ok(result, 201)


@attestations_bp.route("/attestations/<int:asset_id>/<claim_type>", methods=["PUT"])
@require_api_key
@require_caller
def update_attestation(asset_id, claim_type):
    data, error = get_json_payload({"value": str})
    if error:
        return error

    result = execute(
        "update-attestation",
        g.caller,
        PropertyRegistry.update_attestation,
        asset_id,
        claim_type,
        data["value"],
    )
    return ok(result)


@attestations_bp.route("/attestations/<int:asset_id>/<claim_type>/revoke", methods=["POST"])
@require_api_key
@require_caller
def revoke_attestation(asset_id, claim_type):
    result = execute(
        "revoke-attestation",
        g.caller,
        PropertyRegistry.revoke_attestation,
        asset_id,
        claim_type,
    )
    return ok(result)


# =============================================================================
# Lookups
# =============================================================================


@attestations_bp.route("/attestations/<attester>/<int:asset_id>/<claim_type>", methods=["GET"])
@require_api_key
def get_attestation(attester, asset_id, claim_type):
    attestation = query(PropertyRegistry.get_attestation, attester, asset_id, claim_type)
    return ok(attestation.to_dict() if attestation else None)


@attestations_bp.route(
    "/attestations/<attester>/<int:asset_id>/<claim_type>/valid", methods=["GET"]
)
@require_api_key
def is_attestation_valid(attester, asset_id, claim_type):
    return ok(query(PropertyRegistry.is_attestation_valid, attester, asset_id, claim_type))


@attestations_bp.route("/claim-types", methods=["GET"])
@require_api_key
def get_allowed_claim_types():
    return ok(query(PropertyRegistry.get_allowed_claim_types))
