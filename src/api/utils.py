"""
Shared utilities for the property registry API.

Decorators and helpers used across all blueprints:
- API key authentication (X-API-Key)
- Caller extraction (X-Caller-Id)
- JSON payload validation
- Response envelopes
"""

import os
import secrets
from functools import wraps
from typing import Any

from flask import g, jsonify, request

from registry_errors import (
    AlreadyRegistered,
    AssetNotFound,
    AttestationAlreadyRevoked,
    AttestationNotFound,
    IdentityNotFound,
    IdentityNotVerified,
    InsufficientReputation,
    InvalidClaimType,
    InvalidInput,
    NotAssetOwner,
    RegistryError,
    Unauthorized,
)

API_KEY_ENV = "PROPERTY_REGISTRY_API_KEY"
REQUIRE_AUTH_ENV = "PROPERTY_REGISTRY_REQUIRE_AUTH"
CALLER_HEADER = "X-Caller-Id"

# HTTP status for each registry rejection
ERROR_STATUS: dict[type[RegistryError], int] = {
    InvalidInput: 400,
    InvalidClaimType: 400,
    Unauthorized: 403,
    NotAssetOwner: 403,
    IdentityNotVerified: 403,
    InsufficientReputation: 403,
    IdentityNotFound: 404,
    AssetNotFound: 404,
    AttestationNotFound: 404,
    AlreadyRegistered: 409,
    AttestationAlreadyRevoked: 409,
}


def status_for_error(error: RegistryError) -> int:
    return ERROR_STATUS.get(type(error), 400)


# ============================================================
# Configuration
# ============================================================


def api_key_required() -> bool:
    # Secure default: authentication on unless explicitly disabled
    return os.getenv(REQUIRE_AUTH_ENV, "true").lower() == "true"


def get_api_key() -> str | None:
    return os.getenv(API_KEY_ENV)


# ============================================================
# Validation Utilities
# ============================================================


def validate_json_schema(
    data: Any,
    required_fields: dict[str, type | tuple[type, ...]],
    optional_fields: dict[str, type | tuple[type, ...]] | None = None,
) -> tuple[bool, str | None]:
    """
    Validate a JSON payload against a simple schema.

    Only checks structure and types; value domains (text bounds, unsigned
    ranges) are enforced by the registry itself.

    Args:
        data: The JSON data to validate
        required_fields: Field names mapped to expected types
        optional_fields: Optional field names mapped to expected types

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    for field_name, expected_type in required_fields.items():
        if field_name not in data:
            return False, f"Missing required field: {field_name}"
        if not isinstance(data[field_name], expected_type):
            return False, f"Field '{field_name}' must be of type {_type_name(expected_type)}"

    if optional_fields:
        for field_name, expected_type in optional_fields.items():
            if field_name in data and data[field_name] is not None:
                if not isinstance(data[field_name], expected_type):
                    return False, f"Field '{field_name}' must be of type {_type_name(expected_type)}"

    return True, None


def _type_name(expected_type: type | tuple[type, ...]) -> str:
    if isinstance(expected_type, tuple):
        return " or ".join(t.__name__ for t in expected_type)
    return expected_type.__name__


def get_json_payload(
    required_fields: dict[str, type | tuple[type, ...]],
    optional_fields: dict[str, type | tuple[type, ...]] | None = None,
) -> tuple[dict[str, Any] | None, Any]:
    """
    Parse and validate the request body.

    Returns:
        (payload, None) on success, or (None, error_response) to return as-is
    """
    data = request.get_json(silent=True)
    is_valid, error_msg = validate_json_schema(data, required_fields, optional_fields)
    if not is_valid:
        return None, (jsonify({"error": error_msg}), 400)
    return data, None


def ok(result: Any = True, status: int = 200):
    """Success envelope."""
    return jsonify({"ok": True, "result": result}), status


# ============================================================
# Authentication Decorators
# ============================================================


def require_api_key(f):
    """Decorator to require API key authentication."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not api_key_required():
            return f(*args, **kwargs)

        provided_key = request.headers.get("X-API-Key")
        if not provided_key:
            return jsonify({
                "error": "API key required",
                "hint": "Provide API key in X-API-Key header"
            }), 401

        api_key = get_api_key()
        if not api_key:
            return jsonify({
                "error": "Server API key not configured",
                "hint": f"Set {API_KEY_ENV} environment variable"
            }), 503

        if not secrets.compare_digest(provided_key, api_key):
            return jsonify({"error": "Invalid API key"}), 403

        return f(*args, **kwargs)
    return decorated_function


def require_caller(f):
    """
    Decorator for mutating routes: the caller must be named in X-Caller-Id.

    The header is trusted as already authenticated by the fronting layer.
    The caller is exposed to the view as g.caller.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        caller = request.headers.get(CALLER_HEADER, "").strip()
        if not caller:
            return jsonify({
                "error": "Caller required",
                "hint": f"Provide the acting identity in the {CALLER_HEADER} header"
            }), 401
        g.caller = caller
        return f(*args, **kwargs)
    return decorated_function
