"""
Property Registry - Operation Error Hierarchy

Every rejected operation raises exactly one of these exceptions. They are
ordinary precondition failures, never internal faults: the operation that
raised left registry state untouched and the caller may resubmit a corrected
operation.

Numeric codes match the codes the registry has always reported to clients:

    Unauthorized               1
    AlreadyRegistered          2
    IdentityNotFound           3
    IdentityNotVerified        4
    AssetNotFound              5
    NotAssetOwner              6
    InvalidInput               7
    AttestationNotFound        8
    InsufficientReputation     9
    InvalidClaimType          10
    AttestationAlreadyRevoked 11
"""

from typing import Any


class RegistryError(Exception):
    """
    Base exception for all registry operation rejections.

    Carries the numeric error code, the operation that was rejected and
    structured details for logging and API responses.
    """

    code: int = 0

    def __init__(
        self,
        message: str,
        operation: str = "unknown",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.details = details or {}

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error": self.name,
            "code": self.code,
            "message": self.message,
            "operation": self.operation,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.operation}] {self.message} (err u{self.code})"


# =============================================================================
# Authorization
# =============================================================================


class Unauthorized(RegistryError):
    """Caller does not hold the administrator role."""

    code = 1


class NotAssetOwner(RegistryError):
    """Caller is not the current owner of the asset."""

    code = 6


# =============================================================================
# Identity
# =============================================================================


class AlreadyRegistered(RegistryError):
    """Caller already has an identity record."""

    code = 2


class IdentityNotFound(RegistryError):
    """No identity record exists for the actor."""

    code = 3


class IdentityNotVerified(RegistryError):
    """The actor has no identity or it has not been verified by the administrator."""

    code = 4


class InsufficientReputation(RegistryError):
    """Attester reputation is below the minimum threshold."""

    code = 9


# =============================================================================
# Assets
# =============================================================================


class AssetNotFound(RegistryError):
    code = 5


# =============================================================================
# Attestations
# =============================================================================


class AttestationNotFound(RegistryError):
    code = 8


class InvalidClaimType(RegistryError):
    """Claim type is not on the allow-list."""

    code = 10


class AttestationAlreadyRevoked(RegistryError):
    """Revocation is terminal; the attestation can no longer change."""

    code = 11


# =============================================================================
# Arguments
# =============================================================================


class InvalidInput(RegistryError):
    """
    An argument is outside its domain, or a removal targets a missing attribute.

    Examples:
    - text longer than its bound
    - negative or non-integer unsigned value
    - removing an identity attribute that was never set
    """

    code = 7


ERROR_TYPES: tuple[type[RegistryError], ...] = (
    Unauthorized,
    AlreadyRegistered,
    IdentityNotFound,
    IdentityNotVerified,
    AssetNotFound,
    NotAssetOwner,
    InvalidInput,
    AttestationNotFound,
    InsufficientReputation,
    InvalidClaimType,
    AttestationAlreadyRevoked,
)

ERROR_CODES: dict[str, int] = {cls.__name__: cls.code for cls in ERROR_TYPES}


def error_for_code(code: int) -> type[RegistryError]:
    """
    Look up the exception class for a numeric error code.

    Raises:
        KeyError: If the code is not part of the taxonomy
    """
    for cls in ERROR_TYPES:
        if cls.code == code:
            return cls
    raise KeyError(f"Unknown registry error code: {code}")
