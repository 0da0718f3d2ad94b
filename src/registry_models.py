"""
Property Registry - Records and Constants

Plain record types for identities, assets, ownership history and attestations,
plus the administration record and the call context the host supplies with
every mutating operation.

All times are logical clock values (unsigned integers supplied by the host),
never wall-clock timestamps. An end time or revocation time of 0 means
"not yet".
"""

from dataclasses import dataclass, field
from typing import Any

# =============================================================================
# Constants
# =============================================================================

MAX_UINT = 2**128 - 1

# Text bounds (characters)
MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 100
MAX_ATTRIBUTE_NAME_LENGTH = 50
MAX_ATTRIBUTE_VALUE_LENGTH = 256
MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_ASSET_TYPE_LENGTH = 50
MAX_METADATA_LENGTH = 1000
MAX_CLAIM_TYPE_LENGTH = 20
MAX_CLAIM_VALUE_LENGTH = 500

DEFAULT_MIN_REPUTATION = 50

# Allow-listed claim types, in their canonical order
DEFAULT_CLAIM_TYPES: tuple[str, ...] = (
    "CONDITION",
    "VALUATION",
    "INSPECTION",
    "PROVENANCE",
    "AUTHENTICITY",
    "APPRAISAL",
    "MAINTENANCE",
    "CERTIFICATION",
    "LEGAL_STATUS",
    "ENCUMBRANCE",
)

OPEN_INTERVAL = 0


# =============================================================================
# Call Context
# =============================================================================


@dataclass(frozen=True)
class CallContext:
    """
    What the host platform supplies to a mutating operation.

    caller: already-authenticated actor identifier
    clock: current logical clock value
    """

    caller: str
    clock: int


# =============================================================================
# Records
# =============================================================================


@dataclass
class Identity:
    """Registry record describing an actor."""

    name: str
    email: str
    registered_at: int
    verified: bool = False
    reputation_score: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "verified": self.verified,
            "registration_time": self.registered_at,
            "reputation_score": self.reputation_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Identity":
        return cls(
            name=data["name"],
            email=data["email"],
            registered_at=data["registration_time"],
            verified=data.get("verified", False),
            reputation_score=data.get("reputation_score", 0),
        )


@dataclass
class Asset:
    """An ownable asset. Only the owner may change its details or transfer it."""

    title: str
    description: str
    asset_type: str
    owner: str
    registered_at: int
    updated_at: int
    metadata: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "asset_type": self.asset_type,
            "owner": self.owner,
            "registration_time": self.registered_at,
            "last_update_time": self.updated_at,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Asset":
        return cls(
            title=data["title"],
            description=data["description"],
            asset_type=data["asset_type"],
            owner=data["owner"],
            registered_at=data["registration_time"],
            updated_at=data["last_update_time"],
            metadata=data["metadata"],
        )


@dataclass
class OwnershipHistoryEntry:
    """
    One interval of an asset's ownership timeline.

    end_time == OPEN_INTERVAL marks the current owner's interval. Each asset has
    exactly one open entry, always the one with the highest index.
    """

    owner: str
    start_time: int
    end_time: int = OPEN_INTERVAL

    @property
    def is_open(self) -> bool:
        return self.end_time == OPEN_INTERVAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OwnershipHistoryEntry":
        return cls(
            owner=data["owner"],
            start_time=data["start_time"],
            end_time=data.get("end_time", OPEN_INTERVAL),
        )


@dataclass
class Attestation:
    """
    A third party's claim about an asset.

    Revocation is one-directional: the value is kept for audit and the record
    can never be updated again.
    """

    claim_value: str
    attested_at: int
    revoked: bool = False
    revoked_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "claim_value": self.claim_value,
            "attestation_time": self.attested_at,
            "revoked": self.revoked,
            "revocation_time": self.revoked_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Attestation":
        return cls(
            claim_value=data["claim_value"],
            attested_at=data["attestation_time"],
            revoked=data.get("revoked", False),
            revoked_at=data.get("revocation_time", 0),
        )


@dataclass
class Administration:
    """Single configuration record: administrator, threshold and allow-list."""

    admin: str
    min_reputation: int = DEFAULT_MIN_REPUTATION
    claim_types: tuple[str, ...] = field(default=DEFAULT_CLAIM_TYPES)

    def to_dict(self) -> dict[str, Any]:
        return {
            "admin": self.admin,
            "min_reputation": self.min_reputation,
            "claim_types": list(self.claim_types),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Administration":
        return cls(
            admin=data["admin"],
            min_reputation=data.get("min_reputation", DEFAULT_MIN_REPUTATION),
            claim_types=tuple(data.get("claim_types", DEFAULT_CLAIM_TYPES)),
        )
