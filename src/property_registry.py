"""
Property Registry - Identities, Assets and Attestations

Binds actor identities, ownable assets and third-party attestations about
assets under one access-control and reputation policy.

Every mutating operation receives a CallContext (already-authenticated caller
and current logical clock) from the host, validates its arguments, evaluates
its preconditions in a fixed order and only then mutates state. A rejected
operation raises a RegistryError and leaves state exactly as it was.

Components:
- Identity Registry: profiles and free-form attributes
- Asset Registry: asset records plus an append-only ownership history
- Attestation Ledger: claims keyed by (attester, asset, claim type)
- Administration: administrator, reputation threshold, claim-type allow-list

Usage:
    registry = PropertyRegistry(deployer="deployer")

    registry.register_identity(CallContext("alice", 1), "Alice", "alice@example.com")
    registry.verify_identity(CallContext("deployer", 2), "alice")
    asset_id = registry.register_asset(
        CallContext("alice", 3), "Villa", "3-bedroom villa", "RESIDENTIAL", "{}"
    )
"""

import logging
from dataclasses import replace
from typing import Any

from access_control import (
    is_admin,
    is_asset_owner,
    is_registered,
    is_valid_claim_type,
    is_verified,
)
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
    Unauthorized,
)
from registry_models import (
    DEFAULT_CLAIM_TYPES,
    DEFAULT_MIN_REPUTATION,
    MAX_ASSET_TYPE_LENGTH,
    MAX_ATTRIBUTE_NAME_LENGTH,
    MAX_ATTRIBUTE_VALUE_LENGTH,
    MAX_CLAIM_TYPE_LENGTH,
    MAX_CLAIM_VALUE_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_EMAIL_LENGTH,
    MAX_METADATA_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TITLE_LENGTH,
    MAX_UINT,
    Administration,
    Asset,
    Attestation,
    CallContext,
    Identity,
    OwnershipHistoryEntry,
)
from registry_state import RegistryState

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

DEPLOYER_ENV = "PROPERTY_REGISTRY_DEPLOYER"
DEFAULT_DEPLOYER = "deployer"


# =============================================================================
# Argument Validation
# =============================================================================


def _check_text(operation: str, field_name: str, value: Any, max_length: int) -> None:
    if not isinstance(value, str):
        raise InvalidInput(
            f"{field_name} must be text", operation, {"field": field_name}
        )
    if len(value) > max_length:
        raise InvalidInput(
            f"{field_name} exceeds maximum length of {max_length}",
            operation,
            {"field": field_name, "max_length": max_length, "length": len(value)},
        )


def _check_uint(operation: str, field_name: str, value: Any) -> None:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_UINT:
        raise InvalidInput(
            f"{field_name} must be an unsigned integer", operation, {"field": field_name}
        )


def _check_actor(operation: str, field_name: str, value: Any) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidInput(
            f"{field_name} must be a non-empty actor identifier",
            operation,
            {"field": field_name},
        )


def _check_context(operation: str, ctx: CallContext) -> None:
    _check_actor(operation, "caller", ctx.caller)
    _check_uint(operation, "clock", ctx.clock)
    # 0 is the open-interval sentinel in ownership history
    if ctx.clock == 0:
        raise InvalidInput("clock must be positive", operation, {"field": "clock"})


class PropertyRegistry:
    """
    State-transition logic for the registry.

    Holds an explicit RegistryState. Mutations take a CallContext as their
    first argument and return True (or the new asset id for register_asset).
    Queries never raise for missing records; they return None, False or 0.
    """

    def __init__(self, deployer: str | None = None, state: RegistryState | None = None):
        """
        Create a registry over existing state, or bootstrap a fresh one.

        Args:
            deployer: Initial administrator when bootstrapping new state
            state: Existing state container to operate on

        Raises:
            ValueError: If neither state nor deployer is provided
        """
        if state is None:
            if not deployer:
                raise ValueError("A deployer is required to bootstrap a new registry")
            state = RegistryState.bootstrap(deployer)
        self.state = state

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PropertyRegistry":
        return cls(state=RegistryState.from_dict(data))

    def to_dict(self) -> dict[str, Any]:
        return self.state.to_dict()

    # =========================================================================
    # Access Control
    # =========================================================================

    def is_admin(self, actor: str) -> bool:
        return is_admin(self.state, actor)

    def is_registered(self, actor: str) -> bool:
        return is_registered(self.state, actor)

    def is_verified(self, actor: str) -> bool:
        return is_verified(self.state, actor)

    def is_asset_owner(self, actor: str, asset_id: int) -> bool:
        return is_asset_owner(self.state, actor, asset_id)

    def is_valid_claim_type(self, claim_type: str) -> bool:
        return is_valid_claim_type(self.state, claim_type)

    def _require_admin(self, operation: str, actor: str) -> None:
        if not is_admin(self.state, actor):
            raise Unauthorized(
                "Only the administrator may perform this operation",
                operation,
                {"actor": actor},
            )

    def _require_identity(self, operation: str, actor: str) -> Identity:
        identity = self.state.identities.get(actor)
        if identity is None:
            raise IdentityNotFound(
                f"No identity registered for {actor}", operation, {"actor": actor}
            )
        return identity

    def _require_verified(self, operation: str, actor: str) -> None:
        if not is_verified(self.state, actor):
            raise IdentityNotVerified(
                f"Identity {actor} is not verified", operation, {"actor": actor}
            )

    def _require_asset(self, operation: str, asset_id: int) -> Asset:
        asset = self.state.assets.get(asset_id)
        if asset is None:
            raise AssetNotFound(
                f"Asset {asset_id} does not exist", operation, {"asset_id": asset_id}
            )
        return asset

    def _require_owner(self, operation: str, actor: str, asset_id: int) -> None:
        if not is_asset_owner(self.state, actor, asset_id):
            raise NotAssetOwner(
                f"{actor} does not own asset {asset_id}",
                operation,
                {"actor": actor, "asset_id": asset_id},
            )

    def _require_live_attestation(
        self, operation: str, key: tuple[str, int, str]
    ) -> Attestation:
        attestation = self.state.attestations.get(key)
        if attestation is None:
            raise AttestationNotFound(
                "No attestation by this attester for this asset and claim type",
                operation,
                {"attester": key[0], "asset_id": key[1], "claim_type": key[2]},
            )
        if attestation.revoked:
            raise AttestationAlreadyRevoked(
                "Attestation has been revoked",
                operation,
                {"attester": key[0], "asset_id": key[1], "claim_type": key[2]},
            )
        return attestation

    # =========================================================================
    # Identity Registry
    # =========================================================================

    def register_identity(self, ctx: CallContext, name: str, email: str) -> bool:
        """
        Register the caller's identity.

        Raises:
            AlreadyRegistered: If the caller already has an identity
        """
        op = "register-identity"
        _check_context(op, ctx)
        _check_text(op, "name", name, MAX_NAME_LENGTH)
        _check_text(op, "email", email, MAX_EMAIL_LENGTH)

        if is_registered(self.state, ctx.caller):
            raise AlreadyRegistered(
                f"Identity already registered for {ctx.caller}", op, {"actor": ctx.caller}
            )

        self.state.identities[ctx.caller] = Identity(
            name=name, email=email, registered_at=ctx.clock
        )
        logger.info("Registered identity for %s at clock %d", ctx.caller, ctx.clock)
        return True

    def update_identity(self, ctx: CallContext, name: str, email: str) -> bool:
        """Replace the caller's name and email; verification and reputation are untouched."""
        op = "update-identity"
        _check_context(op, ctx)
        _check_text(op, "name", name, MAX_NAME_LENGTH)
        _check_text(op, "email", email, MAX_EMAIL_LENGTH)

        identity = self._require_identity(op, ctx.caller)

        self.state.identities[ctx.caller] = replace(identity, name=name, email=email)
        logger.info("Updated identity for %s", ctx.caller)
        return True

    def set_identity_attribute(self, ctx: CallContext, name: str, value: str) -> bool:
        op = "set-identity-attribute"
        _check_context(op, ctx)
        _check_text(op, "attribute name", name, MAX_ATTRIBUTE_NAME_LENGTH)
        _check_text(op, "attribute value", value, MAX_ATTRIBUTE_VALUE_LENGTH)

        self._require_identity(op, ctx.caller)

        self.state.identity_attributes[(ctx.caller, name)] = value
        logger.debug("Set attribute %r for %s", name, ctx.caller)
        return True

    def remove_identity_attribute(self, ctx: CallContext, name: str) -> bool:
        """
        Delete one of the caller's attributes.

        Raises:
            IdentityNotFound: If the caller has no identity
            InvalidInput: If the attribute was never set
        """
        op = "remove-identity-attribute"
        _check_context(op, ctx)
        _check_text(op, "attribute name", name, MAX_ATTRIBUTE_NAME_LENGTH)

        self._require_identity(op, ctx.caller)
        key = (ctx.caller, name)
        if key not in self.state.identity_attributes:
            raise InvalidInput(
                f"Attribute {name!r} is not set", op, {"actor": ctx.caller, "attribute": name}
            )

        del self.state.identity_attributes[key]
        logger.debug("Removed attribute %r for %s", name, ctx.caller)
        return True

    def verify_identity(self, ctx: CallContext, target: str) -> bool:
        """
        Mark an identity as verified. Administrator only; idempotent.

        There is no way to un-verify an identity.
        """
        op = "verify-identity"
        _check_context(op, ctx)
        _check_actor(op, "target", target)

        self._require_admin(op, ctx.caller)
        identity = self._require_identity(op, target)

        self.state.identities[target] = replace(identity, verified=True)
        logger.info("Verified identity %s", target)
        return True

    def update_reputation(self, ctx: CallContext, target: str, score: int) -> bool:
        """Overwrite an identity's reputation score. Administrator only."""
        op = "update-reputation"
        _check_context(op, ctx)
        _check_actor(op, "target", target)
        _check_uint(op, "score", score)

        self._require_admin(op, ctx.caller)
        identity = self._require_identity(op, target)

        self.state.identities[target] = replace(identity, reputation_score=score)
        logger.info(
            "Reputation for %s changed %d -> %d", target, identity.reputation_score, score
        )
        return True

    # =========================================================================
    # Asset Registry & Ownership History
    # =========================================================================

    def register_asset(
        self,
        ctx: CallContext,
        title: str,
        description: str,
        asset_type: str,
        metadata: str,
    ) -> int:
        """
        Register a new asset owned by the caller.

        Returns:
            The new asset id (sequential, starting at 0)

        Raises:
            IdentityNotVerified: If the caller is not a verified identity
        """
        op = "register-asset"
        _check_context(op, ctx)
        _check_text(op, "title", title, MAX_TITLE_LENGTH)
        _check_text(op, "description", description, MAX_DESCRIPTION_LENGTH)
        _check_text(op, "asset type", asset_type, MAX_ASSET_TYPE_LENGTH)
        _check_text(op, "metadata", metadata, MAX_METADATA_LENGTH)

        self._require_verified(op, ctx.caller)

        asset_id = self.state.next_asset_id
        self.state.assets[asset_id] = Asset(
            title=title,
            description=description,
            asset_type=asset_type,
            owner=ctx.caller,
            registered_at=ctx.clock,
            updated_at=ctx.clock,
            metadata=metadata,
        )
        self.state.next_asset_id = asset_id + 1
        self.state.history_counters[asset_id] = 0
        self._append_history(asset_id, ctx.caller, ctx.clock)

        logger.info("Registered asset %d (%s) for %s", asset_id, asset_type, ctx.caller)
        return asset_id

    def update_asset_details(
        self,
        ctx: CallContext,
        asset_id: int,
        title: str,
        description: str,
        metadata: str,
    ) -> bool:
        """Owner-only update of title, description and metadata."""
        op = "update-asset-details"
        _check_context(op, ctx)
        _check_uint(op, "asset id", asset_id)
        _check_text(op, "title", title, MAX_TITLE_LENGTH)
        _check_text(op, "description", description, MAX_DESCRIPTION_LENGTH)
        _check_text(op, "metadata", metadata, MAX_METADATA_LENGTH)

        asset = self._require_asset(op, asset_id)
        self._require_owner(op, ctx.caller, asset_id)

        self.state.assets[asset_id] = replace(
            asset,
            title=title,
            description=description,
            metadata=metadata,
            updated_at=ctx.clock,
        )
        logger.info("Updated details of asset %d", asset_id)
        return True

    def transfer_asset(self, ctx: CallContext, asset_id: int, new_owner: str) -> bool:
        """
        Transfer an asset to another verified identity.

        Closes the current ownership interval and opens a new one at the same
        clock value, so history stays gapless and non-overlapping.

        Raises:
            AssetNotFound: If the asset does not exist
            NotAssetOwner: If the caller is not the current owner
            IdentityNotVerified: If the new owner is not verified
        """
        op = "transfer-asset"
        _check_context(op, ctx)
        _check_uint(op, "asset id", asset_id)
        _check_actor(op, "new owner", new_owner)

        asset = self._require_asset(op, asset_id)
        self._require_owner(op, ctx.caller, asset_id)
        self._require_verified(op, new_owner)

        self.state.assets[asset_id] = replace(asset, owner=new_owner, updated_at=ctx.clock)
        self._append_history(asset_id, new_owner, ctx.clock)

        logger.info(
            "Transferred asset %d from %s to %s at clock %d",
            asset_id,
            ctx.caller,
            new_owner,
            ctx.clock,
        )
        return True

    def _append_history(self, asset_id: int, owner: str, start_time: int) -> None:
        """Open a new interval at the next index and close the previous one."""
        index = self.state.history_counters.get(asset_id, 0)
        history = self.state.ownership_history

        history[(asset_id, index)] = OwnershipHistoryEntry(owner=owner, start_time=start_time)
        if index > 0:
            previous = history[(asset_id, index - 1)]
            history[(asset_id, index - 1)] = replace(previous, end_time=start_time)
        self.state.history_counters[asset_id] = index + 1

    # =========================================================================
    # Attestation Ledger
    # =========================================================================

    def make_attestation(
        self, ctx: CallContext, asset_id: int, claim_type: str, value: str
    ) -> bool:
        """
        Attest a claim about an asset.

        The reputation threshold is checked once, now; later threshold changes
        do not affect existing attestations. Re-attesting a live attestation at
        the same key replaces its value.

        Raises:
            IdentityNotVerified: If the caller is not verified
            AssetNotFound: If the asset does not exist
            InvalidClaimType: If the claim type is not allow-listed
            InsufficientReputation: If caller reputation is below the threshold
            AttestationAlreadyRevoked: If this key was revoked earlier
        """
        op = "make-attestation"
        _check_context(op, ctx)
        _check_uint(op, "asset id", asset_id)
        _check_text(op, "claim type", claim_type, MAX_CLAIM_TYPE_LENGTH)
        _check_text(op, "claim value", value, MAX_CLAIM_VALUE_LENGTH)

        self._require_verified(op, ctx.caller)
        self._require_asset(op, asset_id)
        if not is_valid_claim_type(self.state, claim_type):
            raise InvalidClaimType(
                f"Claim type {claim_type!r} is not allowed",
                op,
                {"claim_type": claim_type},
            )
        identity = self._require_identity(op, ctx.caller)
        threshold = self.state.administration.min_reputation
        if identity.reputation_score < threshold:
            raise InsufficientReputation(
                f"Reputation {identity.reputation_score} is below the minimum {threshold}",
                op,
                {
                    "actor": ctx.caller,
                    "reputation": identity.reputation_score,
                    "min_reputation": threshold,
                },
            )

        key = (ctx.caller, asset_id, claim_type)
        previous = self.state.attestations.get(key)
        if previous is not None and previous.revoked:
            raise AttestationAlreadyRevoked(
                "Attestation has been revoked",
                op,
                {"attester": ctx.caller, "asset_id": asset_id, "claim_type": claim_type},
            )

        self.state.attestations[key] = Attestation(claim_value=value, attested_at=ctx.clock)
        if previous is not None:
            logger.info(
                "Re-attestation by %s replaced %s claim on asset %d",
                ctx.caller,
                claim_type,
                asset_id,
            )
        else:
            logger.info("%s attested %s on asset %d", ctx.caller, claim_type, asset_id)
        return True

    def update_attestation(
        self, ctx: CallContext, asset_id: int, claim_type: str, value: str
    ) -> bool:
        """Replace the value of the caller's own live attestation."""
        op = "update-attestation"
        _check_context(op, ctx)
        _check_uint(op, "asset id", asset_id)
        _check_text(op, "claim type", claim_type, MAX_CLAIM_TYPE_LENGTH)
        _check_text(op, "claim value", value, MAX_CLAIM_VALUE_LENGTH)

        key = (ctx.caller, asset_id, claim_type)
        attestation = self._require_live_attestation(op, key)

        self.state.attestations[key] = replace(
            attestation, claim_value=value, attested_at=ctx.clock
        )
        logger.info("%s updated %s claim on asset %d", ctx.caller, claim_type, asset_id)
        return True

    def revoke_attestation(self, ctx: CallContext, asset_id: int, claim_type: str) -> bool:
        """Revoke the caller's own attestation. Terminal; the value is retained."""
        op = "revoke-attestation"
        _check_context(op, ctx)
        _check_uint(op, "asset id", asset_id)
        _check_text(op, "claim type", claim_type, MAX_CLAIM_TYPE_LENGTH)

        key = (ctx.caller, asset_id, claim_type)
        attestation = self._require_live_attestation(op, key)

        self.state.attestations[key] = replace(
            attestation, revoked=True, revoked_at=ctx.clock
        )
        logger.info("%s revoked %s claim on asset %d", ctx.caller, claim_type, asset_id)
        return True

    # =========================================================================
    # Administration
    # =========================================================================

    def initialize(self, ctx: CallContext, new_admin: str, min_reputation: int) -> bool:
        """
        Hand over administration and set the reputation threshold together.

        Only the current administrator may call this. It may be called again
        later, each call re-delegating administrative authority.
        """
        op = "initialize"
        _check_context(op, ctx)
        _check_actor(op, "new admin", new_admin)
        _check_uint(op, "min reputation", min_reputation)

        self._require_admin(op, ctx.caller)

        self.state.administration = replace(
            self.state.administration, admin=new_admin, min_reputation=min_reputation
        )
        logger.warning(
            "Administration handed from %s to %s (min reputation %d)",
            ctx.caller,
            new_admin,
            min_reputation,
        )
        return True

    # =========================================================================
    # Read-only Queries
    # =========================================================================

    def get_identity_details(self, actor: str) -> Identity | None:
        identity = self.state.identities.get(actor)
        return replace(identity) if identity is not None else None

    def get_identity_attribute(self, actor: str, name: str) -> str | None:
        return self.state.identity_attributes.get((actor, name))

    def is_identity_verified(self, actor: str) -> bool:
        return is_verified(self.state, actor)

    def get_reputation_score(self, actor: str) -> int | None:
        identity = self.state.identities.get(actor)
        return identity.reputation_score if identity is not None else None

    def get_asset_details(self, asset_id: int) -> Asset | None:
        asset = self.state.assets.get(asset_id)
        return replace(asset) if asset is not None else None

    def get_asset_owner(self, asset_id: int) -> str | None:
        asset = self.state.assets.get(asset_id)
        return asset.owner if asset is not None else None

    def get_ownership_history_entry(
        self, asset_id: int, index: int
    ) -> OwnershipHistoryEntry | None:
        entry = self.state.ownership_history.get((asset_id, index))
        return replace(entry) if entry is not None else None

    def get_ownership_history_length(self, asset_id: int) -> int:
        """Number of history entries; 0 for unknown assets."""
        return self.state.history_counters.get(asset_id, 0)

    def get_ownership_history(self, asset_id: int) -> list[OwnershipHistoryEntry]:
        """All history entries of an asset, oldest first."""
        return [
            replace(self.state.ownership_history[(asset_id, index)])
            for index in range(self.get_ownership_history_length(asset_id))
        ]

    def get_attestation(
        self, attester: str, asset_id: int, claim_type: str
    ) -> Attestation | None:
        attestation = self.state.attestations.get((attester, asset_id, claim_type))
        return replace(attestation) if attestation is not None else None

    def is_attestation_valid(self, attester: str, asset_id: int, claim_type: str) -> bool:
        """Exists and has not been revoked."""
        attestation = self.state.attestations.get((attester, asset_id, claim_type))
        return attestation is not None and not attestation.revoked

    def get_allowed_claim_types(self) -> list[str]:
        return list(self.state.administration.claim_types)

    def get_administration(self) -> Administration:
        return replace(self.state.administration)

    def get_statistics(self) -> dict[str, Any]:
        stats = self.state.get_statistics()
        stats["next_asset_id"] = self.state.next_asset_id
        stats["admin"] = self.state.administration.admin
        stats["min_reputation"] = self.state.administration.min_reputation
        return stats


def get_registry_config() -> dict[str, Any]:
    """Static registry configuration: defaults and argument bounds."""
    return {
        "version": "1.0",
        "default_min_reputation": DEFAULT_MIN_REPUTATION,
        "claim_types": list(DEFAULT_CLAIM_TYPES),
        "max_uint": MAX_UINT,
        "text_bounds": {
            "name": MAX_NAME_LENGTH,
            "email": MAX_EMAIL_LENGTH,
            "attribute_name": MAX_ATTRIBUTE_NAME_LENGTH,
            "attribute_value": MAX_ATTRIBUTE_VALUE_LENGTH,
            "title": MAX_TITLE_LENGTH,
            "description": MAX_DESCRIPTION_LENGTH,
            "asset_type": MAX_ASSET_TYPE_LENGTH,
            "metadata": MAX_METADATA_LENGTH,
            "claim_type": MAX_CLAIM_TYPE_LENGTH,
            "claim_value": MAX_CLAIM_VALUE_LENGTH,
        },
    }
