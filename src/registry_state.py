"""
Property Registry - State Container

All registry state lives in one explicit container: five maps, the global
asset-id counter, the per-asset ownership-history counters and the
administration record. This is the complete durable footprint of the registry.

Snapshot format (to_dict / from_dict) is JSON-safe. Maps with composite keys
are flattened into record lists so the snapshot survives a JSON round trip.
"""

from dataclasses import dataclass, field
from typing import Any

from registry_models import (
    Administration,
    Asset,
    Attestation,
    Identity,
    OwnershipHistoryEntry,
)

SNAPSHOT_VERSION = 1

# Composite key types
AttributeKey = tuple[str, str]  # (actor, attribute name)
HistoryKey = tuple[int, int]  # (asset id, index)
AttestationKey = tuple[str, int, str]  # (attester, asset id, claim type)


@dataclass
class RegistryState:
    """Explicit state container passed to the registry."""

    administration: Administration
    identities: dict[str, Identity] = field(default_factory=dict)
    identity_attributes: dict[AttributeKey, str] = field(default_factory=dict)
    assets: dict[int, Asset] = field(default_factory=dict)
    ownership_history: dict[HistoryKey, OwnershipHistoryEntry] = field(default_factory=dict)
    attestations: dict[AttestationKey, Attestation] = field(default_factory=dict)
    next_asset_id: int = 0
    history_counters: dict[int, int] = field(default_factory=dict)

    @classmethod
    def bootstrap(cls, deployer: str) -> "RegistryState":
        """Fresh state with the deploying actor as administrator."""
        return cls(administration=Administration(admin=deployer))

    def to_dict(self) -> dict[str, Any]:
        """Serialize the full state to a JSON-safe snapshot."""
        return {
            "version": SNAPSHOT_VERSION,
            "administration": self.administration.to_dict(),
            "identities": {
                actor: identity.to_dict() for actor, identity in self.identities.items()
            },
            "identity_attributes": [
                {"actor": actor, "name": name, "value": value}
                for (actor, name), value in self.identity_attributes.items()
            ],
            "assets": {
                str(asset_id): asset.to_dict() for asset_id, asset in self.assets.items()
            },
            "ownership_history": [
                {"asset_id": asset_id, "index": index, **entry.to_dict()}
                for (asset_id, index), entry in sorted(self.ownership_history.items())
            ],
            "attestations": [
                {
                    "attester": attester,
                    "asset_id": asset_id,
                    "claim_type": claim_type,
                    **attestation.to_dict(),
                }
                for (attester, asset_id, claim_type), attestation in self.attestations.items()
            ],
            "next_asset_id": self.next_asset_id,
            "history_counters": {
                str(asset_id): count for asset_id, count in self.history_counters.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RegistryState":
        """
        Rebuild state from a snapshot produced by to_dict().

        Raises:
            ValueError: If the snapshot version is not supported
        """
        version = data.get("version", SNAPSHOT_VERSION)
        if version != SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported registry snapshot version: {version}")

        state = cls(administration=Administration.from_dict(data["administration"]))

        for actor, record in data.get("identities", {}).items():
            state.identities[actor] = Identity.from_dict(record)

        for record in data.get("identity_attributes", []):
            state.identity_attributes[(record["actor"], record["name"])] = record["value"]

        for asset_id, record in data.get("assets", {}).items():
            state.assets[int(asset_id)] = Asset.from_dict(record)

        for record in data.get("ownership_history", []):
            key = (int(record["asset_id"]), int(record["index"]))
            state.ownership_history[key] = OwnershipHistoryEntry.from_dict(record)

        for record in data.get("attestations", []):
            key = (record["attester"], int(record["asset_id"]), record["claim_type"])
            state.attestations[key] = Attestation.from_dict(record)

        state.next_asset_id = int(data.get("next_asset_id", 0))
        state.history_counters = {
            int(asset_id): int(count)
            for asset_id, count in data.get("history_counters", {}).items()
        }
        return state

    def get_statistics(self) -> dict[str, Any]:
        """Record counts, for health and metrics reporting."""
        revoked = sum(1 for a in self.attestations.values() if a.revoked)
        return {
            "identities": len(self.identities),
            "verified_identities": sum(1 for i in self.identities.values() if i.verified),
            "identity_attributes": len(self.identity_attributes),
            "assets": len(self.assets),
            "ownership_history_entries": len(self.ownership_history),
            "attestations": len(self.attestations),
            "active_attestations": len(self.attestations) - revoked,
            "revoked_attestations": revoked,
        }
