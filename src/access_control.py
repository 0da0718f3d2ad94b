"""
Property Registry - Access Control Predicates

Pure, read-only questions about current registry state. Every mutating
operation consults these before it changes anything. None of them raise.
"""

from registry_state import RegistryState


def is_admin(state: RegistryState, actor: str) -> bool:
    """Is the actor the current administrator?"""
    return actor == state.administration.admin


def is_registered(state: RegistryState, actor: str) -> bool:
    return actor in state.identities


def is_verified(state: RegistryState, actor: str) -> bool:
    """Registered and verified by the administrator."""
    identity = state.identities.get(actor)
    return identity is not None and identity.verified


def is_asset_owner(state: RegistryState, actor: str, asset_id: int) -> bool:
    """False for unknown assets."""
    asset = state.assets.get(asset_id)
    return asset is not None and asset.owner == actor


def is_valid_claim_type(state: RegistryState, claim_type: str) -> bool:
    return claim_type in state.administration.claim_types
