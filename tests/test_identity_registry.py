"""
Tests for the identity registry: registration, profile updates,
attributes, verification and reputation.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pytest

from registry_errors import (
    AlreadyRegistered,
    IdentityNotFound,
    InvalidInput,
    Unauthorized,
)
from registry_models import MAX_EMAIL_LENGTH, MAX_NAME_LENGTH, CallContext

ADMIN = "deployer"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"


class TestRegisterIdentity:
    """Tests for register_identity."""

    def test_register_creates_unverified_record(self, registry, at):
        ctx = at(ALICE)
        assert registry.register_identity(ctx, "Alice", "alice@example.com") is True

        identity = registry.get_identity_details(ALICE)
        assert identity.name == "Alice"
        assert identity.email == "alice@example.com"
        assert identity.verified is False
        assert identity.reputation_score == 0
        assert identity.registered_at == ctx.clock

    def test_second_registration_rejected_and_record_unchanged(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")

        with pytest.raises(AlreadyRegistered) as exc_info:
            registry.register_identity(at(ALICE), "Mallory", "mallory@example.com")

        assert exc_info.value.code == 2
        assert exc_info.value.operation == "register-identity"
        identity = registry.get_identity_details(ALICE)
        assert identity.name == "Alice"
        assert identity.email == "alice@example.com"

    def test_different_actors_register_independently(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "a@example.com")
        registry.register_identity(at(BOB), "Bob", "b@example.com")
        assert registry.is_registered(ALICE)
        assert registry.is_registered(BOB)
        assert not registry.is_registered(CAROL)

    def test_empty_text_is_accepted(self, registry, at):
        assert registry.register_identity(at(ALICE), "", "") is True

    def test_text_at_bound_is_accepted(self, registry, at):
        name = "n" * MAX_NAME_LENGTH
        assert registry.register_identity(at(ALICE), name, "e" * MAX_EMAIL_LENGTH)
        assert registry.get_identity_details(ALICE).name == name

    def test_text_over_bound_rejected_before_registration_check(self, registry, at):
        with pytest.raises(InvalidInput):
            registry.register_identity(at(ALICE), "n" * (MAX_NAME_LENGTH + 1), "a@example.com")
        assert not registry.is_registered(ALICE)

        registry.register_identity(at(ALICE), "Alice", "a@example.com")
        # Argument validation comes first, even for an already-registered caller
        with pytest.raises(InvalidInput):
            registry.register_identity(at(ALICE), "Alice", "e" * (MAX_EMAIL_LENGTH + 1))

    def test_non_text_rejected(self, registry, at):
        with pytest.raises(InvalidInput):
            registry.register_identity(at(ALICE), 42, "a@example.com")

    def test_zero_clock_rejected(self, registry):
        with pytest.raises(InvalidInput):
            registry.register_identity(CallContext(ALICE, 0), "Alice", "a@example.com")
        assert not registry.is_registered(ALICE)

    def test_empty_caller_rejected(self, registry):
        with pytest.raises(InvalidInput):
            registry.register_identity(CallContext("", 1), "Nobody", "")


class TestUpdateIdentity:
    """Tests for update_identity."""

    def test_update_before_registration_fails(self, registry, at):
        with pytest.raises(IdentityNotFound) as exc_info:
            registry.update_identity(at(ALICE), "Alice", "alice@example.com")
        assert exc_info.value.code == 3

    def test_update_round_trips_name_and_email(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")
        registry.update_identity(at(ALICE), "Alice Smith", "alice@smith.example")

        identity = registry.get_identity_details(ALICE)
        assert identity.name == "Alice Smith"
        assert identity.email == "alice@smith.example"

    def test_update_leaves_verification_reputation_and_time(self, registry, at):
        first = at(ALICE)
        registry.register_identity(first, "Alice", "alice@example.com")
        registry.verify_identity(at(ADMIN), ALICE)
        registry.update_reputation(at(ADMIN), ALICE, 90)

        registry.update_identity(at(ALICE), "Alice 2", "alice2@example.com")

        identity = registry.get_identity_details(ALICE)
        assert identity.verified is True
        assert identity.reputation_score == 90
        assert identity.registered_at == first.clock


class TestIdentityAttributes:
    """Tests for set/remove identity attributes."""

    def test_set_requires_identity(self, registry, at):
        with pytest.raises(IdentityNotFound):
            registry.set_identity_attribute(at(ALICE), "licence", "RE-123")

    def test_set_get_round_trip_returns_last_value(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")
        registry.set_identity_attribute(at(ALICE), "licence", "RE-123")
        registry.set_identity_attribute(at(ALICE), "licence", "RE-456")

        assert registry.get_identity_attribute(ALICE, "licence") == "RE-456"

    def test_attributes_are_per_actor(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "a@example.com")
        registry.register_identity(at(BOB), "Bob", "b@example.com")
        registry.set_identity_attribute(at(ALICE), "city", "Lisbon")

        assert registry.get_identity_attribute(BOB, "city") is None

    def test_remove_then_get_is_absent(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")
        registry.set_identity_attribute(at(ALICE), "licence", "RE-123")

        assert registry.remove_identity_attribute(at(ALICE), "licence") is True
        assert registry.get_identity_attribute(ALICE, "licence") is None

    def test_remove_never_set_attribute_fails(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")
        with pytest.raises(InvalidInput) as exc_info:
            registry.remove_identity_attribute(at(ALICE), "licence")
        assert exc_info.value.code == 7

    def test_remove_requires_identity_first(self, registry, at):
        with pytest.raises(IdentityNotFound):
            registry.remove_identity_attribute(at(ALICE), "licence")

    def test_attribute_bounds(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")
        with pytest.raises(InvalidInput):
            registry.set_identity_attribute(at(ALICE), "k" * 51, "v")
        with pytest.raises(InvalidInput):
            registry.set_identity_attribute(at(ALICE), "k", "v" * 257)
        assert registry.set_identity_attribute(at(ALICE), "k" * 50, "v" * 256)


class TestVerifyIdentity:
    """Tests for verify_identity."""

    def test_non_admin_cannot_verify(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")

        with pytest.raises(Unauthorized) as exc_info:
            registry.verify_identity(at(BOB), ALICE)

        assert exc_info.value.code == 1
        assert registry.is_identity_verified(ALICE) is False

    def test_admin_verifies_existing_identity(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")
        assert registry.verify_identity(at(ADMIN), ALICE) is True
        assert registry.is_identity_verified(ALICE) is True

    def test_verification_is_idempotent(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")
        registry.verify_identity(at(ADMIN), ALICE)
        before = registry.get_identity_details(ALICE)

        assert registry.verify_identity(at(ADMIN), ALICE) is True
        assert registry.get_identity_details(ALICE) == before

    def test_verify_unknown_identity_fails(self, registry, at):
        with pytest.raises(IdentityNotFound):
            registry.verify_identity(at(ADMIN), ALICE)

    def test_authorization_checked_before_existence(self, registry, at):
        with pytest.raises(Unauthorized):
            registry.verify_identity(at(BOB), "nobody")


class TestUpdateReputation:
    """Tests for update_reputation."""

    def test_admin_overwrites_score(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")
        registry.update_reputation(at(ADMIN), ALICE, 75)
        registry.update_reputation(at(ADMIN), ALICE, 10)
        assert registry.get_reputation_score(ALICE) == 10

    def test_non_admin_rejected(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")
        with pytest.raises(Unauthorized):
            registry.update_reputation(at(ALICE), ALICE, 100)
        assert registry.get_reputation_score(ALICE) == 0

    def test_unknown_target_rejected(self, registry, at):
        with pytest.raises(IdentityNotFound):
            registry.update_reputation(at(ADMIN), ALICE, 5)

    def test_full_unsigned_range_accepted(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")
        registry.update_reputation(at(ADMIN), ALICE, 2**128 - 1)
        assert registry.get_reputation_score(ALICE) == 2**128 - 1

    @pytest.mark.parametrize("score", [-1, 2**128, 1.5, "75", True])
    def test_out_of_domain_score_rejected(self, registry, at, score):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")
        with pytest.raises(InvalidInput):
            registry.update_reputation(at(ADMIN), ALICE, score)
        assert registry.get_reputation_score(ALICE) == 0

    def test_score_of_unknown_actor_is_absent(self, registry):
        assert registry.get_reputation_score("ghost") is None


class TestIdentityQueries:
    """Queries return copies and never raise."""

    def test_details_are_a_copy(self, registry, at):
        registry.register_identity(at(ALICE), "Alice", "alice@example.com")
        identity = registry.get_identity_details(ALICE)
        identity.verified = True

        assert registry.is_identity_verified(ALICE) is False

    def test_unknown_identity_queries(self, registry):
        assert registry.get_identity_details("ghost") is None
        assert registry.get_identity_attribute("ghost", "x") is None
        assert registry.is_identity_verified("ghost") is False
