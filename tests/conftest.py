"""
Pytest configuration and shared fixtures for property registry tests.

This module provides:
- Test environment (auth off, memory storage, no encryption key)
- A ticking clock that hands out call contexts
- Fresh and pre-populated registries
- Flask app and client backed by memory storage
"""

import os
import sys

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

# Set up test environment before any imports
os.environ["PROPERTY_REGISTRY_API_KEY"] = "test-api-key-12345"
os.environ["PROPERTY_REGISTRY_REQUIRE_AUTH"] = "false"
os.environ["PROPERTY_REGISTRY_DEPLOYER"] = "deployer"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ.pop("PROPERTY_REGISTRY_ENCRYPTION_KEY", None)

from registry_models import CallContext  # noqa: E402

ADMIN = "deployer"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"
APPRAISER = "appraiser"


class TickingClock:
    """Hands out call contexts with a strictly increasing clock, starting at 1."""

    def __init__(self):
        self.now = 0

    def __call__(self, caller: str) -> CallContext:
        self.now += 1
        return CallContext(caller=caller, clock=self.now)


@pytest.fixture
def at():
    """Call-context factory: registry.register_identity(at(ALICE), ...)."""
    return TickingClock()


@pytest.fixture
def registry():
    """Fresh registry administered by the deployer."""
    from property_registry import PropertyRegistry
    return PropertyRegistry(deployer=ADMIN)


@pytest.fixture
def populated(registry, at):
    """
    Registry with:
    - alice and bob verified, alice owns asset 0
    - carol registered but unverified
    - appraiser verified with reputation 75
    """
    registry.register_identity(at(ALICE), "Alice", "alice@example.com")
    registry.register_identity(at(BOB), "Bob", "bob@example.com")
    registry.register_identity(at(CAROL), "Carol", "carol@example.com")
    registry.register_identity(at(APPRAISER), "Apex Appraisals", "desk@apex.example")
    for actor in (ALICE, BOB, APPRAISER):
        registry.verify_identity(at(ADMIN), actor)
    registry.update_reputation(at(ADMIN), APPRAISER, 75)
    registry.register_asset(at(ALICE), "Villa", "3-bedroom villa", "RESIDENTIAL", '{"sqm": 240}')
    return registry


@pytest.fixture
def memory_storage():
    from storage.memory import MemoryStorage
    return MemoryStorage()


@pytest.fixture
def flask_app(memory_storage):
    """Flask test app over a fresh registry in memory storage."""
    from api import create_app
    from monitoring import metrics

    metrics.reset()
    app = create_app(storage=memory_storage)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def flask_client(flask_app):
    return flask_app.test_client()


@pytest.fixture
def as_actor():
    """Headers for acting as a given caller."""
    def _headers(caller: str) -> dict:
        return {
            "Content-Type": "application/json",
            "X-API-Key": "test-api-key-12345",
            "X-Caller-Id": caller,
        }
    return _headers
