"""
Shared state for the property registry API.

Holds the one registry instance all blueprints operate on, together with
what the host owes the registry on every call:

- a logical clock, advanced once per successful mutation
- a lock, so operations run strictly one after another
- persistence of the snapshot (registry state + clock height) after
  every successful mutation
- operation metrics and logging
"""

import logging
import os
import threading
import time
from collections.abc import Callable
from typing import Any

from monitoring import metrics
from property_registry import DEFAULT_DEPLOYER, DEPLOYER_ENV, PropertyRegistry
from registry_errors import RegistryError
from registry_models import CallContext
from storage import StorageBackend, StorageError, get_storage_backend

logger = logging.getLogger(__name__)


class LogicalClock:
    """
    Host-owned monotonic clock.

    height is the last value handed to a committed mutation. Mutations run
    at height + 1, so the first one sees clock 1 and 0 stays free for the
    open-interval sentinel.
    """

    def __init__(self, height: int = 0):
        if height < 0:
            raise ValueError("Clock height cannot be negative")
        self.height = height

    @property
    def next_value(self) -> int:
        return self.height + 1

    def advance(self) -> int:
        self.height += 1
        return self.height


# ============================================================
# Shared State
# ============================================================

registry: PropertyRegistry = PropertyRegistry(
    deployer=os.getenv(DEPLOYER_ENV, DEFAULT_DEPLOYER)
)
clock = LogicalClock()

_storage: StorageBackend | None = None

# Serializes every registry operation, reads included
_registry_lock = threading.Lock()


def get_storage() -> StorageBackend:
    """Get or create the configured storage backend."""
    global _storage
    if _storage is None:
        _storage = get_storage_backend()
    return _storage


def init_state(storage: StorageBackend | None = None) -> None:
    """
    (Re)initialize shared state from storage.

    Loads the saved snapshot if there is one, otherwise bootstraps a fresh
    registry with the configured deployer as administrator.

    Args:
        storage: Backend to use; defaults to the environment-configured one
    """
    global registry, clock, _storage

    if storage is not None:
        _storage = storage

    with _registry_lock:
        data = None
        try:
            data = get_storage().load_state()
        except StorageError as e:
            logger.error("Failed to load registry snapshot, starting fresh: %s", e)

        if data:
            registry = PropertyRegistry.from_dict(data["state"])
            clock = LogicalClock(int(data.get("clock", 0)))
            logger.info(
                "Loaded registry snapshot at clock %d (%d identities, %d assets)",
                clock.height,
                len(registry.state.identities),
                len(registry.state.assets),
            )
        else:
            deployer = os.getenv(DEPLOYER_ENV, DEFAULT_DEPLOYER)
            registry = PropertyRegistry(deployer=deployer)
            clock = LogicalClock()
            logger.info("No registry snapshot found; bootstrapped with admin %s", deployer)

        _update_state_gauges()


def snapshot() -> dict[str, Any]:
    """The complete durable footprint: registry state plus clock height."""
    return {"state": registry.to_dict(), "clock": clock.height}


def save_state() -> None:
    try:
        get_storage().save_state(snapshot())
    except StorageError as e:
        logger.error("Failed to persist registry snapshot at clock %d: %s", clock.height, e)
        metrics.increment("storage_errors_total")


# ============================================================
# Operation Execution
# ============================================================


def execute(operation: str, caller: str, fn: Callable[..., Any], *args: Any) -> Any:
    """
    Run one mutating registry operation under the host contract.

    fn is a PropertyRegistry method (e.g. PropertyRegistry.transfer_asset),
    called on the shared registry with a fresh CallContext first. On
    success the clock advances and the snapshot is saved. A rejection leaves
    registry state, clock and storage untouched and propagates.
    """
    with _registry_lock:
        ctx = CallContext(caller=caller, clock=clock.next_value)
        start = time.perf_counter()
        try:
            result = fn(registry, ctx, *args)
        except RegistryError as e:
            _record_operation(operation, "rejected", start)
            metrics.increment(
                "registry_rejections_total", labels={"operation": operation, "error": e.name}
            )
            logger.info("Rejected %s for %s: %s (code %d)", operation, caller, e.name, e.code)
            raise

        clock.advance()
        save_state()
        _record_operation(operation, "ok", start)
        _update_state_gauges()
        return result


def query(fn: Callable[..., Any], *args: Any) -> Any:
    """Run a read-only registry query under the registry lock."""
    with _registry_lock:
        return fn(registry, *args)


def get_statistics() -> dict[str, Any]:
    with _registry_lock:
        stats = registry.get_statistics()
        stats["clock"] = clock.height
        return stats


def _record_operation(operation: str, outcome: str, start: float) -> None:
    metrics.increment(
        "registry_operations_total", labels={"operation": operation, "outcome": outcome}
    )
    metrics.timing(
        "registry_operation_duration_ms",
        (time.perf_counter() - start) * 1000,
        labels={"operation": operation},
    )


def _update_state_gauges() -> None:
    stats = registry.state.get_statistics()
    metrics.set_gauge("identities", stats["identities"])
    metrics.set_gauge("verified_identities", stats["verified_identities"])
    metrics.set_gauge("assets", stats["assets"])
    metrics.set_gauge("active_attestations", stats["active_attestations"])
    metrics.set_gauge("revoked_attestations", stats["revoked_attestations"])
    metrics.set_gauge("clock_height", clock.height)
