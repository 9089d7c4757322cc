"""In-memory, role-keyed cache of fine-grained permission grants.

The cache holds one immutable snapshot of the grant table at a time.
Readers take the current snapshot reference without locking; a reload
builds a new snapshot and swaps the reference, so a reader never sees a
half-built map. Snapshots expire after ``ttl_seconds`` and are discarded
by ``invalidate()``, which grant and revoke call after their write.
"""

import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

import structlog

from registrations.stores.interfaces import PermissionStore

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class PermissionSnapshot:
    """Immutable view of the grant table at one point in time."""

    grants: Mapping[str, frozenset[str]]
    loaded_at: float
    generation: int

    @classmethod
    def build(cls, grants: Mapping[str, set[str]], loaded_at: float, generation: int) -> "PermissionSnapshot":
        frozen = {role: frozenset(permission_ids) for role, permission_ids in grants.items()}
        return cls(grants=MappingProxyType(frozen), loaded_at=loaded_at, generation=generation)

    def for_role(self, role: str) -> frozenset[str]:
        return self.grants.get(role, frozenset())


class PermissionCache:
    """Lazily populated permission cache with a bounded staleness window."""

    def __init__(
        self,
        store: PermissionStore,
        ttl_seconds: float = 300.0,
        clock: Clock = time.monotonic,
    ) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._snapshot: PermissionSnapshot | None = None
        self._generation = 0
        self._reload_lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def get(self, role: str) -> frozenset[str]:
        """Return the permission ids granted to ``role``."""
        return self._current().for_role(role)

    def has(self, role: str, permission_id: str) -> bool:
        return permission_id in self.get(role)

    def snapshot(self) -> PermissionSnapshot:
        return self._current()

    def invalidate(self) -> None:
        """Drop the current snapshot; the next read reloads from the store."""
        self._generation += 1
        self._snapshot = None
        logger.debug("permission_cache_invalidated", generation=self._generation)

    def reload(self) -> PermissionSnapshot:
        """Load the grant table and publish it as the current snapshot.

        If an invalidation lands while the store is being read, the load is
        repeated so a pre-write view is never published as fresh.
        """
        with self._reload_lock:
            while True:
                generation = self._generation
                grants = self._store.get_all_role_permissions()
                if generation == self._generation:
                    break
            snapshot = PermissionSnapshot.build(grants, loaded_at=self._clock(), generation=generation)
            self._snapshot = snapshot
        logger.info(
            "permission_cache_reloaded",
            roles=len(snapshot.grants),
            grants=sum(len(ids) for ids in snapshot.grants.values()),
        )
        return snapshot

    def _current(self) -> PermissionSnapshot:
        snapshot = self._snapshot
        if snapshot is not None and self._is_fresh(snapshot):
            return snapshot
        if snapshot is not None and snapshot.generation == self._generation and self._reload_lock.locked():
            # Expired, but another thread is already reloading; keep serving the old view.
            return snapshot
        return self.reload()

    def _is_fresh(self, snapshot: PermissionSnapshot) -> bool:
        if snapshot.generation != self._generation:
            return False
        return self._clock() - snapshot.loaded_at < self._ttl_seconds
