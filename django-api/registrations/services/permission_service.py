"""Permission service - fine-grained grants managed at runtime.

Grant and revoke write to the store first and then invalidate the cache.
No lock spans the two steps; the cache's generation counter makes sure a
reload that started before the write is not published as fresh.
"""

import structlog

from registrations.domain import AppUser, Permission
from registrations.domain.errors import PermissionNotFoundError, ValidationError
from registrations.domain.validators import parse_role
from registrations.policies import access_control as policy
from registrations.policies.access_control import Capability
from registrations.policies.permission_cache import PermissionCache
from registrations.stores.interfaces import PermissionStore

logger = structlog.get_logger(__name__)


class PermissionService:
    """Service for the permission catalogue and role grants."""

    def __init__(self, store: PermissionStore, cache: PermissionCache) -> None:
        self._store = store
        self._cache = cache

    def list_permissions(self, identity: AppUser | None) -> list[Permission]:
        self._require_manager(identity)
        return self._store.list_permissions()

    def get_role_permissions(self, identity: AppUser | None) -> dict[str, list[str]]:
        """Grant map straight from the store, role -> sorted permission ids."""
        self._require_manager(identity)
        grants = self._store.get_all_role_permissions()
        return {role: sorted(permission_ids) for role, permission_ids in sorted(grants.items())}

    def grant(self, identity: AppUser | None, role: str, permission_id: str) -> None:
        target_role = parse_role(role)
        pid = self._permission_id(permission_id)
        admin = self._require_manager(identity)
        self._require_permission_exists(pid)
        if not policy.is_grantable(target_role, pid):
            floor = policy.grant_floor(pid)
            raise ValidationError("role", f"{pid} can only be granted to {floor.value} and above")

        self._store.grant(target_role, pid)
        self._cache.invalidate()
        logger.info("permission_granted", role=target_role.value, permission_id=pid, actor_id=str(admin.id))

    def revoke(self, identity: AppUser | None, role: str, permission_id: str) -> None:
        target_role = parse_role(role)
        pid = self._permission_id(permission_id)
        admin = self._require_manager(identity)
        self._require_permission_exists(pid)

        self._store.revoke(target_role, pid)
        self._cache.invalidate()
        logger.info("permission_revoked", role=target_role.value, permission_id=pid, actor_id=str(admin.id))

    def has_permission(self, identity: AppUser | None, permission_id: str) -> bool:
        if identity is None or not policy.is_grantable(identity.role, permission_id):
            return False
        return self._cache.has(identity.role.value, permission_id)

    @staticmethod
    def _permission_id(value: object) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("permission_id", "Permission ID is required")
        return value.strip()

    @staticmethod
    def _require_manager(identity: AppUser | None) -> AppUser:
        return policy.require_capability(
            identity,
            Capability.MANAGE_PERMISSIONS,
            "Admin access required to manage permissions",
        )

    def _require_permission_exists(self, permission_id: str) -> None:
        if self._store.get_permission(permission_id) is None:
            raise PermissionNotFoundError(permission_id)
