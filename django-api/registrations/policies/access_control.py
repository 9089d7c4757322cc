"""Access control policy.

Two layers, kept apart on purpose:

- Role tiers: a fixed decision table in code. Revoking a permission row
  can never take a tier power away from a role.
- Fine-grained grants: runtime-configurable (role, permission) rows read
  through the PermissionCache. They only unlock features that the tier
  table does not gate, and only for roles at or above the grant's floor.

Predicates (``can_*``) are pure and never raise. ``require_*`` helpers
raise UnauthenticatedError or ForbiddenError.
"""

from enum import Enum

from registrations.domain import AppUser, Event, Role, Ticket, UserId, Visibility
from registrations.domain.errors import ForbiddenError, UnauthenticatedError
from registrations.policies.permission_cache import PermissionCache

ROLE_TIERS: dict[Role, int] = {
    Role.USER: 0,
    Role.MEMBER: 1,
    Role.ORGANIZER: 2,
    Role.MODERATOR: 2,
    Role.ADMIN: 3,
}

STAFF_ROLES = frozenset({Role.ORGANIZER, Role.MODERATOR, Role.ADMIN})


class Capability(Enum):
    """Tier-gated operations."""

    MANAGE_TICKETS = "manage_tickets"
    VIEW_EVENT_TICKETS = "view_event_tickets"
    OVERRIDE_TICKET_STAGE = "override_ticket_stage"
    MANAGE_EVENTS = "manage_events"
    VIEW_PRIVATE_EVENTS = "view_private_events"
    VIEW_REGISTRATIONS = "view_registrations"
    EDIT_REGISTRATIONS = "edit_registrations"
    MANAGE_USERS = "manage_users"
    MANAGE_PERMISSIONS = "manage_permissions"


CAPABILITY_TABLE: dict[Capability, frozenset[Role]] = {
    Capability.MANAGE_TICKETS: STAFF_ROLES,
    Capability.VIEW_EVENT_TICKETS: STAFF_ROLES,
    Capability.OVERRIDE_TICKET_STAGE: frozenset({Role.ADMIN}),
    Capability.MANAGE_EVENTS: frozenset({Role.ADMIN}),
    Capability.VIEW_PRIVATE_EVENTS: frozenset({Role.ADMIN}),
    Capability.VIEW_REGISTRATIONS: frozenset({Role.ADMIN}),
    Capability.EDIT_REGISTRATIONS: frozenset({Role.ADMIN}),
    Capability.MANAGE_USERS: frozenset({Role.ADMIN}),
    Capability.MANAGE_PERMISSIONS: frozenset({Role.ADMIN}),
}


# Lowest role each fine-grained grant can take effect for. Rows below the
# floor are refused on grant and ignored on check.
GRANT_FLOORS: dict[str, Role] = {
    "registrations.view": Role.MEMBER,
    "attendees.export": Role.MEMBER,
    "tickets.view_all": Role.MEMBER,
}
DEFAULT_GRANT_FLOOR = Role.MEMBER


def tier(role: Role) -> int:
    return ROLE_TIERS[role]


def grant_floor(permission_id: str) -> Role:
    return GRANT_FLOORS.get(permission_id, DEFAULT_GRANT_FLOOR)


def is_grantable(role: Role, permission_id: str) -> bool:
    return tier(role) >= tier(grant_floor(permission_id))


def is_authenticated(identity: AppUser | None) -> bool:
    return identity is not None


def is_admin(identity: AppUser | None) -> bool:
    return identity is not None and identity.role is Role.ADMIN


def is_organizer_or_above(role: Role) -> bool:
    return role in STAFF_ROLES


def has_capability(identity: AppUser | None, capability: Capability) -> bool:
    return identity is not None and identity.role in CAPABILITY_TABLE[capability]


def require_auth(identity: AppUser | None) -> AppUser:
    if identity is None:
        raise UnauthenticatedError()
    return identity


def require_capability(identity: AppUser | None, capability: Capability, reason: str) -> AppUser:
    user = require_auth(identity)
    if user.role not in CAPABILITY_TABLE[capability]:
        raise ForbiddenError(capability.value, reason)
    return user


def require_admin(identity: AppUser | None, action: str = "perform this action") -> AppUser:
    user = require_auth(identity)
    if user.role is not Role.ADMIN:
        raise ForbiddenError("admin", f"Admin access required to {action}")
    return user


def require_organizer_or_above(identity: AppUser | None, action: str = "perform this action") -> AppUser:
    user = require_auth(identity)
    if not is_organizer_or_above(user.role):
        raise ForbiddenError("organizer_or_above", f"Only organizers, moderators or admins can {action}")
    return user


def require_self_or_admin(identity: AppUser | None, user_id: UserId, action: str) -> AppUser:
    user = require_auth(identity)
    if user.id != user_id and user.role is not Role.ADMIN:
        raise ForbiddenError("self_or_admin", f"You can only {action} for yourself")
    return user


def can_view_event(identity: AppUser | None, event: Event, is_registered: bool = False) -> bool:
    if event.visibility is Visibility.PUBLIC:
        return True
    if has_capability(identity, Capability.VIEW_PRIVATE_EVENTS):
        return True
    return is_authenticated(identity) and is_registered


def can_register_for_event(identity: AppUser | None, event: Event, is_registered: bool = False) -> bool:
    if not is_authenticated(identity) or is_registered:
        return False
    if is_admin(identity):
        return True
    # Private events need an invitation flow that does not exist yet.
    return event.visibility is Visibility.PUBLIC


def can_create_event(identity: AppUser | None) -> bool:
    return has_capability(identity, Capability.MANAGE_EVENTS)


def can_edit_event(identity: AppUser | None, event: Event | None = None) -> bool:
    return has_capability(identity, Capability.MANAGE_EVENTS)


def can_delete_event(identity: AppUser | None, event: Event | None = None) -> bool:
    return has_capability(identity, Capability.MANAGE_EVENTS)


def can_view_ticket(identity: AppUser | None, ticket: Ticket) -> bool:
    if identity is None:
        return False
    if is_organizer_or_above(identity.role):
        return True
    return ticket.user_id is not None and ticket.user_id == identity.id


def can_manage_roles(identity: AppUser | None) -> bool:
    return has_capability(identity, Capability.MANAGE_USERS)


def require_can_change_role(actor: AppUser | None, target_id: UserId, new_role: Role) -> AppUser:
    """Admins manage roles, but never their own: an admin cannot demote themself."""
    admin = require_admin(actor, "change user roles")
    if admin.id == target_id and new_role is not Role.ADMIN:
        raise ForbiddenError("manage_users", "You cannot change your own role")
    return admin


def require_can_delete_user(actor: AppUser | None, target_id: UserId) -> AppUser:
    admin = require_admin(actor, "delete users")
    if admin.id == target_id:
        raise ForbiddenError("manage_users", "You cannot delete yourself")
    return admin


class AccessPolicy:
    """Policy entry point that also consults fine-grained grants."""

    def __init__(self, permission_cache: PermissionCache) -> None:
        self._permissions = permission_cache

    @property
    def permission_cache(self) -> PermissionCache:
        return self._permissions

    def has_permission(self, identity: AppUser | None, permission_id: str) -> bool:
        if identity is None or not is_grantable(identity.role, permission_id):
            return False
        return self._permissions.has(identity.role.value, permission_id)

    def require_permission(self, identity: AppUser | None, permission_id: str) -> AppUser:
        user = require_auth(identity)
        if not self.has_permission(user, permission_id):
            raise ForbiddenError(permission_id, f"Missing permission: {permission_id}")
        return user

    def can_view_event_registrations(self, identity: AppUser | None) -> bool:
        return has_capability(identity, Capability.VIEW_REGISTRATIONS) or self.has_permission(
            identity, "registrations.view"
        )

    def can_export_attendees(self, identity: AppUser | None) -> bool:
        return is_admin(identity) or self.has_permission(identity, "attendees.export")

    def can_view_event_tickets(self, identity: AppUser | None) -> bool:
        return has_capability(identity, Capability.VIEW_EVENT_TICKETS) or self.has_permission(
            identity, "tickets.view_all"
        )
