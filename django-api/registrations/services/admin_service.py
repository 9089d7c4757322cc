"""Admin service - user management and reporting."""

from collections import Counter
from dataclasses import dataclass, field

import structlog

from registrations.domain import AppUser, EventId, TicketStage, UserId
from registrations.domain.errors import EventNotFoundError, UserNotFoundError
from registrations.domain.validators import parse_id, parse_role
from registrations.policies import access_control as policy
from registrations.policies.access_control import Capability
from registrations.stores.interfaces import EventStore, RegistrationStore, TicketStore, UserStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EventStatistics:
    event_id: EventId
    registration_count: int
    guest_registration_count: int
    attendee_count: int
    vegetarian_meal_count: int
    non_vegetarian_meal_count: int
    ticket_count: int
    tickets_by_stage: dict[TicketStage, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PlatformStatistics:
    user_count: int
    users_by_role: dict[str, int]
    event_count: int
    events_by_status: dict[str, int]


class AdminService:
    """Service for admin-only user management and statistics."""

    def __init__(
        self,
        users: UserStore,
        events: EventStore,
        registrations: RegistrationStore,
        tickets: TicketStore,
    ) -> None:
        self._users = users
        self._events = events
        self._registrations = registrations
        self._tickets = tickets

    def list_users(self, identity: AppUser | None) -> list[AppUser]:
        policy.require_capability(identity, Capability.MANAGE_USERS, "Admin access required to list users")
        return self._users.list_users()

    def update_user_role(self, identity: AppUser | None, user_id: str, role: str) -> AppUser:
        """Change a user's role. An admin cannot change their own role away from admin."""
        user_key = parse_id(user_id, "user_id", UserId)
        new_role = parse_role(role)
        admin = policy.require_can_change_role(identity, user_key, new_role)

        current = self._users.get_user(user_key)
        if current is None:
            raise UserNotFoundError(str(user_key))
        updated = self._users.update_role(user_key, new_role)
        if updated is None:
            raise UserNotFoundError(str(user_key))
        logger.info(
            "user_role_changed",
            user_id=str(user_key),
            from_role=current.role.value,
            to_role=new_role.value,
            actor_id=str(admin.id),
        )
        return updated

    def delete_user(self, identity: AppUser | None, user_id: str) -> None:
        """Delete a user together with their registrations and tickets."""
        user_key = parse_id(user_id, "user_id", UserId)
        admin = policy.require_can_delete_user(identity, user_key)
        if not self._users.delete_user(user_key):
            raise UserNotFoundError(str(user_key))
        logger.warning("user_deleted", user_id=str(user_key), actor_id=str(admin.id))

    def event_statistics(self, identity: AppUser | None, event_id: str) -> EventStatistics:
        event_key = parse_id(event_id, "event_id", EventId)
        policy.require_admin(identity, "view event statistics")
        if self._events.get_event(event_key) is None:
            raise EventNotFoundError(str(event_key))

        registrations = self._registrations.list_event_registrations(event_key)
        tickets = self._tickets.list_event_tickets(event_key)
        stages = Counter(ticket.stage for ticket in tickets)

        attendees = 0
        for registration in registrations:
            form = registration.form
            attendees += 1 + (1 if form.spouse_name else 0)
            attendees += form.children_under_7_count + form.children_over_7_count

        return EventStatistics(
            event_id=event_key,
            registration_count=len(registrations),
            guest_registration_count=sum(1 for r in registrations if r.is_guest),
            attendee_count=attendees,
            vegetarian_meal_count=sum(r.form.vegetarian_meal_count for r in registrations),
            non_vegetarian_meal_count=sum(r.form.non_vegetarian_meal_count for r in registrations),
            ticket_count=len(tickets),
            tickets_by_stage={stage: stages.get(stage, 0) for stage in TicketStage},
        )

    def platform_statistics(self, identity: AppUser | None) -> PlatformStatistics:
        policy.require_admin(identity, "view platform statistics")
        users = self._users.list_users()
        events = self._events.list_events()
        return PlatformStatistics(
            user_count=len(users),
            users_by_role=dict(Counter(user.role.value for user in users)),
            event_count=len(events),
            events_by_status=dict(Counter(event.status.value for event in events)),
        )
