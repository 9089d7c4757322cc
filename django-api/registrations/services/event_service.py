"""Event service - catalog reads and admin event management.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from registrations.domain import AppUser, Event, EventId, EventStatus
from registrations.domain.errors import EventNotFoundError, ForbiddenError, ValidationError
from registrations.domain.validators import EventValidator, parse_enum, parse_id
from registrations.policies import access_control as policy
from registrations.policies.access_control import Capability
from registrations.stores.interfaces import EventStore, RegistrationStore

logger = structlog.get_logger(__name__)


class EventService:
    """Service for event catalog operations."""

    def __init__(
        self,
        events: EventStore,
        registrations: RegistrationStore,
        validator: EventValidator,
    ) -> None:
        self._events = events
        self._registrations = registrations
        self._validator = validator

    def list_events(self, identity: AppUser | None, status: str | None = None) -> list[Event]:
        """Return the events the caller may see, optionally filtered by status."""
        wanted = parse_enum(status, "status", EventStatus) if status else None
        registered = (
            {r.event_id for r in self._registrations.list_user_registrations(identity.id)}
            if identity is not None
            else set()
        )
        visible = []
        for event in self._events.list_events():
            if wanted is not None and event.status is not wanted:
                continue
            if policy.can_view_event(identity, event, event.id in registered):
                visible.append(event)
        return visible

    def get_event(self, identity: AppUser | None, event_id: str) -> Event:
        """Return an event by ID.

        Raises:
            ValidationError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
            ForbiddenError: If the event is private and the caller may not see it.
        """
        event_key = parse_id(event_id, "event_id", EventId)
        event = self._get_event(event_key)
        if not policy.can_view_event(identity, event, self._is_registered(identity, event)):
            raise ForbiddenError("view_event", "You do not have access to this event")
        return event

    def create_event(self, identity: AppUser | None, data: Mapping[str, Any]) -> Event:
        cleaned = self._validator.validate_create(data)
        admin = policy.require_capability(identity, Capability.MANAGE_EVENTS, "Admin access required to create events")
        event = self._events.create_event(cleaned)
        logger.info("event_created", event_id=str(event.id), actor_id=str(admin.id))
        return event

    def update_event(self, identity: AppUser | None, event_id: str, changes: Mapping[str, Any]) -> Event:
        event_key = parse_id(event_id, "event_id", EventId)
        admin = policy.require_capability(identity, Capability.MANAGE_EVENTS, "Admin access required to update events")
        current = self._get_event(event_key)
        cleaned = self._validator.validate_update(changes, current)
        if not cleaned:
            return current

        updated = self._events.update_event(event_key, cleaned)
        if updated is None:
            raise EventNotFoundError(str(event_key))
        logger.info("event_updated", event_id=str(event_key), fields=sorted(cleaned), actor_id=str(admin.id))
        return updated

    def delete_event(self, identity: AppUser | None, event_id: str) -> None:
        """Delete an event; its registrations and tickets go with it."""
        event_key = parse_id(event_id, "event_id", EventId)
        admin = policy.require_capability(identity, Capability.MANAGE_EVENTS, "Admin access required to delete events")
        if not self._events.delete_event(event_key):
            raise EventNotFoundError(str(event_key))
        logger.info("event_deleted", event_id=str(event_key), actor_id=str(admin.id))

    def bulk_update_status(self, identity: AppUser | None, event_ids: Iterable[str], status: str) -> list[Event]:
        """Move several events to one status. Unknown IDs fail the whole call."""
        new_status = parse_enum(status, "status", EventStatus)
        keys = [parse_id(event_id, "event_ids", EventId) for event_id in event_ids]
        if not keys:
            raise ValidationError("event_ids", "At least one event ID is required")
        admin = policy.require_capability(identity, Capability.MANAGE_EVENTS, "Admin access required to update events")
        for key in keys:
            self._get_event(key)

        updated = []
        for key in keys:
            event = self._events.update_event(key, {"status": new_status})
            if event is None:
                raise EventNotFoundError(str(key))
            updated.append(event)
        logger.info(
            "event_status_bulk_updated",
            status=new_status.value,
            count=len(updated),
            actor_id=str(admin.id),
        )
        return updated

    def _get_event(self, event_id: EventId) -> Event:
        event = self._events.get_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    def _is_registered(self, identity: AppUser | None, event: Event) -> bool:
        if identity is None:
            return False
        return self._registrations.get_user_registration(identity.id, event.id) is not None
