"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Uniqueness is enforced
by the store, never by in-process locks: inserts that violate a unique key
raise DuplicateRecordError, and conditional ticket updates raise
StaleRecordError when the stored version moved on.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any

from registrations.domain import (
    AppUser,
    Email,
    Event,
    EventId,
    Permission,
    Registration,
    RegistrationForm,
    RegistrationId,
    Role,
    Ticket,
    TicketId,
    TicketNumber,
    UserId,
)


class StoreError(Exception):
    """Base class for persistence-level signals."""


class DuplicateRecordError(StoreError):
    """A uniqueness-constrained insert conflicted with an existing row."""


class StaleRecordError(StoreError):
    """A conditional update found a different version than expected."""


class UserStore(ABC):
    """Interface for application user (profile) persistence."""

    @abstractmethod
    def get_user(self, user_id: UserId) -> AppUser | None:
        """Return a user by ID, or None if not found."""
        ...

    @abstractmethod
    def list_users(self) -> list[AppUser]:
        """Return all users ordered by created_at descending."""
        ...

    @abstractmethod
    def update_role(self, user_id: UserId, role: Role) -> AppUser | None:
        """Change a user's role. Return None if the user does not exist."""
        ...

    @abstractmethod
    def delete_user(self, user_id: UserId) -> bool:
        """Delete a user with their registrations and tickets."""
        ...


class EventStore(ABC):
    """Interface for event persistence operations."""

    @abstractmethod
    def list_events(self) -> list[Event]:
        """Return all events ordered by event_date ascending."""
        ...

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def create_event(self, fields: Mapping[str, Any]) -> Event:
        """Insert an event from validated fields."""
        ...

    @abstractmethod
    def update_event(self, event_id: EventId, fields: Mapping[str, Any]) -> Event | None:
        """Apply validated fields. Return None if the event does not exist."""
        ...

    @abstractmethod
    def delete_event(self, event_id: EventId) -> bool:
        """Delete an event with its registrations and tickets."""
        ...


class RegistrationStore(ABC):
    """Interface for registration persistence operations."""

    @abstractmethod
    def get_registration(self, registration_id: RegistrationId) -> Registration | None:
        ...

    @abstractmethod
    def get_user_registration(self, user_id: UserId, event_id: EventId) -> Registration | None:
        ...

    @abstractmethod
    def get_guest_registration(self, email: Email, event_id: EventId) -> Registration | None:
        ...

    @abstractmethod
    def create_registration(
        self,
        event_id: EventId,
        user_id: UserId | None,
        form: RegistrationForm,
        registered_at: datetime,
    ) -> Registration:
        """Insert a registration.

        Raises:
            DuplicateRecordError: If (user, event) or, for guests,
                (email, event) is already registered.
        """
        ...

    @abstractmethod
    def update_registration_form(
        self, registration_id: RegistrationId, form: RegistrationForm
    ) -> Registration | None:
        ...

    @abstractmethod
    def delete_registration(self, registration_id: RegistrationId) -> bool:
        ...

    @abstractmethod
    def list_event_registrations(self, event_id: EventId) -> list[Registration]:
        """Return registrations for an event, newest first."""
        ...

    @abstractmethod
    def list_user_registrations(self, user_id: UserId) -> list[Registration]:
        """Return registrations of a user, newest first."""
        ...

    @abstractmethod
    def count_event_registrations(self, event_id: EventId) -> int:
        ...


class TicketStore(ABC):
    """Interface for ticket persistence operations."""

    @abstractmethod
    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        ...

    @abstractmethod
    def get_ticket_by_number(self, ticket_number: TicketNumber) -> Ticket | None:
        ...

    @abstractmethod
    def get_user_ticket(self, user_id: UserId, event_id: EventId) -> Ticket | None:
        ...

    @abstractmethod
    def get_guest_ticket(self, email: Email, event_id: EventId) -> Ticket | None:
        """Return the ticket issued to a guest email (no user) for an event."""
        ...

    @abstractmethod
    def create_ticket(
        self,
        event_id: EventId,
        user_id: UserId | None,
        ticket_number: TicketNumber,
        issued_to_name: str,
        issued_to_email: Email,
        issued_at: datetime,
    ) -> Ticket:
        """Insert a ticket.

        Raises:
            DuplicateRecordError: If the identity already holds a ticket for
                the event or the ticket number is taken.
        """
        ...

    @abstractmethod
    def save_lifecycle(self, ticket: Ticket, expected_version: int) -> Ticket:
        """Persist the lifecycle fields of ``ticket`` if the stored version matches.

        Returns the stored ticket with its version incremented.

        Raises:
            StaleRecordError: If the stored version differs from ``expected_version``
                or the ticket no longer exists.
        """
        ...

    @abstractmethod
    def list_event_tickets(self, event_id: EventId) -> list[Ticket]:
        """Return tickets for an event, newest first."""
        ...

    @abstractmethod
    def list_user_tickets(self, user_id: UserId) -> list[Ticket]:
        ...

    @abstractmethod
    def list_assigned_tickets(self, assignee_id: UserId, event_id: EventId | None = None) -> list[Ticket]:
        ...


class PermissionStore(ABC):
    """Interface for the permission catalogue and role grants."""

    @abstractmethod
    def list_permissions(self) -> list[Permission]:
        """Return the catalogue ordered by category, then id."""
        ...

    @abstractmethod
    def get_permission(self, permission_id: str) -> Permission | None:
        ...

    @abstractmethod
    def get_all_role_permissions(self) -> dict[str, set[str]]:
        """Return the full grant map: role value -> permission ids."""
        ...

    @abstractmethod
    def grant(self, role: Role, permission_id: str) -> None:
        """Grant a permission. Granting twice is a no-op."""
        ...

    @abstractmethod
    def revoke(self, role: Role, permission_id: str) -> None:
        """Revoke a permission. Revoking a missing grant is a no-op."""
        ...


class UnitOfWork(ABC):
    """Transaction boundary shared by the stores."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager[Any]:
        """Return a context manager; everything inside commits or rolls back together."""
        ...
