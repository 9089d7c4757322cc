"""Registration service - turns validated requests into registrations.

Checks always run in the same order so the error a caller sees does not
depend on which combination of problems the request has:

    validation -> authorization -> existence -> business rules

One registration per (user, event) and per guest (email, event) is
guaranteed by the store's unique constraints. The pre-check here only
gives a friendlier error on the common path; a DuplicateRecordError from
the insert is the authoritative answer when two requests race.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

from registrations.domain import (
    AppUser,
    Event,
    EventId,
    EventStatus,
    Registration,
    RegistrationId,
    Ticket,
    TicketStage,
    UserId,
    Visibility,
)
from registrations.domain.errors import (
    DuplicateRegistrationError,
    EventNotFoundError,
    ForbiddenError,
    PreconditionFailedError,
    PreconditionReason,
    RegistrationNotFoundError,
    UserNotFoundError,
)
from registrations.domain.validators import RegistrationValidator, parse_id
from registrations.policies import access_control as policy
from registrations.policies.access_control import AccessPolicy, Capability
from registrations.services.ticket_service import TicketService, utcnow
from registrations.stores.interfaces import (
    DuplicateRecordError,
    EventStore,
    RegistrationStore,
    TicketStore,
    UnitOfWork,
    UserStore,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RegistrationResult:
    """A new registration and its ticket.

    ``ticket`` is None only for member registrations whose ticket issuance
    failed; TicketService.issue_missing_tickets fills the gap later.
    """

    registration: Registration
    ticket: Ticket | None


@dataclass(frozen=True)
class AttendeeRow:
    full_name: str
    email: str
    whatsapp_number: str | None
    party_size: int
    vegetarian_meal_count: int
    non_vegetarian_meal_count: int
    ticket_number: str | None
    ticket_stage: TicketStage | None
    registered_at: datetime


class RegistrationService:
    """Service for event registration and cancellation."""

    def __init__(
        self,
        registrations: RegistrationStore,
        events: EventStore,
        users: UserStore,
        tickets: TicketStore,
        unit_of_work: UnitOfWork,
        ticket_service: TicketService,
        access: AccessPolicy,
        validator: RegistrationValidator | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._registrations = registrations
        self._events = events
        self._users = users
        self._tickets = tickets
        self._uow = unit_of_work
        self._ticket_service = ticket_service
        self._access = access
        self._validator = validator or RegistrationValidator()
        self._clock = clock

    def register_for_event(
        self,
        identity: AppUser | None,
        event_id: str,
        form_data: Mapping[str, Any],
        user_id: str | None = None,
    ) -> RegistrationResult:
        """Register an authenticated user for an event and issue their ticket.

        Admins may register someone else by passing ``user_id``. Ticket
        issuance is best-effort: a failure is logged and the registration
        stands.

        Raises:
            ValidationError, UnauthenticatedError, ForbiddenError,
            EventNotFoundError, UserNotFoundError, PreconditionFailedError,
            DuplicateRegistrationError
        """
        event_key = parse_id(event_id, "event_id", EventId)
        target_key = parse_id(user_id, "user_id", UserId) if user_id else None
        form = self._validator.validate_form(form_data)

        user = policy.require_auth(identity)
        target_key = target_key or user.id
        policy.require_self_or_admin(user, target_key, "register")

        event = self._get_event(event_key)
        if target_key != user.id and self._users.get_user(target_key) is None:
            raise UserNotFoundError(str(target_key))

        if not policy.can_register_for_event(user, event):
            raise ForbiddenError("register_for_event", "You do not have permission to register for this event")
        self._require_open(event)
        if self._registrations.get_user_registration(target_key, event_key) is not None:
            raise DuplicateRegistrationError(str(event_key))

        try:
            registration = self._registrations.create_registration(event_key, target_key, form, self._clock())
        except DuplicateRecordError:
            raise DuplicateRegistrationError(str(event_key)) from None
        logger.info(
            "registration_created",
            registration_id=str(registration.id),
            event_id=str(event_key),
            user_id=str(target_key),
        )

        ticket: Ticket | None = None
        try:
            ticket = self._ticket_service.issue_ticket(target_key, event_key, form.full_name, form.email)
        except Exception:
            logger.exception(
                "ticket_issuance_failed",
                registration_id=str(registration.id),
                event_id=str(event_key),
                user_id=str(target_key),
            )
        return RegistrationResult(registration=registration, ticket=ticket)

    def register_guest(self, event_id: str, form_data: Mapping[str, Any]) -> RegistrationResult:
        """Register a guest (no account), deduplicated on (email, event).

        The registration and its ticket are written in one transaction; if
        the ticket cannot be issued, nothing is kept.
        """
        event_key = parse_id(event_id, "event_id", EventId)
        form = self._validator.validate_form(form_data)

        event = self._get_event(event_key)
        if event.visibility is not Visibility.PUBLIC:
            raise ForbiddenError("register_for_event", "Guests can only register for public events")
        self._require_open(event)
        if self._registrations.get_guest_registration(form.email, event_key) is not None:
            raise DuplicateRegistrationError(str(event_key))

        with self._uow.atomic():
            try:
                registration = self._registrations.create_registration(event_key, None, form, self._clock())
            except DuplicateRecordError:
                raise DuplicateRegistrationError(str(event_key)) from None
            ticket = self._ticket_service.issue_ticket(None, event_key, form.full_name, form.email)

        logger.info(
            "guest_registration_created",
            registration_id=str(registration.id),
            event_id=str(event_key),
            ticket_id=str(ticket.id),
        )
        return RegistrationResult(registration=registration, ticket=ticket)

    def cancel_registration(self, identity: AppUser | None, event_id: str, user_id: str | None = None) -> None:
        """Cancel a registration. The ticket, if any, is kept for the record."""
        event_key = parse_id(event_id, "event_id", EventId)
        target_key = parse_id(user_id, "user_id", UserId) if user_id else None

        user = policy.require_auth(identity)
        target_key = target_key or user.id
        policy.require_self_or_admin(user, target_key, "cancel registrations")

        event = self._get_event(event_key)
        registration = self._registrations.get_user_registration(target_key, event_key)
        if registration is None:
            raise RegistrationNotFoundError(f"{target_key}/{event_key}")

        if event.status is EventStatus.ARCHIVE:
            raise PreconditionFailedError(
                "Registrations for archived events cannot be cancelled",
                PreconditionReason.CLOSED,
            )

        self._registrations.delete_registration(registration.id)
        logger.info(
            "registration_cancelled",
            registration_id=str(registration.id),
            event_id=str(event_key),
            user_id=str(target_key),
            actor_id=str(user.id),
        )

    def is_registered(self, user_id: str, event_id: str) -> bool:
        user_key = parse_id(user_id, "user_id", UserId)
        event_key = parse_id(event_id, "event_id", EventId)
        return self._registrations.get_user_registration(user_key, event_key) is not None

    def list_user_registrations(self, identity: AppUser | None, user_id: str) -> list[Registration]:
        user_key = parse_id(user_id, "user_id", UserId)
        policy.require_self_or_admin(identity, user_key, "view registrations")
        return self._registrations.list_user_registrations(user_key)

    def list_event_registrations(self, identity: AppUser | None, event_id: str) -> list[Registration]:
        event_key = parse_id(event_id, "event_id", EventId)
        user = policy.require_auth(identity)
        if not self._access.can_view_event_registrations(user):
            raise ForbiddenError("registrations.view", "You do not have permission to view event registrations")
        self._get_event(event_key)
        return self._registrations.list_event_registrations(event_key)

    def count_event_registrations(self, event_id: str) -> int:
        event_key = parse_id(event_id, "event_id", EventId)
        return self._registrations.count_event_registrations(event_key)

    def export_attendees(self, identity: AppUser | None, event_id: str) -> list[AttendeeRow]:
        """Attendee list joined with ticket numbers and stages."""
        event_key = parse_id(event_id, "event_id", EventId)
        user = policy.require_auth(identity)
        if not self._access.can_export_attendees(user):
            raise ForbiddenError("attendees.export", "You do not have permission to export attendees")
        self._get_event(event_key)

        tickets = self._tickets.list_event_tickets(event_key)
        by_user = {t.user_id: t for t in tickets if t.user_id is not None}
        by_guest_email = {t.issued_to_email: t for t in tickets if t.user_id is None}

        rows = []
        for registration in self._registrations.list_event_registrations(event_key):
            if registration.user_id is not None:
                ticket = by_user.get(registration.user_id)
            else:
                ticket = by_guest_email.get(registration.email)
            form = registration.form
            rows.append(
                AttendeeRow(
                    full_name=form.full_name,
                    email=form.email.value,
                    whatsapp_number=form.whatsapp_number,
                    party_size=1
                    + (1 if form.spouse_name else 0)
                    + form.children_under_7_count
                    + form.children_over_7_count,
                    vegetarian_meal_count=form.vegetarian_meal_count,
                    non_vegetarian_meal_count=form.non_vegetarian_meal_count,
                    ticket_number=ticket.ticket_number.value if ticket else None,
                    ticket_stage=ticket.stage if ticket else None,
                    registered_at=registration.registered_at,
                )
            )
        logger.info("attendees_exported", event_id=str(event_key), actor_id=str(user.id), rows=len(rows))
        return rows

    def update_registration_details(
        self,
        identity: AppUser | None,
        registration_id: str,
        changes: Mapping[str, Any],
    ) -> Registration:
        """Admin edit of descriptive fields; identity fields are immutable."""
        registration_key = parse_id(registration_id, "registration_id", RegistrationId)
        policy.require_capability(
            identity,
            Capability.EDIT_REGISTRATIONS,
            "Admin access required to edit registrations",
        )
        registration = self._registrations.get_registration(registration_key)
        if registration is None:
            raise RegistrationNotFoundError(str(registration_key))

        form = self._validator.validate_details_update(registration.form, changes)
        updated = self._registrations.update_registration_form(registration_key, form)
        if updated is None:
            raise RegistrationNotFoundError(str(registration_key))
        return updated

    def _get_event(self, event_id: EventId) -> Event:
        event = self._events.get_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    @staticmethod
    def _require_open(event: Event) -> None:
        if event.status is EventStatus.ONGOING:
            return
        if event.status is EventStatus.UPCOMING:
            raise PreconditionFailedError("Registration is not open yet for this event", PreconditionReason.NOT_READY)
        raise PreconditionFailedError(
            "Registration is no longer accepted for this event",
            PreconditionReason.CLOSED,
        )
