"""Ticket service - issuance and lifecycle transitions.

Every transition reads the ticket, applies the pure transition from
domain.lifecycle, then writes it back conditionally on the version that
was read. A concurrent writer makes the write fail with
InvalidTransitionError instead of silently overwriting.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from registrations.domain import (
    AppUser,
    Channel,
    Email,
    Event,
    EventId,
    Ticket,
    TicketId,
    TicketNumber,
    TicketStage,
    UserId,
    lifecycle,
)
from registrations.domain.errors import (
    DuplicateError,
    EventNotFoundError,
    ForbiddenError,
    InvalidTransitionError,
    PreconditionFailedError,
    PreconditionReason,
    TicketNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from registrations.domain.validators import parse_id, parse_stage
from registrations.policies import access_control as policy
from registrations.policies.access_control import AccessPolicy, Capability
from registrations.services.message_renderer import PAYMENT_DETAILS, MessageRenderer, RenderedMessage
from registrations.stores.interfaces import (
    DuplicateRecordError,
    EventStore,
    RegistrationStore,
    StaleRecordError,
    TicketStore,
    UserStore,
)

logger = structlog.get_logger(__name__)

TICKET_NUMBER_ATTEMPTS = 5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PaymentMessage:
    whatsapp: RenderedMessage
    email: RenderedMessage


@dataclass(frozen=True)
class PaymentSentResult:
    ticket: Ticket
    payment_message: PaymentMessage


@dataclass(frozen=True)
class TicketVerification:
    valid: bool
    ticket: Ticket | None


class TicketService:
    """Service for ticket issuance, queries and lifecycle transitions."""

    def __init__(
        self,
        tickets: TicketStore,
        events: EventStore,
        users: UserStore,
        registrations: RegistrationStore,
        access: AccessPolicy,
        renderer: MessageRenderer | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._tickets = tickets
        self._events = events
        self._users = users
        self._registrations = registrations
        self._access = access
        self._renderer = renderer or MessageRenderer()
        self._clock = clock

    # Issuance

    def issue_ticket(
        self,
        user_id: UserId | None,
        event_id: EventId,
        issued_to_name: str,
        issued_to_email: Email,
    ) -> Ticket:
        """Return the identity's ticket for the event, creating it if needed.

        Issuing twice for the same (user or guest email, event) returns the
        existing ticket unchanged.
        """
        if not issued_to_name or not issued_to_name.strip():
            raise ValidationError("issued_to_name", "Name is required for ticket")

        existing = self._find_ticket(user_id, event_id, issued_to_email)
        if existing is not None:
            return existing

        for _ in range(TICKET_NUMBER_ATTEMPTS):
            try:
                ticket = self._tickets.create_ticket(
                    event_id=event_id,
                    user_id=user_id,
                    ticket_number=TicketNumber.generate(),
                    issued_to_name=issued_to_name.strip(),
                    issued_to_email=issued_to_email,
                    issued_at=self._clock(),
                )
            except DuplicateRecordError:
                # Either a concurrent issuance won, or the ticket number collided.
                existing = self._find_ticket(user_id, event_id, issued_to_email)
                if existing is not None:
                    return existing
                continue
            logger.info(
                "ticket_issued",
                ticket_id=str(ticket.id),
                ticket_number=ticket.ticket_number.value,
                event_id=str(event_id),
                guest=user_id is None,
            )
            return ticket
        raise DuplicateError("Could not allocate a unique ticket number")

    def issue_missing_tickets(self, actor: AppUser | None, event_id: str) -> list[Ticket]:
        """Issue tickets for registrations of an event that have none.

        Safe to re-run: issuance is idempotent.
        """
        event_key = parse_id(event_id, "event_id", EventId)
        policy.require_admin(actor, "reissue tickets")
        self._get_event(event_key)

        issued: list[Ticket] = []
        for registration in self._registrations.list_event_registrations(event_key):
            if self._find_ticket(registration.user_id, event_key, registration.email) is not None:
                continue
            issued.append(
                self.issue_ticket(
                    registration.user_id,
                    event_key,
                    registration.form.full_name,
                    registration.email,
                )
            )
        logger.info("missing_tickets_issued", event_id=str(event_key), count=len(issued))
        return issued

    # Queries

    def get_ticket(self, identity: AppUser | None, ticket_id: str) -> Ticket:
        ticket_key = parse_id(ticket_id, "ticket_id", TicketId)
        user = policy.require_auth(identity)
        ticket = self._get_ticket(ticket_key)
        if not policy.can_view_ticket(user, ticket):
            raise ForbiddenError("view_ticket", "You can only view your own tickets")
        return ticket

    def verify_ticket(self, ticket_number: str) -> TicketVerification:
        """Public check used at the entrance: anyone holding the number may verify it."""
        if not ticket_number or not ticket_number.strip():
            raise ValidationError("ticket_number", "Ticket number is required")
        try:
            number = TicketNumber(ticket_number.strip().upper())
        except ValueError:
            return TicketVerification(valid=False, ticket=None)
        ticket = self._tickets.get_ticket_by_number(number)
        return TicketVerification(valid=ticket is not None, ticket=ticket)

    def list_event_tickets(self, identity: AppUser | None, event_id: str) -> list[Ticket]:
        event_key = parse_id(event_id, "event_id", EventId)
        user = policy.require_auth(identity)
        if not self._access.can_view_event_tickets(user):
            raise ForbiddenError(
                Capability.VIEW_EVENT_TICKETS.value,
                "Only organizers, moderators or admins can view event tickets",
            )
        self._get_event(event_key)
        return self._tickets.list_event_tickets(event_key)

    def list_user_tickets(self, identity: AppUser | None, user_id: str) -> list[Ticket]:
        user_key = parse_id(user_id, "user_id", UserId)
        policy.require_self_or_admin(identity, user_key, "view tickets")
        return self._tickets.list_user_tickets(user_key)

    def list_assigned_tickets(self, identity: AppUser | None, event_id: str | None = None) -> list[Ticket]:
        event_key = parse_id(event_id, "event_id", EventId) if event_id else None
        staff = policy.require_organizer_or_above(identity, "view assigned tickets")
        return self._tickets.list_assigned_tickets(staff.id, event_key)

    # Transitions

    def assign(self, actor: AppUser | None, ticket_id: str, assignee_id: str) -> Ticket:
        ticket_key = parse_id(ticket_id, "ticket_id", TicketId)
        assignee_key = parse_id(assignee_id, "assigned_to_id", UserId)
        staff = self._require_staff(actor, "assign tickets")
        ticket = self._get_ticket(ticket_key)
        assignee = self._users.get_user(assignee_key)
        if assignee is None:
            raise UserNotFoundError(str(assignee_key))
        if not policy.is_organizer_or_above(assignee.role):
            raise ValidationError(
                "assigned_to_id",
                "Tickets can only be assigned to organizers, moderators or admins",
            )

        updated = self._save(ticket, lifecycle.assign(ticket, assignee.id, self._clock()))
        logger.info(
            "ticket_assigned",
            ticket_id=str(ticket.id),
            assignee_id=str(assignee.id),
            actor_id=str(staff.id),
        )
        return updated

    def mark_payment_sent(self, actor: AppUser | None, ticket_id: str) -> PaymentSentResult:
        ticket_key = parse_id(ticket_id, "ticket_id", TicketId)
        staff = self._require_staff(actor, "send payment details")
        ticket = self._get_ticket(ticket_key)
        event = self._get_event(ticket.event_id)

        now = self._clock()
        sent = lifecycle.mark_payment_sent(ticket, now)
        message = self._payment_message(ticket, event, now)
        updated = self._save(ticket, sent)
        logger.info("ticket_payment_sent", ticket_id=str(ticket.id), actor_id=str(staff.id))
        return PaymentSentResult(ticket=updated, payment_message=message)

    def preview_payment_message(self, actor: AppUser | None, ticket_id: str) -> PaymentMessage:
        """Render the payment message without changing the ticket."""
        ticket_key = parse_id(ticket_id, "ticket_id", TicketId)
        self._require_staff(actor, "preview payment messages")
        ticket = self._get_ticket(ticket_key)
        event = self._get_event(ticket.event_id)
        return self._payment_message(ticket, event, self._clock())

    def mark_paid(self, actor: AppUser | None, ticket_id: str) -> Ticket:
        ticket_key = parse_id(ticket_id, "ticket_id", TicketId)
        staff = self._require_staff(actor, "confirm payments")
        ticket = self._get_ticket(ticket_key)
        updated = self._save(ticket, lifecycle.mark_paid(ticket, self._clock()))
        logger.info("ticket_paid", ticket_id=str(ticket.id), actor_id=str(staff.id))
        return updated

    def mark_boarded(self, actor: AppUser | None, ticket_id: str) -> Ticket:
        """Board the attendee; the acting staff member is recorded as the boarder."""
        ticket_key = parse_id(ticket_id, "ticket_id", TicketId)
        staff = self._require_staff(actor, "board attendees")
        ticket = self._get_ticket(ticket_key)
        updated = self._save(ticket, lifecycle.mark_boarded(ticket, staff.id, self._clock()))
        logger.info("ticket_boarded", ticket_id=str(ticket.id), boarded_by_id=str(staff.id))
        return updated

    def set_stage(
        self,
        actor: AppUser | None,
        ticket_id: str,
        target_stage: Any,
        assignee_id: str | None = None,
    ) -> Ticket:
        """Administrative override: force a ticket into ``target_stage``.

        This is the only way to move a ticket backwards. Downstream fields
        are cleared; when the ticket has no assignee and none is given, the
        acting admin becomes the assignee.
        """
        ticket_key = parse_id(ticket_id, "ticket_id", TicketId)
        target = parse_stage(target_stage)
        assignee_key = parse_id(assignee_id, "assigned_to_id", UserId) if assignee_id else None
        admin = policy.require_capability(
            actor,
            Capability.OVERRIDE_TICKET_STAGE,
            "Admin access required to override ticket stages",
        )
        ticket = self._get_ticket(ticket_key)
        if assignee_key is not None and self._users.get_user(assignee_key) is None:
            raise UserNotFoundError(str(assignee_key))
        if assignee_key is None and ticket.assigned_to_id is None and target is not TicketStage.NEW:
            assignee_key = admin.id

        forced = lifecycle.force_stage(ticket, target, self._clock(), admin.id, assignee_id=assignee_key)
        updated = self._save(ticket, forced)
        logger.warning(
            "ticket_stage_overridden",
            ticket_id=str(ticket.id),
            from_stage=ticket.stage.value,
            to_stage=target.value,
            actor_id=str(admin.id),
        )
        return updated

    # Helpers

    def _require_staff(self, actor: AppUser | None, action: str) -> AppUser:
        return policy.require_capability(
            actor,
            Capability.MANAGE_TICKETS,
            f"Only organizers, moderators or admins can {action}",
        )

    def _find_ticket(self, user_id: UserId | None, event_id: EventId, email: Email) -> Ticket | None:
        if user_id is not None:
            return self._tickets.get_user_ticket(user_id, event_id)
        return self._tickets.get_guest_ticket(email, event_id)

    def _get_ticket(self, ticket_id: TicketId) -> Ticket:
        ticket = self._tickets.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(str(ticket_id))
        return ticket

    def _get_event(self, event_id: EventId) -> Event:
        event = self._events.get_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    def _save(self, before: Ticket, after: Ticket) -> Ticket:
        try:
            return self._tickets.save_lifecycle(after, expected_version=before.version)
        except StaleRecordError:
            logger.warning("ticket_concurrent_modification", ticket_id=str(before.id), version=before.version)
            raise InvalidTransitionError("Ticket was modified concurrently; reload it and try again") from None

    def _payment_message(self, ticket: Ticket, event: Event, now: datetime) -> PaymentMessage:
        instructions = event.payment_instructions
        if instructions is None:
            raise PreconditionFailedError(
                "Payment instructions are not configured for this event",
                PreconditionReason.NOT_READY,
            )
        data = {
            "display_name": ticket.issued_to_name,
            "event_name": event.title,
            "ticket_number": ticket.ticket_number.value,
            "amount": str(instructions.amount_per_person),
            "due_date": (now + timedelta(days=instructions.payment_deadline_days)).date().isoformat(),
            "bank_name": instructions.bank_name,
            "iban": instructions.iban,
            "account_holder": instructions.account_holder,
            "reference": instructions.reference_for(ticket.ticket_number),
            "notes": instructions.notes,
        }
        return PaymentMessage(
            whatsapp=self._renderer.render(PAYMENT_DETAILS, Channel.WHATSAPP, data),
            email=self._renderer.render(PAYMENT_DETAILS, Channel.EMAIL, data),
        )
