"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in registrations/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from registrations.domain.value_objects import (
    BoardingStatus,
    Email,
    EventId,
    EventStatus,
    Money,
    PaymentStatus,
    RegistrationId,
    Role,
    TicketId,
    TicketNumber,
    TicketStage,
    UserId,
    Visibility,
)


@dataclass(frozen=True)
class AppUser:
    """An authenticated identity. Guests are represented by None."""

    id: UserId
    email: Email
    name: str
    display_name: str
    role: Role
    created_at: datetime | None = None


@dataclass(frozen=True)
class PaymentInstructions:
    """Per-event bank transfer details used to build payment messages."""

    bank_name: str
    iban: str
    account_holder: str
    amount_per_person: Money
    reference_format: str
    payment_deadline_days: int
    notes: str | None = None

    def reference_for(self, ticket_number: TicketNumber) -> str:
        return self.reference_format.replace("{ticket_number}", ticket_number.value)


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: EventId
    title: str
    event_date: date
    start_at: datetime
    status: EventStatus
    category_id: str
    visibility: Visibility
    short_description: str
    description: str
    organizer_name: str
    subtitle: str | None = None
    end_at: datetime | None = None
    location_name: str | None = None
    city: str | None = None
    cover_image_url: str | None = None
    rating_average: Decimal | None = None
    rating_count: int = 0
    payment_instructions: PaymentInstructions | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class RegistrationForm:
    """Validated descriptive data captured by the registration form."""

    full_name: str
    email: Email
    consent_to_store_personal_data: bool
    whatsapp_number: str | None = None
    spouse_name: str | None = None
    children_under_7_count: int = 0
    children_over_7_count: int = 0
    children_names_and_ages: str | None = None
    vegetarian_meal_count: int = 0
    non_vegetarian_meal_count: int = 0
    other_preferences: str | None = None


@dataclass(frozen=True)
class Registration:
    """Domain representation of a Registration.

    ``user_id`` is None for guest registrations, which are keyed on email.
    """

    id: RegistrationId
    event_id: EventId
    user_id: UserId | None
    form: RegistrationForm
    registered_at: datetime

    @property
    def email(self) -> Email:
        return self.form.email

    @property
    def is_guest(self) -> bool:
        return self.user_id is None


@dataclass(frozen=True)
class Ticket:
    """Domain representation of a Ticket.

    The lifecycle stage is never stored; see ``derive_stage``.
    """

    id: TicketId
    event_id: EventId
    user_id: UserId | None
    ticket_number: TicketNumber
    issued_at: datetime
    issued_to_name: str
    issued_to_email: Email
    assigned_to_id: UserId | None = None
    assigned_at: datetime | None = None
    payment_status: PaymentStatus | None = None
    payment_sent_at: datetime | None = None
    paid_at: datetime | None = None
    boarding_status: BoardingStatus | None = None
    boarded_at: datetime | None = None
    boarded_by_id: UserId | None = None
    version: int = 1

    @property
    def stage(self) -> TicketStage:
        return derive_stage(self)


@dataclass(frozen=True)
class Permission:
    """A fine-grained, runtime-grantable permission."""

    id: str
    category: str
    description: str


def derive_stage(ticket: Ticket) -> TicketStage:
    """Derive the lifecycle stage from the ticket's status fields."""
    if ticket.boarding_status is BoardingStatus.BOARDED:
        return TicketStage.BOARDED
    if ticket.payment_status is PaymentStatus.PAID:
        return TicketStage.PAID
    if ticket.payment_status is PaymentStatus.PAYMENT_SENT:
        return TicketStage.PAYMENT_SENT
    if ticket.assigned_to_id is not None:
        return TicketStage.ASSIGNED
    return TicketStage.NEW
