"""Domain primitives that enforce validity at creation time."""

import re
import secrets
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Self
from uuid import UUID

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_TICKET_NUMBER_RE = re.compile(r"^EVT-[0-9A-F]{8}$")


@dataclass(frozen=True)
class EventId:
    """Unique identifier for an Event."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class UserId:
    """Unique identifier for an AppUser."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class RegistrationId:
    """Unique identifier for a Registration."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TicketId:
    """Unique identifier for a Ticket."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Email:
    """Case-insensitive email address, stored lower-cased."""

    value: str

    def __post_init__(self) -> None:
        normalized = self.value.strip().lower()
        if not _EMAIL_RE.match(normalized):
            raise ValueError("Invalid email format")
        object.__setattr__(self, "value", normalized)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TicketNumber:
    """Public ticket identifier of the form EVT-XXXXXXXX."""

    value: str

    def __post_init__(self) -> None:
        if not _TICKET_NUMBER_RE.match(self.value):
            raise ValueError("Ticket number must look like EVT-XXXXXXXX")

    @classmethod
    def generate(cls) -> Self:
        return cls(value=f"EVT-{secrets.token_hex(4).upper()}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal
    currency: str = "EUR"

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")
        if len(self.currency) != 3 or not self.currency.isalpha():
            raise ValueError("Currency must be a three letter ISO 4217 code")

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"


class Role(Enum):
    """Application roles, lowest to highest."""

    USER = "user"
    MEMBER = "member"
    ORGANIZER = "organizer"
    MODERATOR = "moderator"
    ADMIN = "admin"


class EventStatus(Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    TICKET_CLOSED = "ticket_closed"
    ARCHIVE = "archive"


class Visibility(Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class PaymentStatus(Enum):
    PAYMENT_SENT = "payment_sent"
    PAID = "paid"


class BoardingStatus(Enum):
    BOARDED = "boarded"


class TicketStage(Enum):
    """Lifecycle stage derived from a ticket's stored fields."""

    NEW = "new"
    ASSIGNED = "assigned"
    PAYMENT_SENT = "payment_sent"
    PAID = "paid"
    BOARDED = "boarded"


class Channel(Enum):
    """Delivery channel a message template is written for."""

    WHATSAPP = "whatsapp"
    EMAIL = "email"
