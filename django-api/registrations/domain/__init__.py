from registrations.domain.models import (
    AppUser,
    Event,
    PaymentInstructions,
    Permission,
    Registration,
    RegistrationForm,
    Ticket,
    derive_stage,
)
from registrations.domain.value_objects import (
    BoardingStatus,
    Channel,
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

__all__ = [
    "AppUser",
    "Event",
    "PaymentInstructions",
    "Permission",
    "Registration",
    "RegistrationForm",
    "Ticket",
    "derive_stage",
    "BoardingStatus",
    "Channel",
    "Email",
    "EventId",
    "EventStatus",
    "Money",
    "PaymentStatus",
    "RegistrationId",
    "Role",
    "TicketId",
    "TicketNumber",
    "TicketStage",
    "UserId",
    "Visibility",
]
