"""Ticket lifecycle transitions.

Each transition takes the current ticket and returns the updated ticket.
Nothing here touches storage; the ticket service persists the result with
a compare-and-swap on ``Ticket.version``.

    new -> assigned -> payment_sent -> paid -> boarded
"""

from dataclasses import replace
from datetime import datetime
from typing import assert_never

from registrations.domain.errors import (
    InvalidTransitionError,
    PreconditionFailedError,
    PreconditionReason,
    ValidationError,
)
from registrations.domain.models import Ticket, derive_stage
from registrations.domain.value_objects import (
    BoardingStatus,
    PaymentStatus,
    TicketStage,
    UserId,
)

_STAGE_ORDER = (
    TicketStage.NEW,
    TicketStage.ASSIGNED,
    TicketStage.PAYMENT_SENT,
    TicketStage.PAID,
    TicketStage.BOARDED,
)


def stage_rank(stage: TicketStage) -> int:
    return _STAGE_ORDER.index(stage)


def assign(ticket: Ticket, assignee_id: UserId, now: datetime) -> Ticket:
    """Assign (or re-assign) the ticket to a staff member.

    Payment and boarding progress is kept as-is.
    """
    if ticket.boarding_status is BoardingStatus.BOARDED:
        raise InvalidTransitionError("A boarded ticket cannot be reassigned")
    return replace(ticket, assigned_to_id=assignee_id, assigned_at=now)


def mark_payment_sent(ticket: Ticket, now: datetime) -> Ticket:
    if ticket.assigned_to_id is None:
        raise PreconditionFailedError(
            "Ticket must be assigned to a staff member before payment details are sent",
            PreconditionReason.NOT_READY,
        )
    if ticket.payment_status is not None:
        raise PreconditionFailedError(
            f"Payment has already been actioned for this ticket (status: {ticket.payment_status.value})",
            PreconditionReason.ALREADY_DONE,
        )
    return replace(ticket, payment_status=PaymentStatus.PAYMENT_SENT, payment_sent_at=now)


def mark_paid(ticket: Ticket, now: datetime) -> Ticket:
    if ticket.payment_status is None:
        raise PreconditionFailedError(
            "Payment details must be sent before the ticket can be marked as paid",
            PreconditionReason.NOT_READY,
        )
    if ticket.payment_status is PaymentStatus.PAID:
        raise PreconditionFailedError(
            "Ticket is already marked as paid",
            PreconditionReason.ALREADY_DONE,
        )
    return replace(ticket, payment_status=PaymentStatus.PAID, paid_at=now)


def mark_boarded(ticket: Ticket, boarder_id: UserId, now: datetime) -> Ticket:
    if ticket.boarding_status is BoardingStatus.BOARDED:
        raise PreconditionFailedError(
            "Ticket has already been boarded",
            PreconditionReason.ALREADY_DONE,
        )
    if ticket.payment_status is not PaymentStatus.PAID:
        raise PreconditionFailedError(
            "Ticket must be paid before boarding",
            PreconditionReason.NOT_READY,
        )
    return replace(
        ticket,
        boarding_status=BoardingStatus.BOARDED,
        boarded_at=now,
        boarded_by_id=boarder_id,
    )


def force_stage(
    ticket: Ticket,
    target: TicketStage,
    now: datetime,
    actor_id: UserId,
    assignee_id: UserId | None = None,
) -> Ticket:
    """Return the ticket with the complete field set for ``target``.

    Every field downstream of the target is cleared. Upstream timestamps
    that are already present are kept; missing ones are set to ``now``.
    A ticket forced into ``boarded`` records ``actor_id`` as the boarder
    unless it was already boarded. The result always derives to ``target``.
    """
    assignee = assignee_id or ticket.assigned_to_id
    if target is not TicketStage.NEW and assignee is None:
        raise ValidationError("assigned_to_id", f"An assignee is required for stage '{target.value}'")

    current_rank = stage_rank(derive_stage(ticket))

    def kept(value: datetime | None, reached: TicketStage) -> datetime:
        # Keep a timestamp only if the ticket had actually reached that stage.
        if value is not None and current_rank >= stage_rank(reached):
            return value
        return now

    match target:
        case TicketStage.NEW:
            fields = dict(
                assigned_to_id=None,
                assigned_at=None,
                payment_status=None,
                payment_sent_at=None,
                paid_at=None,
                boarding_status=None,
                boarded_at=None,
                boarded_by_id=None,
            )
        case TicketStage.ASSIGNED:
            fields = dict(
                assigned_to_id=assignee,
                assigned_at=now if assignee_id else kept(ticket.assigned_at, TicketStage.ASSIGNED),
                payment_status=None,
                payment_sent_at=None,
                paid_at=None,
                boarding_status=None,
                boarded_at=None,
                boarded_by_id=None,
            )
        case TicketStage.PAYMENT_SENT:
            fields = dict(
                assigned_to_id=assignee,
                assigned_at=now if assignee_id else kept(ticket.assigned_at, TicketStage.ASSIGNED),
                payment_status=PaymentStatus.PAYMENT_SENT,
                payment_sent_at=kept(ticket.payment_sent_at, TicketStage.PAYMENT_SENT),
                paid_at=None,
                boarding_status=None,
                boarded_at=None,
                boarded_by_id=None,
            )
        case TicketStage.PAID:
            fields = dict(
                assigned_to_id=assignee,
                assigned_at=now if assignee_id else kept(ticket.assigned_at, TicketStage.ASSIGNED),
                payment_status=PaymentStatus.PAID,
                payment_sent_at=kept(ticket.payment_sent_at, TicketStage.PAYMENT_SENT),
                paid_at=kept(ticket.paid_at, TicketStage.PAID),
                boarding_status=None,
                boarded_at=None,
                boarded_by_id=None,
            )
        case TicketStage.BOARDED:
            fields = dict(
                assigned_to_id=assignee,
                assigned_at=now if assignee_id else kept(ticket.assigned_at, TicketStage.ASSIGNED),
                payment_status=PaymentStatus.PAID,
                payment_sent_at=kept(ticket.payment_sent_at, TicketStage.PAYMENT_SENT),
                paid_at=kept(ticket.paid_at, TicketStage.PAID),
                boarding_status=BoardingStatus.BOARDED,
                boarded_at=kept(ticket.boarded_at, TicketStage.BOARDED),
                boarded_by_id=(
                    ticket.boarded_by_id
                    if ticket.boarded_by_id is not None and current_rank == stage_rank(TicketStage.BOARDED)
                    else actor_id
                ),
            )
        case _:
            assert_never(target)

    return replace(ticket, **fields)
