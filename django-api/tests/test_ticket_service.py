"""Unit tests for TicketService issuance and lifecycle transitions."""

from dataclasses import replace
from decimal import Decimal

import pytest

from registrations.domain import Email, EventStatus, Money, PaymentInstructions, Role, TicketStage
from registrations.domain.errors import (
    ForbiddenError,
    InvalidTransitionError,
    PreconditionFailedError,
    PreconditionReason,
    TicketNotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from tests.fakes import make_event, make_ticket, make_user

INSTRUCTIONS = PaymentInstructions(
    bank_name="Sparkasse",
    iban="DE89370400440532013000",
    account_holder="Community e.V.",
    amount_per_person=Money(Decimal("15.00"), "EUR"),
    reference_format="PICNIC {ticket_number}",
    payment_deadline_days=7,
    notes="Bring your ID",
)


@pytest.fixture
def event(events):
    return events.add(make_event(EventStatus.ONGOING, payment_instructions=INSTRUCTIONS))


@pytest.fixture
def ticket(ticket_service, event, member):
    return ticket_service.issue_ticket(member.id, event.id, "Mia Member", member.email)


@pytest.fixture
def assigned(ticket_service, ticket, organizer):
    return ticket_service.assign(organizer, str(ticket.id), str(organizer.id))


class TestIssueTicket:
    def test_issue_is_idempotent(self, ticket_service, tickets, ticket, event, member):
        again = ticket_service.issue_ticket(member.id, event.id, "Someone Else", member.email)
        assert again == ticket
        assert len(tickets.tickets) == 1

    def test_guest_ticket_keyed_by_email(self, ticket_service, event):
        first = ticket_service.issue_ticket(None, event.id, "Guest", Email("guest@example.com"))
        second = ticket_service.issue_ticket(None, event.id, "Guest", Email("GUEST@example.com"))
        assert first.id == second.id

    def test_name_required(self, ticket_service, event, member):
        with pytest.raises(ValidationError) as exc_info:
            ticket_service.issue_ticket(member.id, event.id, "  ", member.email)
        assert exc_info.value.field == "issued_to_name"

    def test_new_ticket_starts_at_new(self, ticket):
        assert ticket.stage is TicketStage.NEW
        assert ticket.ticket_number.value.startswith("EVT-")


class TestQueries:
    def test_owner_views_ticket(self, ticket_service, ticket, member):
        assert ticket_service.get_ticket(member, str(ticket.id)) == ticket

    def test_other_member_cannot_view(self, ticket_service, ticket):
        with pytest.raises(ForbiddenError):
            ticket_service.get_ticket(make_user(), str(ticket.id))

    def test_unknown_ticket(self, ticket_service, member):
        with pytest.raises(TicketNotFoundError):
            ticket_service.get_ticket(member, str(make_ticket().id))

    def test_event_tickets_staff_only(self, ticket_service, ticket, event, member, moderator):
        with pytest.raises(ForbiddenError):
            ticket_service.list_event_tickets(member, str(event.id))
        assert ticket_service.list_event_tickets(moderator, str(event.id)) == [ticket]

    def test_event_tickets_grant_respects_role_floor(
        self, ticket_service, ticket, event, member, permission_store, permission_cache
    ):
        permission_store.grant(Role.USER, "tickets.view_all")
        permission_cache.invalidate()
        with pytest.raises(ForbiddenError):
            ticket_service.list_event_tickets(make_user(Role.USER), str(event.id))

        permission_store.grant(Role.MEMBER, "tickets.view_all")
        permission_cache.invalidate()
        assert ticket_service.list_event_tickets(member, str(event.id)) == [ticket]

    def test_event_tickets_requires_login(self, ticket_service, event):
        with pytest.raises(UnauthenticatedError):
            ticket_service.list_event_tickets(None, str(event.id))

    def test_assigned_tickets(self, ticket_service, assigned, organizer, moderator):
        assert [t.id for t in ticket_service.list_assigned_tickets(organizer)] == [assigned.id]
        assert ticket_service.list_assigned_tickets(moderator) == []

    def test_verify_ticket(self, ticket_service, ticket):
        result = ticket_service.verify_ticket(ticket.ticket_number.value.lower())
        assert result.valid is True
        assert result.ticket == ticket

    @pytest.mark.parametrize("number", ["EVT-FFFFFFFF", "not-a-ticket"])
    def test_verify_unknown_number(self, ticket_service, ticket, number):
        result = ticket_service.verify_ticket(number)
        assert result.valid is False
        assert result.ticket is None


class TestTransitions:
    def test_full_lifecycle_by_different_staff(self, ticket_service, assigned, moderator, admin):
        sent = ticket_service.mark_payment_sent(moderator, str(assigned.id))
        assert sent.ticket.stage is TicketStage.PAYMENT_SENT

        paid = ticket_service.mark_paid(admin, str(assigned.id))
        assert paid.stage is TicketStage.PAID

        boarded = ticket_service.mark_boarded(moderator, str(assigned.id))
        assert boarded.stage is TicketStage.BOARDED
        assert boarded.boarded_by_id == moderator.id
        assert boarded.version == assigned.version + 3

    def test_member_cannot_assign(self, ticket_service, ticket, member, organizer):
        with pytest.raises(ForbiddenError):
            ticket_service.assign(member, str(ticket.id), str(organizer.id))

    def test_assignee_must_be_staff(self, ticket_service, ticket, organizer, member):
        with pytest.raises(ValidationError) as exc_info:
            ticket_service.assign(organizer, str(ticket.id), str(member.id))
        assert exc_info.value.field == "assigned_to_id"

    def test_paid_before_payment_sent(self, ticket_service, assigned, organizer):
        with pytest.raises(PreconditionFailedError) as exc_info:
            ticket_service.mark_paid(organizer, str(assigned.id))
        assert exc_info.value.reason is PreconditionReason.NOT_READY

    def test_paid_twice(self, ticket_service, assigned, organizer):
        ticket_service.mark_payment_sent(organizer, str(assigned.id))
        ticket_service.mark_paid(organizer, str(assigned.id))
        with pytest.raises(PreconditionFailedError) as exc_info:
            ticket_service.mark_paid(organizer, str(assigned.id))
        assert exc_info.value.reason is PreconditionReason.ALREADY_DONE

    def test_concurrent_modification(self, ticket_service, tickets, ticket, organizer, moderator, monkeypatch):
        stale = tickets.get_ticket(ticket.id)
        ticket_service.assign(organizer, str(ticket.id), str(organizer.id))
        monkeypatch.setattr(tickets, "get_ticket", lambda ticket_id: stale)

        with pytest.raises(InvalidTransitionError):
            ticket_service.assign(moderator, str(ticket.id), str(moderator.id))
        assert tickets.tickets[ticket.id].assigned_to_id == organizer.id


class TestPaymentMessages:
    def test_payment_sent_renders_both_channels(self, ticket_service, assigned, organizer):
        result = ticket_service.mark_payment_sent(organizer, str(assigned.id))
        number = assigned.ticket_number.value

        whatsapp = result.payment_message.whatsapp.body
        assert "Hi Mia Member!" in whatsapp
        assert "Amount: 15.00 EUR" in whatsapp
        assert f"Reference: PICNIC {number}" in whatsapp
        assert "Please pay by 2025-06-08." in whatsapp
        assert "Note: Bring your ID" in whatsapp
        assert result.payment_message.email.subject == f"Payment details for Summer Picnic ({number})"

    def test_no_instructions_leaves_ticket_untouched(self, ticket_service, tickets, events, event, assigned, organizer):
        events.update_event(event.id, {"payment_instructions": None})

        with pytest.raises(PreconditionFailedError) as exc_info:
            ticket_service.mark_payment_sent(organizer, str(assigned.id))

        assert exc_info.value.reason is PreconditionReason.NOT_READY
        assert tickets.get_ticket(assigned.id).stage is TicketStage.ASSIGNED

    def test_preview_does_not_change_stage(self, ticket_service, tickets, assigned, organizer):
        message = ticket_service.preview_payment_message(organizer, str(assigned.id))
        assert "IBAN: DE89370400440532013000" in message.email.body
        assert tickets.get_ticket(assigned.id).stage is TicketStage.ASSIGNED

    def test_notes_block_omitted_without_notes(self, ticket_service, events, event, assigned, organizer):
        events.update_event(event.id, {"payment_instructions": replace(INSTRUCTIONS, notes=None)})
        message = ticket_service.preview_payment_message(organizer, str(assigned.id))
        assert "Note:" not in message.whatsapp.body
        assert "Note:" not in message.email.body


class TestSetStage:
    def test_admin_moves_boarded_ticket_back(self, ticket_service, tickets, assigned, organizer, admin):
        ticket_service.mark_payment_sent(organizer, str(assigned.id))
        ticket_service.mark_paid(organizer, str(assigned.id))
        ticket_service.mark_boarded(organizer, str(assigned.id))

        forced = ticket_service.set_stage(admin, str(assigned.id), "assigned")

        assert forced.stage is TicketStage.ASSIGNED
        assert forced.assigned_to_id == organizer.id
        assert forced.paid_at is None
        assert forced.boarded_by_id is None

    def test_admin_becomes_assignee_of_unassigned_ticket(self, ticket_service, ticket, admin):
        forced = ticket_service.set_stage(admin, str(ticket.id), "paid")
        assert forced.stage is TicketStage.PAID
        assert forced.assigned_to_id == admin.id

    def test_explicit_assignee(self, ticket_service, ticket, admin, moderator):
        forced = ticket_service.set_stage(admin, str(ticket.id), "payment_sent", assignee_id=str(moderator.id))
        assert forced.assigned_to_id == moderator.id

    def test_forced_boarding_records_admin_as_boarder(self, ticket_service, assigned, organizer, admin):
        forced = ticket_service.set_stage(admin, str(assigned.id), "boarded")
        assert forced.stage is TicketStage.BOARDED
        assert forced.assigned_to_id == organizer.id
        assert forced.boarded_by_id == admin.id

    def test_override_is_admin_only(self, ticket_service, ticket, moderator):
        with pytest.raises(ForbiddenError):
            ticket_service.set_stage(moderator, str(ticket.id), "paid")

    def test_unknown_stage(self, ticket_service, ticket, admin):
        with pytest.raises(ValidationError) as exc_info:
            ticket_service.set_stage(admin, str(ticket.id), "refunded")
        assert exc_info.value.field == "target_stage"
