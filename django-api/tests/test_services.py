"""Unit tests for RegistrationService.

These tests check ordering, duplicate handling and ticket issuance.
Run with: pytest tests/test_services.py -v
"""

import pytest

from registrations.domain import EventStatus, Role, TicketStage, Visibility
from registrations.domain.errors import (
    DuplicateRegistrationError,
    EventNotFoundError,
    ForbiddenError,
    PreconditionFailedError,
    PreconditionReason,
    RegistrationNotFoundError,
    UnauthenticatedError,
    UserNotFoundError,
    ValidationError,
)
from registrations.stores.interfaces import DuplicateRecordError
from tests.fakes import form_data, make_event, make_user


@pytest.fixture
def event(events):
    return events.add(make_event(EventStatus.ONGOING))


class TestRegisterForEvent:
    def test_registers_and_issues_ticket(self, registration_service, tickets, event, member):
        result = registration_service.register_for_event(member, str(event.id), form_data())

        assert result.registration.user_id == member.id
        assert result.ticket is not None
        assert result.ticket.stage is TicketStage.NEW
        assert result.ticket.issued_to_name == "Amina Rahman"
        assert tickets.get_user_ticket(member.id, event.id) == result.ticket

    def test_second_registration_is_duplicate(self, registration_service, event, member):
        registration_service.register_for_event(member, str(event.id), form_data())
        with pytest.raises(DuplicateRegistrationError):
            registration_service.register_for_event(member, str(event.id), form_data())

    def test_store_conflict_is_duplicate(self, registration_service, registrations, event, member, monkeypatch):
        """A concurrent insert that slips past the pre-check still surfaces as a duplicate."""

        def conflicting_insert(*args, **kwargs):
            raise DuplicateRecordError("registrations_user_event_unique")

        monkeypatch.setattr(registrations, "create_registration", conflicting_insert)

        with pytest.raises(DuplicateRegistrationError):
            registration_service.register_for_event(member, str(event.id), form_data())

    def test_upcoming_event_not_open_yet(self, registration_service, events, member):
        event = events.add(make_event(EventStatus.UPCOMING))
        with pytest.raises(PreconditionFailedError) as exc_info:
            registration_service.register_for_event(member, str(event.id), form_data())
        assert exc_info.value.reason is PreconditionReason.NOT_READY

    @pytest.mark.parametrize("status", [EventStatus.TICKET_CLOSED, EventStatus.ARCHIVE])
    def test_closed_event(self, registration_service, events, member, status):
        event = events.add(make_event(status))
        with pytest.raises(PreconditionFailedError) as exc_info:
            registration_service.register_for_event(member, str(event.id), form_data())
        assert exc_info.value.reason is PreconditionReason.CLOSED

    def test_requires_authentication(self, registration_service, event):
        with pytest.raises(UnauthenticatedError):
            registration_service.register_for_event(None, str(event.id), form_data())

    def test_validation_runs_before_authorization(self, registration_service, event):
        with pytest.raises(ValidationError):
            registration_service.register_for_event(None, str(event.id), form_data(consent_to_store_personal_data=False))

    def test_authorization_runs_before_existence(self, registration_service, member, admin):
        missing = str(make_event().id)
        with pytest.raises(ForbiddenError):
            registration_service.register_for_event(member, missing, form_data(), user_id=str(admin.id))
        with pytest.raises(EventNotFoundError):
            registration_service.register_for_event(member, missing, form_data())

    def test_private_event_admin_only(self, registration_service, events, member, admin):
        event = events.add(make_event(visibility=Visibility.PRIVATE))
        with pytest.raises(ForbiddenError):
            registration_service.register_for_event(member, str(event.id), form_data())
        result = registration_service.register_for_event(admin, str(event.id), form_data())
        assert result.registration.user_id == admin.id

    def test_admin_registers_someone_else(self, registration_service, event, member, admin):
        result = registration_service.register_for_event(admin, str(event.id), form_data(), user_id=str(member.id))
        assert result.registration.user_id == member.id
        assert result.ticket.user_id == member.id

    def test_admin_registers_unknown_user(self, registration_service, event, admin):
        with pytest.raises(UserNotFoundError):
            registration_service.register_for_event(admin, str(event.id), form_data(), user_id=str(make_user().id))

    def test_ticket_failure_keeps_registration(
        self, registration_service, registrations, tickets, event, member, caplog: pytest.LogCaptureFixture
    ):
        tickets.fail_next_create = RuntimeError("database unavailable")

        result = registration_service.register_for_event(member, str(event.id), form_data())

        assert result.ticket is None
        assert registrations.get_user_registration(member.id, event.id) is not None
        assert "ticket_issuance_failed" in caplog.text
        assert str(member.id) in caplog.text
        assert any(record.levelname == "ERROR" for record in caplog.records)

    def test_missing_ticket_can_be_reissued(self, registration_service, ticket_service, tickets, event, member, admin):
        tickets.fail_next_create = RuntimeError("database unavailable")
        registration_service.register_for_event(member, str(event.id), form_data())

        issued = ticket_service.issue_missing_tickets(admin, str(event.id))

        assert [ticket.user_id for ticket in issued] == [member.id]
        assert ticket_service.issue_missing_tickets(admin, str(event.id)) == []


class TestRegisterGuest:
    def test_registers_guest_with_ticket(self, registration_service, event):
        result = registration_service.register_guest(str(event.id), form_data())
        assert result.registration.is_guest
        assert result.ticket.user_id is None
        assert result.ticket.issued_to_email.value == "amina@example.com"

    def test_duplicate_guest_email_ignores_case(self, registration_service, event):
        registration_service.register_guest(str(event.id), form_data(email="amina@example.com"))
        with pytest.raises(DuplicateRegistrationError):
            registration_service.register_guest(str(event.id), form_data(email="AMINA@Example.com"))

    def test_guest_and_member_with_same_email_are_separate(self, registration_service, event, member):
        registration_service.register_guest(str(event.id), form_data())
        result = registration_service.register_for_event(member, str(event.id), form_data())
        assert result.ticket is not None

    def test_public_events_only(self, registration_service, events):
        event = events.add(make_event(visibility=Visibility.PRIVATE))
        with pytest.raises(ForbiddenError):
            registration_service.register_guest(str(event.id), form_data())

    def test_guest_upcoming_event(self, registration_service, events):
        event = events.add(make_event(EventStatus.UPCOMING))
        with pytest.raises(PreconditionFailedError):
            registration_service.register_guest(str(event.id), form_data())

    def test_ticket_failure_rolls_back_registration(self, registration_service, registrations, tickets, event):
        tickets.fail_next_create = RuntimeError("database unavailable")
        with pytest.raises(RuntimeError):
            registration_service.register_guest(str(event.id), form_data())
        assert registrations.count_event_registrations(event.id) == 0


class TestCancelRegistration:
    def test_cancel_keeps_ticket(self, registration_service, tickets, event, member):
        registration_service.register_for_event(member, str(event.id), form_data())

        registration_service.cancel_registration(member, str(event.id))

        assert registration_service.is_registered(str(member.id), str(event.id)) is False
        assert tickets.get_user_ticket(member.id, event.id) is not None

    def test_cancel_archived_event(self, registration_service, events, event, member):
        registration_service.register_for_event(member, str(event.id), form_data())
        events.update_event(event.id, {"status": EventStatus.ARCHIVE})

        with pytest.raises(PreconditionFailedError) as exc_info:
            registration_service.cancel_registration(member, str(event.id))
        assert exc_info.value.reason is PreconditionReason.CLOSED
        assert registration_service.is_registered(str(member.id), str(event.id)) is True

    def test_cancel_ticket_closed_event_is_allowed(self, registration_service, events, event, member):
        registration_service.register_for_event(member, str(event.id), form_data())
        events.update_event(event.id, {"status": EventStatus.TICKET_CLOSED})
        registration_service.cancel_registration(member, str(event.id))
        assert registration_service.is_registered(str(member.id), str(event.id)) is False

    def test_cancel_without_registration(self, registration_service, event, member):
        with pytest.raises(RegistrationNotFoundError):
            registration_service.cancel_registration(member, str(event.id))

    def test_admin_cancels_for_user(self, registration_service, event, member, admin):
        registration_service.register_for_event(member, str(event.id), form_data())
        registration_service.cancel_registration(admin, str(event.id), user_id=str(member.id))
        assert registration_service.is_registered(str(member.id), str(event.id)) is False

    def test_member_cannot_cancel_for_others(self, registration_service, event, member, organizer):
        registration_service.register_for_event(member, str(event.id), form_data())
        with pytest.raises(ForbiddenError):
            registration_service.cancel_registration(organizer, str(event.id), user_id=str(member.id))


class TestRegistrationQueries:
    def test_list_event_registrations_requires_grant(
        self, registration_service, permission_store, permission_cache, event, member, organizer
    ):
        registration_service.register_for_event(member, str(event.id), form_data())
        with pytest.raises(ForbiddenError):
            registration_service.list_event_registrations(organizer, str(event.id))

        permission_store.grant(Role.ORGANIZER, "registrations.view")
        permission_cache.invalidate()

        assert len(registration_service.list_event_registrations(organizer, str(event.id))) == 1

    def test_admin_lists_without_grant(self, registration_service, event, member, admin):
        registration_service.register_for_event(member, str(event.id), form_data())
        registration_service.register_guest(str(event.id), form_data(email="guest@example.com"))
        assert len(registration_service.list_event_registrations(admin, str(event.id))) == 2
        assert registration_service.count_event_registrations(str(event.id)) == 2

    def test_list_user_registrations_self_or_admin(self, registration_service, event, member, organizer):
        registration_service.register_for_event(member, str(event.id), form_data())
        assert len(registration_service.list_user_registrations(member, str(member.id))) == 1
        with pytest.raises(ForbiddenError):
            registration_service.list_user_registrations(organizer, str(member.id))

    def test_export_attendees(self, registration_service, event, member, admin):
        registration_service.register_for_event(member, str(event.id), form_data(spouse_name="Karim"))
        registration_service.register_guest(str(event.id), form_data(email="guest@example.com"))

        rows = registration_service.export_attendees(admin, str(event.id))

        assert len(rows) == 2
        assert all(row.ticket_number and row.ticket_stage is TicketStage.NEW for row in rows)
        member_row = next(row for row in rows if row.email == "amina@example.com")
        assert member_row.party_size == 3

    def test_export_attendees_needs_permission(self, registration_service, event, organizer):
        with pytest.raises(ForbiddenError) as exc_info:
            registration_service.export_attendees(organizer, str(event.id))
        assert exc_info.value.capability == "attendees.export"


class TestUpdateRegistrationDetails:
    def test_admin_updates_descriptive_fields(self, registration_service, event, member, admin):
        result = registration_service.register_for_event(member, str(event.id), form_data())
        updated = registration_service.update_registration_details(
            admin, str(result.registration.id), {"other_preferences": "Halal only"}
        )
        assert updated.form.other_preferences == "Halal only"

    def test_identity_fields_are_immutable(self, registration_service, event, member, admin):
        result = registration_service.register_for_event(member, str(event.id), form_data())
        with pytest.raises(ValidationError) as exc_info:
            registration_service.update_registration_details(
                admin, str(result.registration.id), {"email": "other@example.com"}
            )
        assert exc_info.value.field == "email"

    def test_non_admin_cannot_edit(self, registration_service, event, member):
        result = registration_service.register_for_event(member, str(event.id), form_data())
        with pytest.raises(ForbiddenError):
            registration_service.update_registration_details(member, str(result.registration.id), {})
