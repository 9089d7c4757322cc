"""Tests for registration and event payload validation."""

from datetime import date
from decimal import Decimal

import pytest

from registrations.domain import EventId, EventStatus, TicketStage, Visibility
from registrations.domain.errors import ValidationError
from registrations.domain.validators import EventValidator, RegistrationValidator, parse_id, parse_stage
from tests.fakes import form_data, make_event

CATEGORIES = ("cultural", "religious", "sports", "education", "social", "other")


def event_payload(**overrides):
    data = {
        "title": "Eid Festival",
        "event_date": "2025-04-01",
        "start_at": "2025-04-01T10:00:00+00:00",
        "end_at": "2025-04-01T18:00:00+00:00",
        "status": "upcoming",
        "visibility": "public",
        "category_id": "religious",
        "short_description": "Celebration",
        "description": "A day of celebration for families.",
        "organizer_name": "Mosque Committee",
    }
    data.update(overrides)
    return data


def field_of(exc_info) -> str:
    return exc_info.value.field


class TestParsing:
    def test_parse_id_missing(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_id(None, "event_id", EventId)
        assert exc_info.value.message == "Event ID is required"

    def test_parse_id_malformed(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_id("123", "event_id", EventId)
        assert field_of(exc_info) == "event_id"
        assert exc_info.value.message == "Invalid event ID format"

    def test_label_keeps_id_suffix_upper_case(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_id("  ", "assigned_to_id", EventId)
        assert exc_info.value.message == "Assigned to ID is required"

    def test_parse_stage(self):
        assert parse_stage("paid") is TicketStage.PAID
        with pytest.raises(ValidationError) as exc_info:
            parse_stage("refunded")
        assert field_of(exc_info) == "target_stage"


class TestRegistrationValidator:
    def test_valid_form(self):
        form = RegistrationValidator().validate_form(form_data(email="Amina@Example.com"))
        assert form.email.value == "amina@example.com"
        assert form.children_under_7_count == 1
        assert form.non_vegetarian_meal_count == 0

    def test_consent_required(self):
        with pytest.raises(ValidationError) as exc_info:
            RegistrationValidator().validate_form(form_data(consent_to_store_personal_data=False))
        assert field_of(exc_info) == "consent_to_store_personal_data"

    def test_full_name_required(self):
        with pytest.raises(ValidationError) as exc_info:
            RegistrationValidator().validate_form(form_data(full_name="   "))
        assert field_of(exc_info) == "full_name"

    def test_invalid_email(self):
        with pytest.raises(ValidationError) as exc_info:
            RegistrationValidator().validate_form(form_data(email="amina"))
        assert field_of(exc_info) == "email"

    def test_invalid_whatsapp(self):
        with pytest.raises(ValidationError) as exc_info:
            RegistrationValidator().validate_form(form_data(whatsapp_number="call me"))
        assert field_of(exc_info) == "whatsapp_number"

    @pytest.mark.parametrize("value", [-1, 21, "3", True, 1.5])
    def test_party_counts_bounded_whole_numbers(self, value):
        with pytest.raises(ValidationError) as exc_info:
            RegistrationValidator(max_party_member_count=20).validate_form(form_data(children_over_7_count=value))
        assert field_of(exc_info) == "children_over_7_count"

    def test_details_update_rejects_identity_fields(self):
        validator = RegistrationValidator()
        current = validator.validate_form(form_data())
        for field in ("email", "event_id", "user_id"):
            with pytest.raises(ValidationError) as exc_info:
                validator.validate_details_update(current, {field: "x"})
            assert field_of(exc_info) == field

    def test_details_update_merges_changes(self):
        validator = RegistrationValidator()
        current = validator.validate_form(form_data())
        updated = validator.validate_details_update(current, {"spouse_name": "Karim", "vegetarian_meal_count": 3})
        assert updated.spouse_name == "Karim"
        assert updated.vegetarian_meal_count == 3
        assert updated.email == current.email

    def test_details_update_rejects_unknown_field(self):
        validator = RegistrationValidator()
        current = validator.validate_form(form_data())
        with pytest.raises(ValidationError) as exc_info:
            validator.validate_details_update(current, {"seat": "A1"})
        assert field_of(exc_info) == "seat"


class TestEventValidator:
    def test_valid_create(self):
        cleaned = EventValidator(CATEGORIES).validate_create(event_payload())
        assert cleaned["status"] is EventStatus.UPCOMING
        assert cleaned["visibility"] is Visibility.PUBLIC
        assert cleaned["event_date"] == date(2025, 4, 1)
        assert cleaned["payment_instructions"] is None

    def test_unknown_category(self):
        with pytest.raises(ValidationError) as exc_info:
            EventValidator(CATEGORIES).validate_create(event_payload(category_id="concerts"))
        assert field_of(exc_info) == "category_id"

    def test_title_too_long(self):
        with pytest.raises(ValidationError) as exc_info:
            EventValidator(CATEGORIES).validate_create(event_payload(title="x" * 201))
        assert field_of(exc_info) == "title"

    def test_end_before_start(self):
        with pytest.raises(ValidationError) as exc_info:
            EventValidator(CATEGORIES).validate_create(event_payload(end_at="2025-04-01T09:00:00+00:00"))
        assert field_of(exc_info) == "end_at"

    def test_rating_out_of_range(self):
        with pytest.raises(ValidationError) as exc_info:
            EventValidator(CATEGORIES).validate_create(event_payload(rating_average=5.5))
        assert field_of(exc_info) == "rating_average"

    def test_payment_instructions(self):
        cleaned = EventValidator(CATEGORIES).validate_create(
            event_payload(
                payment_instructions={
                    "bank_name": "Sparkasse",
                    "iban": "DE89370400440532013000",
                    "account_holder": "Community e.V.",
                    "amount_per_person": "15.00",
                    "currency": "eur",
                    "reference_format": "EID {ticket_number}",
                    "payment_deadline_days": 7,
                }
            )
        )
        instructions = cleaned["payment_instructions"]
        assert instructions.amount_per_person.amount == Decimal("15.00")
        assert instructions.amount_per_person.currency == "EUR"
        assert instructions.notes is None

    def test_negative_payment_amount(self):
        with pytest.raises(ValidationError) as exc_info:
            EventValidator(CATEGORIES).validate_create(
                event_payload(
                    payment_instructions={
                        "bank_name": "Sparkasse",
                        "iban": "DE89370400440532013000",
                        "account_holder": "Community e.V.",
                        "amount_per_person": "-1",
                        "currency": "EUR",
                        "reference_format": "{ticket_number}",
                        "payment_deadline_days": 7,
                    }
                )
            )
        assert field_of(exc_info) == "payment_instructions.amount_per_person"

    def test_update_checks_range_against_current(self):
        current = make_event()
        with pytest.raises(ValidationError) as exc_info:
            EventValidator(CATEGORIES).validate_update({"end_at": "2025-07-12T10:00:00+00:00"}, current)
        assert field_of(exc_info) == "end_at"

    def test_update_only_returns_given_fields(self):
        cleaned = EventValidator(CATEGORIES).validate_update({"status": "ongoing"}, make_event())
        assert cleaned == {"status": EventStatus.ONGOING}
