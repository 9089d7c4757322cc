"""Tests for message template rendering."""

import pytest

from registrations.domain import Channel
from registrations.domain.errors import ErrorCode, TemplateNotFoundError
from registrations.services.message_renderer import (
    PAYMENT_DETAILS,
    REGISTRATION_CONFIRMED,
    MessageRenderer,
    MessageTemplate,
)

DATA = {
    "display_name": "Amina",
    "event_name": "Eid Festival",
    "ticket_number": "EVT-0A1B2C3D",
    "amount": "15.00 EUR",
    "due_date": "2025-04-08",
    "bank_name": "Sparkasse",
    "iban": "DE89370400440532013000",
    "account_holder": "Community e.V.",
    "reference": "EID EVT-0A1B2C3D",
    "notes": None,
}


def test_placeholders_are_substituted():
    message = MessageRenderer().render(PAYMENT_DETAILS, Channel.WHATSAPP, DATA)
    assert message.body.startswith("Hi Amina! Thank you for registering for Eid Festival.")
    assert "Reference: EID EVT-0A1B2C3D" in message.body
    assert "{{" not in message.body
    assert message.subject is None


def test_email_subject_is_rendered():
    message = MessageRenderer().render(REGISTRATION_CONFIRMED, Channel.EMAIL, DATA)
    assert message.subject == "You are registered for Eid Festival"


def test_notes_block_present():
    message = MessageRenderer().render(PAYMENT_DETAILS, Channel.EMAIL, {**DATA, "notes": "Cash is not accepted"})
    assert "\nNote: Cash is not accepted\n" in message.body


@pytest.mark.parametrize("notes", [None, ""])
def test_notes_block_absent(notes):
    message = MessageRenderer().render(PAYMENT_DETAILS, Channel.EMAIL, {**DATA, "notes": notes})
    assert "Note:" not in message.body


def test_unknown_placeholder_left_as_is():
    renderer = MessageRenderer(
        (MessageTemplate(template_key="reminder", channel=Channel.WHATSAPP, body="Hi {{display_name}}, {{seat}}"),)
    )
    message = renderer.render("reminder", Channel.WHATSAPP, DATA)
    assert message.body == "Hi Amina, {{seat}}"


def test_missing_value_left_as_is():
    message = MessageRenderer().render(PAYMENT_DETAILS, Channel.WHATSAPP, {"display_name": "Amina"})
    assert "{{event_name}}" in message.body


def test_template_not_found():
    with pytest.raises(TemplateNotFoundError) as exc_info:
        MessageRenderer().render(REGISTRATION_CONFIRMED, Channel.WHATSAPP, DATA)
    assert exc_info.value.code is ErrorCode.TEMPLATE_NOT_FOUND
    assert exc_info.value.channel == "whatsapp"
