"""Message templates and placeholder rendering.

Templates use ``{{name}}`` placeholders. ``{{notes_block}}`` expands to a
"Note:" paragraph when notes are present and to nothing otherwise, so a
message never carries an empty "Note:" line. Unknown placeholders are left
as-is.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass

from registrations.domain import Channel
from registrations.domain.errors import TemplateNotFoundError

_PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")

PAYMENT_DETAILS = "payment_details"
REGISTRATION_CONFIRMED = "registration_confirmed"


@dataclass(frozen=True)
class MessageTemplate:
    template_key: str
    channel: Channel
    body: str
    subject: str | None = None


@dataclass(frozen=True)
class RenderedMessage:
    body: str
    subject: str | None = None


MESSAGE_TEMPLATES: tuple[MessageTemplate, ...] = (
    MessageTemplate(
        template_key=PAYMENT_DETAILS,
        channel=Channel.WHATSAPP,
        body=(
            "Hi {{display_name}}! Thank you for registering for {{event_name}}.\n"
            "Ticket: {{ticket_number}}\n"
            "Amount: {{amount}}\n"
            "Bank: {{bank_name}}\n"
            "IBAN: {{iban}}\n"
            "Account holder: {{account_holder}}\n"
            "Reference: {{reference}}\n"
            "Please pay by {{due_date}}.\n"
            "{{notes_block}}"
        ),
    ),
    MessageTemplate(
        template_key=PAYMENT_DETAILS,
        channel=Channel.EMAIL,
        subject="Payment details for {{event_name}} ({{ticket_number}})",
        body=(
            "Dear {{display_name}},\n\n"
            "Thank you for registering for {{event_name}}. Please transfer {{amount}} "
            "by {{due_date}} using the details below.\n\n"
            "Bank: {{bank_name}}\n"
            "IBAN: {{iban}}\n"
            "Account holder: {{account_holder}}\n"
            "Reference: {{reference}}\n"
            "{{notes_block}}\n"
            "Your ticket number is {{ticket_number}}.\n"
        ),
    ),
    MessageTemplate(
        template_key=REGISTRATION_CONFIRMED,
        channel=Channel.EMAIL,
        subject="You are registered for {{event_name}}",
        body=(
            "Dear {{display_name}},\n\n"
            "Your registration for {{event_name}} is confirmed. "
            "Your ticket number is {{ticket_number}}.\n"
            "{{notes_block}}"
        ),
    ),
)


class MessageRenderer:
    """Pure templating: looks up a template and substitutes placeholders."""

    def __init__(self, templates: tuple[MessageTemplate, ...] = MESSAGE_TEMPLATES) -> None:
        self._templates = {(t.template_key, t.channel): t for t in templates}

    def render(self, template_key: str, channel: Channel, data: Mapping[str, str | None]) -> RenderedMessage:
        """Render a template for a channel.

        Raises:
            TemplateNotFoundError: If no template matches (template_key, channel).
        """
        template = self._templates.get((template_key, channel))
        if template is None:
            raise TemplateNotFoundError(template_key, channel.value)

        notes = data.get("notes")
        values = {**data, "notes_block": f"\nNote: {notes}\n" if notes else ""}
        subject = _substitute(template.subject, values) if template.subject else None
        return RenderedMessage(body=_substitute(template.body, values), subject=subject)


def _substitute(text: str, values: Mapping[str, str | None]) -> str:
    def replace(match: re.Match[str]) -> str:
        value = values.get(match.group(1))
        return value if value is not None else match.group(0)

    return _PLACEHOLDER_RE.sub(replace, text)
