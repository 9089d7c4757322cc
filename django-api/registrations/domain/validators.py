"""Structural and semantic validation of inbound payloads.

Validators turn loosely-typed mappings (parsed request bodies) into domain
values, raising ValidationError with the offending field name.
"""

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar
from uuid import UUID

from registrations.domain.errors import ValidationError
from registrations.domain.models import Event, PaymentInstructions, RegistrationForm
from registrations.domain.value_objects import (
    Email,
    EventStatus,
    Money,
    Role,
    TicketStage,
    Visibility,
)

_WHATSAPP_RE = re.compile(r"^\+?[0-9][0-9 ()-]{5,19}$")
TITLE_MAX_LENGTH = 200
NAME_MAX_LENGTH = 200
FREE_TEXT_MAX_LENGTH = 2000

IdT = TypeVar("IdT")


def parse_id(value: Any, field: str, id_type: type[IdT]) -> IdT:
    """Parse a UUID-based identifier value object."""
    if isinstance(value, id_type):
        return value
    if isinstance(value, UUID):
        return id_type(value=value)  # type: ignore[call-arg]
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, f"{_label(field)} is required")
    try:
        return id_type.from_string(value.strip())  # type: ignore[attr-defined]
    except ValueError:
        raise ValidationError(field, f"Invalid {_inline_label(field)} format") from None


def parse_enum(value: Any, field: str, enum_type: type[Any]) -> Any:
    if isinstance(value, enum_type):
        return value
    allowed = [member.value for member in enum_type]
    if value not in allowed:
        raise ValidationError(field, f"Invalid {_inline_label(field)}. Must be one of: {', '.join(allowed)}")
    return enum_type(value)


def parse_role(value: Any) -> Role:
    return parse_enum(value, "role", Role)


def parse_stage(value: Any) -> TicketStage:
    return parse_enum(value, "target_stage", TicketStage)


def parse_email(value: Any, field: str = "email") -> Email:
    if isinstance(value, Email):
        return value
    text = _required_text({field: value}, field)
    try:
        return Email(text)
    except ValueError:
        raise ValidationError(field, "Invalid email format") from None


class RegistrationValidator:
    """Validates registration form payloads."""

    IDENTITY_FIELDS = frozenset({"event_id", "user_id", "email"})

    def __init__(self, max_party_member_count: int = 20) -> None:
        self.max_party_member_count = max_party_member_count

    def validate_form(self, data: Mapping[str, Any]) -> RegistrationForm:
        whatsapp = _optional_text(data, "whatsapp_number", NAME_MAX_LENGTH)
        if whatsapp is not None and not _WHATSAPP_RE.match(whatsapp):
            raise ValidationError("whatsapp_number", "Invalid WhatsApp number format")
        if data.get("consent_to_store_personal_data") is not True:
            raise ValidationError(
                "consent_to_store_personal_data",
                "Consent to store personal data is required",
            )
        return RegistrationForm(
            full_name=_required_text(data, "full_name", NAME_MAX_LENGTH),
            email=parse_email(data.get("email")),
            consent_to_store_personal_data=True,
            whatsapp_number=whatsapp,
            spouse_name=_optional_text(data, "spouse_name", NAME_MAX_LENGTH),
            children_under_7_count=self._count(data, "children_under_7_count"),
            children_over_7_count=self._count(data, "children_over_7_count"),
            children_names_and_ages=_optional_text(data, "children_names_and_ages", FREE_TEXT_MAX_LENGTH),
            vegetarian_meal_count=self._count(data, "vegetarian_meal_count"),
            non_vegetarian_meal_count=self._count(data, "non_vegetarian_meal_count"),
            other_preferences=_optional_text(data, "other_preferences", FREE_TEXT_MAX_LENGTH),
        )

    def validate_details_update(self, current: RegistrationForm, changes: Mapping[str, Any]) -> RegistrationForm:
        """Validate an admin edit of descriptive fields.

        Identity fields can never change after creation.
        """
        for field in self.IDENTITY_FIELDS:
            if field in changes:
                raise ValidationError(field, f"{_label(field)} cannot be changed after registration")
        merged = {
            "full_name": current.full_name,
            "email": current.email,
            "consent_to_store_personal_data": current.consent_to_store_personal_data,
            "whatsapp_number": current.whatsapp_number,
            "spouse_name": current.spouse_name,
            "children_under_7_count": current.children_under_7_count,
            "children_over_7_count": current.children_over_7_count,
            "children_names_and_ages": current.children_names_and_ages,
            "vegetarian_meal_count": current.vegetarian_meal_count,
            "non_vegetarian_meal_count": current.non_vegetarian_meal_count,
            "other_preferences": current.other_preferences,
        }
        unknown = set(changes) - set(merged)
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(field, f"Unknown field: {field}")
        merged.update(changes)
        return self.validate_form(merged)

    def _count(self, data: Mapping[str, Any], field: str) -> int:
        value = data.get(field)
        if value is None:
            return 0
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(field, f"{_label(field)} must be a whole number")
        if value < 0 or value > self.max_party_member_count:
            raise ValidationError(
                field,
                f"{_label(field)} must be between 0 and {self.max_party_member_count}",
            )
        return value


class EventValidator:
    """Validates event create and update payloads."""

    def __init__(self, categories: Iterable[str]) -> None:
        self.categories = tuple(categories)

    def validate_create(self, data: Mapping[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {
            "title": self._title(data.get("title")),
            "event_date": _parse_date(data.get("event_date"), "event_date"),
            "start_at": _parse_datetime(data.get("start_at"), "start_at"),
            "short_description": _required_text(data, "short_description", FREE_TEXT_MAX_LENGTH),
            "description": _required_text(data, "description", None),
            "organizer_name": _required_text(data, "organizer_name", NAME_MAX_LENGTH),
            "status": self._required_enum(data, "status", EventStatus),
            "category_id": self._category(data.get("category_id")),
            "visibility": self._required_enum(data, "visibility", Visibility),
        }
        for field in ("subtitle", "location_name", "city", "cover_image_url"):
            cleaned[field] = _optional_text(data, field, FREE_TEXT_MAX_LENGTH)
        cleaned["end_at"] = _parse_datetime(data["end_at"], "end_at") if data.get("end_at") else None
        _check_time_range(cleaned["start_at"], cleaned["end_at"])
        cleaned.update(self._ratings(data))
        cleaned["payment_instructions"] = self._payment_instructions(data.get("payment_instructions"))
        return cleaned

    def validate_update(self, changes: Mapping[str, Any], current: Event) -> dict[str, Any]:
        """Validate only the provided fields, checking dates against the current event."""
        cleaned: dict[str, Any] = {}
        if "title" in changes:
            cleaned["title"] = self._title(changes["title"])
        for field, max_length in (
            ("short_description", FREE_TEXT_MAX_LENGTH),
            ("description", None),
            ("organizer_name", NAME_MAX_LENGTH),
        ):
            if field in changes:
                cleaned[field] = _required_text(changes, field, max_length)
        for field in ("subtitle", "location_name", "city", "cover_image_url"):
            if field in changes:
                cleaned[field] = _optional_text(changes, field, FREE_TEXT_MAX_LENGTH)
        if "status" in changes:
            cleaned["status"] = parse_enum(changes["status"], "status", EventStatus)
        if "visibility" in changes:
            cleaned["visibility"] = parse_enum(changes["visibility"], "visibility", Visibility)
        if "category_id" in changes:
            cleaned["category_id"] = self._category(changes["category_id"])
        if "event_date" in changes:
            cleaned["event_date"] = _parse_date(changes["event_date"], "event_date")
        if "start_at" in changes:
            cleaned["start_at"] = _parse_datetime(changes["start_at"], "start_at")
        if "end_at" in changes:
            cleaned["end_at"] = _parse_datetime(changes["end_at"], "end_at") if changes["end_at"] else None
        if "start_at" in cleaned or "end_at" in cleaned:
            _check_time_range(
                cleaned.get("start_at", current.start_at),
                cleaned.get("end_at", current.end_at),
            )
        cleaned.update(self._ratings(changes))
        if "payment_instructions" in changes:
            cleaned["payment_instructions"] = self._payment_instructions(changes["payment_instructions"])
        return cleaned

    def _title(self, value: Any) -> str:
        return _required_text({"title": value}, "title", TITLE_MAX_LENGTH)

    def _category(self, value: Any) -> str:
        if not value:
            raise ValidationError("category_id", "Category is required")
        if value not in self.categories:
            raise ValidationError(
                "category_id",
                f"Invalid category ID. Must be one of: {', '.join(self.categories)}",
            )
        return value

    @staticmethod
    def _required_enum(data: Mapping[str, Any], field: str, enum_type: type[Any]) -> Any:
        if not data.get(field):
            raise ValidationError(field, f"{_label(field)} is required")
        return parse_enum(data[field], field, enum_type)

    @staticmethod
    def _ratings(data: Mapping[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        if data.get("rating_average") is not None:
            average = _parse_decimal(data["rating_average"], "rating_average")
            if average < 0 or average > 5:
                raise ValidationError("rating_average", "Rating average must be between 0 and 5")
            cleaned["rating_average"] = average
        if data.get("rating_count") is not None:
            count = data["rating_count"]
            if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                raise ValidationError("rating_count", "Rating count cannot be negative")
            cleaned["rating_count"] = count
        return cleaned

    @staticmethod
    def _payment_instructions(value: Any) -> PaymentInstructions | None:
        if value is None:
            return None
        if isinstance(value, PaymentInstructions):
            return value
        if not isinstance(value, Mapping):
            raise ValidationError("payment_instructions", "Payment instructions must be an object")
        days = value.get("payment_deadline_days")
        if isinstance(days, bool) or not isinstance(days, int) or days < 0:
            raise ValidationError(
                "payment_instructions.payment_deadline_days",
                "Payment deadline days must be a non-negative whole number",
            )
        amount = _parse_decimal(value.get("amount_per_person"), "payment_instructions.amount_per_person")
        try:
            price = Money(amount=amount, currency=str(value.get("currency") or "").upper())
        except ValueError as exc:
            raise ValidationError("payment_instructions.amount_per_person", str(exc)) from None
        return PaymentInstructions(
            bank_name=_required_text(value, "bank_name", NAME_MAX_LENGTH, prefix="payment_instructions"),
            iban=_required_text(value, "iban", 64, prefix="payment_instructions"),
            account_holder=_required_text(value, "account_holder", NAME_MAX_LENGTH, prefix="payment_instructions"),
            amount_per_person=price,
            reference_format=_required_text(value, "reference_format", NAME_MAX_LENGTH, prefix="payment_instructions"),
            payment_deadline_days=days,
            notes=_optional_text(value, "notes", FREE_TEXT_MAX_LENGTH),
        )


def _label(field: str) -> str:
    name = field.rsplit(".", 1)[-1]
    if name.endswith("_id"):
        name = name[: -len("_id")] + " ID"
    label = name.replace("_", " ")
    return label[:1].upper() + label[1:]


def _inline_label(field: str) -> str:
    """Label for use mid-sentence: "Invalid event ID format"."""
    label = _label(field)
    return label[:1].lower() + label[1:]


def _required_text(
    data: Mapping[str, Any],
    field: str,
    max_length: int | None = None,
    prefix: str | None = None,
) -> str:
    qualified = f"{prefix}.{field}" if prefix else field
    value = data.get(field)
    if value is not None and not isinstance(value, str):
        value = str(value)
    if not value or not value.strip():
        raise ValidationError(qualified, f"{_label(field)} is required")
    if max_length is not None and len(value) > max_length:
        raise ValidationError(qualified, f"{_label(field)} must be {max_length} characters or less")
    return value.strip()


def _optional_text(data: Mapping[str, Any], field: str, max_length: int) -> str | None:
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if not isinstance(value, str):
        raise ValidationError(field, f"{_label(field)} must be text")
    if len(value) > max_length:
        raise ValidationError(field, f"{_label(field)} must be {max_length} characters or less")
    return value.strip()


def _parse_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError(field, f"{_label(field)} is required")
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(field, f"Invalid {_inline_label(field)} format") from None


def _parse_datetime(value: Any, field: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        raise ValidationError(field, f"{_label(field)} is required")
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(field, f"Invalid {_inline_label(field)} format") from None


def _parse_decimal(value: Any, field: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(field, f"{_label(field)} must be a number")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(field, f"{_label(field)} must be a number") from None


def _check_time_range(start_at: datetime, end_at: datetime | None) -> None:
    if end_at is None:
        return
    try:
        ordered = end_at > start_at
    except TypeError:
        raise ValidationError("end_at", "Start and end time must both include a timezone, or neither") from None
    if not ordered:
        raise ValidationError("end_at", "End time must be after start time")
