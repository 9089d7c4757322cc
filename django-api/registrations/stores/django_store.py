"""Django ORM implementation of the stores.

Each store queries the ORM and converts rows to domain models. Unique
constraint violations surface as DuplicateRecordError; ticket lifecycle
writes are conditional on the row version.
"""

from collections.abc import Mapping
from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal
from typing import Any

from django.db import IntegrityError, transaction
from django.db.models import F

from registrations import models
from registrations.domain import (
    AppUser,
    BoardingStatus,
    Email,
    Event,
    EventId,
    EventStatus,
    Money,
    PaymentInstructions,
    PaymentStatus,
    Permission,
    Registration,
    RegistrationForm,
    RegistrationId,
    Role,
    Ticket,
    TicketId,
    TicketNumber,
    UserId,
    Visibility,
)
from registrations.stores.interfaces import (
    DuplicateRecordError,
    EventStore,
    PermissionStore,
    RegistrationStore,
    StaleRecordError,
    TicketStore,
    UnitOfWork,
    UserStore,
)

_FORM_FIELDS = (
    "full_name",
    "whatsapp_number",
    "spouse_name",
    "children_under_7_count",
    "children_over_7_count",
    "children_names_and_ages",
    "vegetarian_meal_count",
    "non_vegetarian_meal_count",
    "other_preferences",
    "consent_to_store_personal_data",
)


class DjangoUnitOfWork(UnitOfWork):
    def atomic(self) -> AbstractContextManager[Any]:
        return transaction.atomic()


class DjangoUserStore(UserStore):
    """Profile-backed user store."""

    def get_user(self, user_id: UserId) -> AppUser | None:
        row = models.Profile.objects.filter(id=user_id.value).first()
        return _to_user(row) if row else None

    def get_user_by_auth_id(self, auth_user_id: Any) -> AppUser | None:
        row = models.Profile.objects.filter(auth_user_id=auth_user_id).first()
        return _to_user(row) if row else None

    def get_or_create_for_auth_user(self, auth_user: Any) -> AppUser:
        """Return the profile linked to a Django auth user, creating it on first use."""
        username = auth_user.get_username()
        try:
            with transaction.atomic():
                row, _ = models.Profile.objects.get_or_create(
                    auth_user=auth_user,
                    defaults={
                        "email": auth_user.email.strip().lower(),
                        "name": auth_user.get_full_name() or username,
                        "display_name": username,
                    },
                )
        except IntegrityError as exc:
            raise DuplicateRecordError(f"Profile email already in use: {auth_user.email}") from exc
        return _to_user(row)

    def list_users(self) -> list[AppUser]:
        return [_to_user(row) for row in models.Profile.objects.all()]

    def update_role(self, user_id: UserId, role: Role) -> AppUser | None:
        updated = models.Profile.objects.filter(id=user_id.value).update(role=role.value)
        if not updated:
            return None
        return self.get_user(user_id)

    def delete_user(self, user_id: UserId) -> bool:
        deleted, _ = models.Profile.objects.filter(id=user_id.value).delete()
        return deleted > 0


class DjangoEventStore(EventStore):
    """Event store using Django ORM."""

    def list_events(self) -> list[Event]:
        return [_to_event(row) for row in models.Event.objects.all()]

    def get_event(self, event_id: EventId) -> Event | None:
        row = models.Event.objects.filter(id=event_id.value).first()
        return _to_event(row) if row else None

    def create_event(self, fields: Mapping[str, Any]) -> Event:
        row = models.Event.objects.create(**_event_columns(fields))
        return _to_event(row)

    def update_event(self, event_id: EventId, fields: Mapping[str, Any]) -> Event | None:
        row = models.Event.objects.filter(id=event_id.value).first()
        if row is None:
            return None
        columns = _event_columns(fields)
        for name, value in columns.items():
            setattr(row, name, value)
        row.save(update_fields=list(columns) or None)
        return _to_event(row)

    def delete_event(self, event_id: EventId) -> bool:
        deleted, _ = models.Event.objects.filter(id=event_id.value).delete()
        return deleted > 0


class DjangoRegistrationStore(RegistrationStore):
    """Registration store using Django ORM."""

    def get_registration(self, registration_id: RegistrationId) -> Registration | None:
        row = models.Registration.objects.filter(id=registration_id.value).first()
        return _to_registration(row) if row else None

    def get_user_registration(self, user_id: UserId, event_id: EventId) -> Registration | None:
        row = models.Registration.objects.filter(user_id=user_id.value, event_id=event_id.value).first()
        return _to_registration(row) if row else None

    def get_guest_registration(self, email: Email, event_id: EventId) -> Registration | None:
        row = models.Registration.objects.filter(
            user__isnull=True, email=email.value, event_id=event_id.value
        ).first()
        return _to_registration(row) if row else None

    def create_registration(
        self,
        event_id: EventId,
        user_id: UserId | None,
        form: RegistrationForm,
        registered_at: datetime,
    ) -> Registration:
        try:
            with transaction.atomic():
                row = models.Registration.objects.create(
                    event_id=event_id.value,
                    user_id=user_id.value if user_id else None,
                    email=form.email.value,
                    registered_at=registered_at,
                    **{name: getattr(form, name) for name in _FORM_FIELDS},
                )
        except IntegrityError as exc:
            raise DuplicateRecordError(f"Registration already exists for event {event_id}") from exc
        return _to_registration(row)

    def update_registration_form(
        self, registration_id: RegistrationId, form: RegistrationForm
    ) -> Registration | None:
        updated = models.Registration.objects.filter(id=registration_id.value).update(
            **{name: getattr(form, name) for name in _FORM_FIELDS}
        )
        if not updated:
            return None
        return self.get_registration(registration_id)

    def delete_registration(self, registration_id: RegistrationId) -> bool:
        deleted, _ = models.Registration.objects.filter(id=registration_id.value).delete()
        return deleted > 0

    def list_event_registrations(self, event_id: EventId) -> list[Registration]:
        rows = models.Registration.objects.filter(event_id=event_id.value)
        return [_to_registration(row) for row in rows]

    def list_user_registrations(self, user_id: UserId) -> list[Registration]:
        rows = models.Registration.objects.filter(user_id=user_id.value)
        return [_to_registration(row) for row in rows]

    def count_event_registrations(self, event_id: EventId) -> int:
        return models.Registration.objects.filter(event_id=event_id.value).count()


class DjangoTicketStore(TicketStore):
    """Ticket store using Django ORM."""

    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        row = models.Ticket.objects.filter(id=ticket_id.value).first()
        return _to_ticket(row) if row else None

    def get_ticket_by_number(self, ticket_number: TicketNumber) -> Ticket | None:
        row = models.Ticket.objects.filter(ticket_number=ticket_number.value).first()
        return _to_ticket(row) if row else None

    def get_user_ticket(self, user_id: UserId, event_id: EventId) -> Ticket | None:
        row = models.Ticket.objects.filter(user_id=user_id.value, event_id=event_id.value).first()
        return _to_ticket(row) if row else None

    def get_guest_ticket(self, email: Email, event_id: EventId) -> Ticket | None:
        row = models.Ticket.objects.filter(
            user__isnull=True, issued_to_email=email.value, event_id=event_id.value
        ).first()
        return _to_ticket(row) if row else None

    def create_ticket(
        self,
        event_id: EventId,
        user_id: UserId | None,
        ticket_number: TicketNumber,
        issued_to_name: str,
        issued_to_email: Email,
        issued_at: datetime,
    ) -> Ticket:
        try:
            with transaction.atomic():
                row = models.Ticket.objects.create(
                    event_id=event_id.value,
                    user_id=user_id.value if user_id else None,
                    ticket_number=ticket_number.value,
                    issued_to_name=issued_to_name,
                    issued_to_email=issued_to_email.value,
                    issued_at=issued_at,
                )
        except IntegrityError as exc:
            raise DuplicateRecordError(f"Ticket already exists for event {event_id}") from exc
        return _to_ticket(row)

    def save_lifecycle(self, ticket: Ticket, expected_version: int) -> Ticket:
        updated = models.Ticket.objects.filter(id=ticket.id.value, version=expected_version).update(
            assigned_to_id=_uuid_or_none(ticket.assigned_to_id),
            assigned_at=ticket.assigned_at,
            payment_status=ticket.payment_status.value if ticket.payment_status else None,
            payment_sent_at=ticket.payment_sent_at,
            paid_at=ticket.paid_at,
            boarding_status=ticket.boarding_status.value if ticket.boarding_status else None,
            boarded_at=ticket.boarded_at,
            boarded_by_id=_uuid_or_none(ticket.boarded_by_id),
            version=F("version") + 1,
        )
        if not updated:
            raise StaleRecordError(f"Ticket {ticket.id} changed since version {expected_version}")
        stored = self.get_ticket(ticket.id)
        if stored is None:
            raise StaleRecordError(f"Ticket {ticket.id} no longer exists")
        return stored

    def list_event_tickets(self, event_id: EventId) -> list[Ticket]:
        return [_to_ticket(row) for row in models.Ticket.objects.filter(event_id=event_id.value)]

    def list_user_tickets(self, user_id: UserId) -> list[Ticket]:
        return [_to_ticket(row) for row in models.Ticket.objects.filter(user_id=user_id.value)]

    def list_assigned_tickets(self, assignee_id: UserId, event_id: EventId | None = None) -> list[Ticket]:
        rows = models.Ticket.objects.filter(assigned_to_id=assignee_id.value)
        if event_id is not None:
            rows = rows.filter(event_id=event_id.value)
        return [_to_ticket(row) for row in rows]


class DjangoPermissionStore(PermissionStore):
    """Permission catalogue and role grants using Django ORM."""

    def list_permissions(self) -> list[Permission]:
        return [_to_permission(row) for row in models.Permission.objects.all()]

    def get_permission(self, permission_id: str) -> Permission | None:
        row = models.Permission.objects.filter(id=permission_id).first()
        return _to_permission(row) if row else None

    def get_all_role_permissions(self) -> dict[str, set[str]]:
        grants: dict[str, set[str]] = {}
        for role, permission_id in models.RolePermission.objects.values_list("role", "permission_id"):
            grants.setdefault(role, set()).add(permission_id)
        return grants

    def grant(self, role: Role, permission_id: str) -> None:
        try:
            with transaction.atomic():
                models.RolePermission.objects.get_or_create(role=role.value, permission_id=permission_id)
        except IntegrityError:
            # Lost a race with a concurrent grant of the same pair.
            pass

    def revoke(self, role: Role, permission_id: str) -> None:
        models.RolePermission.objects.filter(role=role.value, permission_id=permission_id).delete()


def _uuid_or_none(value: UserId | None) -> Any:
    return value.value if value is not None else None


def _to_user(row: models.Profile) -> AppUser:
    return AppUser(
        id=UserId(row.id),
        email=Email(row.email),
        name=row.name,
        display_name=row.display_name or row.name,
        role=Role(row.role),
        created_at=row.created_at,
    )


def _event_columns(fields: Mapping[str, Any]) -> dict[str, Any]:
    columns: dict[str, Any] = {}
    for name, value in fields.items():
        if name in ("status", "visibility"):
            columns[name] = value.value
        elif name == "payment_instructions":
            columns[name] = _instructions_to_json(value)
        else:
            columns[name] = value
    return columns


def _instructions_to_json(instructions: PaymentInstructions | None) -> dict[str, Any] | None:
    if instructions is None:
        return None
    return {
        "bank_name": instructions.bank_name,
        "iban": instructions.iban,
        "account_holder": instructions.account_holder,
        "amount_per_person": str(instructions.amount_per_person.amount),
        "currency": instructions.amount_per_person.currency,
        "reference_format": instructions.reference_format,
        "payment_deadline_days": instructions.payment_deadline_days,
        "notes": instructions.notes,
    }


def _instructions_from_json(data: Mapping[str, Any] | None) -> PaymentInstructions | None:
    if not data:
        return None
    return PaymentInstructions(
        bank_name=data["bank_name"],
        iban=data["iban"],
        account_holder=data["account_holder"],
        amount_per_person=Money(amount=Decimal(data["amount_per_person"]), currency=data["currency"]),
        reference_format=data["reference_format"],
        payment_deadline_days=int(data["payment_deadline_days"]),
        notes=data.get("notes"),
    )


def _to_event(row: models.Event) -> Event:
    return Event(
        id=EventId(row.id),
        title=row.title,
        subtitle=row.subtitle,
        event_date=row.event_date,
        start_at=row.start_at,
        end_at=row.end_at,
        status=EventStatus(row.status),
        category_id=row.category_id,
        visibility=Visibility(row.visibility),
        location_name=row.location_name,
        city=row.city,
        cover_image_url=row.cover_image_url,
        short_description=row.short_description,
        description=row.description,
        organizer_name=row.organizer_name,
        rating_average=row.rating_average,
        rating_count=row.rating_count,
        payment_instructions=_instructions_from_json(row.payment_instructions),
        created_at=row.created_at,
    )


def _to_registration(row: models.Registration) -> Registration:
    form = RegistrationForm(
        email=Email(row.email),
        **{name: getattr(row, name) for name in _FORM_FIELDS},
    )
    return Registration(
        id=RegistrationId(row.id),
        event_id=EventId(row.event_id),
        user_id=UserId(row.user_id) if row.user_id else None,
        form=form,
        registered_at=row.registered_at,
    )


def _to_ticket(row: models.Ticket) -> Ticket:
    return Ticket(
        id=TicketId(row.id),
        event_id=EventId(row.event_id),
        user_id=UserId(row.user_id) if row.user_id else None,
        ticket_number=TicketNumber(row.ticket_number),
        issued_at=row.issued_at,
        issued_to_name=row.issued_to_name,
        issued_to_email=Email(row.issued_to_email),
        assigned_to_id=UserId(row.assigned_to_id) if row.assigned_to_id else None,
        assigned_at=row.assigned_at,
        payment_status=PaymentStatus(row.payment_status) if row.payment_status else None,
        payment_sent_at=row.payment_sent_at,
        paid_at=row.paid_at,
        boarding_status=BoardingStatus(row.boarding_status) if row.boarding_status else None,
        boarded_at=row.boarded_at,
        boarded_by_id=UserId(row.boarded_by_id) if row.boarded_by_id else None,
        version=row.version,
    )


def _to_permission(row: models.Permission) -> Permission:
    return Permission(id=row.id, category=row.category, description=row.description)
