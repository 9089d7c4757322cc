"""Wiring of services to the Django stores for HTTP handlers."""

from typing import Any

from rest_framework.request import Request

from registrations import conf
from registrations.domain import AppUser
from registrations.domain.errors import DuplicateError
from registrations.domain.validators import EventValidator, RegistrationValidator
from registrations.policies import get_permission_cache
from registrations.policies.access_control import AccessPolicy
from registrations.services.admin_service import AdminService
from registrations.services.event_service import EventService
from registrations.services.permission_service import PermissionService
from registrations.services.registration_service import RegistrationService
from registrations.services.ticket_service import TicketService
from registrations.stores.django_store import (
    DjangoEventStore,
    DjangoPermissionStore,
    DjangoRegistrationStore,
    DjangoTicketStore,
    DjangoUnitOfWork,
    DjangoUserStore,
)
from registrations.stores.interfaces import DuplicateRecordError


def current_identity(request: Request) -> AppUser | None:
    """The caller's profile, or None for a guest."""
    user: Any = request.user
    if user is None or not user.is_authenticated:
        return None
    try:
        return DjangoUserStore().get_or_create_for_auth_user(user)
    except DuplicateRecordError:
        raise DuplicateError("A profile with this email already exists") from None


def access_policy() -> AccessPolicy:
    return AccessPolicy(get_permission_cache())


def ticket_service() -> TicketService:
    return TicketService(
        tickets=DjangoTicketStore(),
        events=DjangoEventStore(),
        users=DjangoUserStore(),
        registrations=DjangoRegistrationStore(),
        access=access_policy(),
    )


def registration_service() -> RegistrationService:
    return RegistrationService(
        registrations=DjangoRegistrationStore(),
        events=DjangoEventStore(),
        users=DjangoUserStore(),
        tickets=DjangoTicketStore(),
        unit_of_work=DjangoUnitOfWork(),
        ticket_service=ticket_service(),
        access=access_policy(),
        validator=RegistrationValidator(conf.max_party_member_count()),
    )


def permission_service() -> PermissionService:
    return PermissionService(DjangoPermissionStore(), get_permission_cache())


def event_service() -> EventService:
    return EventService(
        events=DjangoEventStore(),
        registrations=DjangoRegistrationStore(),
        validator=EventValidator(conf.event_categories()),
    )


def admin_service() -> AdminService:
    return AdminService(
        users=DjangoUserStore(),
        events=DjangoEventStore(),
        registrations=DjangoRegistrationStore(),
        tickets=DjangoTicketStore(),
    )
