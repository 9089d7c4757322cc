"""Pytest configuration and shared fixtures."""

import pytest
from rest_framework.test import APIClient

from registrations.domain import Role
from registrations.domain.validators import RegistrationValidator
from registrations.policies.access_control import AccessPolicy
from registrations.policies.permission_cache import PermissionCache
from registrations.services.registration_service import RegistrationService
from registrations.services.ticket_service import TicketService
from tests.fakes import (
    CATALOGUE,
    FakeClock,
    FakeMonotonic,
    InMemoryEventStore,
    InMemoryPermissionStore,
    InMemoryRegistrationStore,
    InMemoryTicketStore,
    InMemoryUnitOfWork,
    InMemoryUserStore,
    make_user,
)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_permission_cache():
    from registrations.policies import get_permission_cache

    get_permission_cache.cache_clear()
    yield
    get_permission_cache.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def member():
    return make_user(Role.MEMBER, email="member@example.com", name="Mia Member")


@pytest.fixture
def organizer():
    return make_user(Role.ORGANIZER, email="organizer@example.com", name="Omar Organizer")


@pytest.fixture
def moderator():
    return make_user(Role.MODERATOR, email="moderator@example.com", name="Maya Moderator")


@pytest.fixture
def admin():
    return make_user(Role.ADMIN, email="admin@example.com", name="Ada Admin")


@pytest.fixture
def users(member, organizer, moderator, admin) -> InMemoryUserStore:
    return InMemoryUserStore(member, organizer, moderator, admin)


@pytest.fixture
def events() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def registrations() -> InMemoryRegistrationStore:
    return InMemoryRegistrationStore()


@pytest.fixture
def tickets() -> InMemoryTicketStore:
    return InMemoryTicketStore()


@pytest.fixture
def permission_store() -> InMemoryPermissionStore:
    return InMemoryPermissionStore(*CATALOGUE)


@pytest.fixture
def permission_cache(permission_store, monotonic) -> PermissionCache:
    return PermissionCache(permission_store, ttl_seconds=300, clock=monotonic)


@pytest.fixture
def access(permission_cache) -> AccessPolicy:
    return AccessPolicy(permission_cache)


@pytest.fixture
def ticket_service(tickets, events, users, registrations, access, clock) -> TicketService:
    return TicketService(tickets, events, users, registrations, access, clock=clock)


@pytest.fixture
def registration_service(registrations, events, users, tickets, ticket_service, access, clock) -> RegistrationService:
    return RegistrationService(
        registrations=registrations,
        events=events,
        users=users,
        tickets=tickets,
        unit_of_work=InMemoryUnitOfWork(registrations, tickets),
        ticket_service=ticket_service,
        access=access,
        validator=RegistrationValidator(max_party_member_count=20),
        clock=clock,
    )
