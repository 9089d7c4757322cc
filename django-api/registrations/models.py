"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/.
The unique constraints below are the authoritative duplicate guard for
registrations, tickets and permission grants.
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q


class Profile(models.Model):
    """Application user profile linked to a Django auth user."""

    class Role(models.TextChoices):
        USER = "user"
        MEMBER = "member"
        ORGANIZER = "organizer"
        MODERATOR = "moderator"
        ADMIN = "admin"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    auth_user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
        null=True,
        blank=True,
    )
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=200, blank=True)
    display_name = models.CharField(max_length=200, blank=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.USER)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.display_name or self.email


class Event(models.Model):
    """Persistence model for events."""

    class Status(models.TextChoices):
        UPCOMING = "upcoming"
        ONGOING = "ongoing"
        TICKET_CLOSED = "ticket_closed"
        ARCHIVE = "archive"

    class Visibility(models.TextChoices):
        PUBLIC = "public"
        PRIVATE = "private"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    subtitle = models.CharField(max_length=2000, blank=True, null=True)
    event_date = models.DateField()
    start_at = models.DateTimeField()
    end_at = models.DateTimeField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.UPCOMING)
    category_id = models.CharField(max_length=50)
    visibility = models.CharField(max_length=20, choices=Visibility.choices, default=Visibility.PUBLIC)
    location_name = models.CharField(max_length=2000, blank=True, null=True)
    city = models.CharField(max_length=2000, blank=True, null=True)
    cover_image_url = models.CharField(max_length=2000, blank=True, null=True)
    short_description = models.TextField()
    description = models.TextField()
    organizer_name = models.CharField(max_length=200)
    rating_average = models.DecimalField(max_digits=3, decimal_places=2, blank=True, null=True)
    rating_count = models.PositiveIntegerField(default=0)
    payment_instructions = models.JSONField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["event_date", "start_at"]
        indexes = [
            models.Index(fields=["status"], name="event_status_idx"),
        ]

    def __str__(self) -> str:
        return self.title


class Registration(models.Model):
    """Persistence model for event registrations."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="registrations")
    user = models.ForeignKey(
        Profile,
        on_delete=models.CASCADE,
        related_name="registrations",
        null=True,
        blank=True,
    )
    email = models.EmailField()
    full_name = models.CharField(max_length=200)
    whatsapp_number = models.CharField(max_length=200, blank=True, null=True)
    spouse_name = models.CharField(max_length=200, blank=True, null=True)
    children_under_7_count = models.PositiveSmallIntegerField(default=0)
    children_over_7_count = models.PositiveSmallIntegerField(default=0)
    children_names_and_ages = models.TextField(blank=True, null=True)
    vegetarian_meal_count = models.PositiveSmallIntegerField(default=0)
    non_vegetarian_meal_count = models.PositiveSmallIntegerField(default=0)
    other_preferences = models.TextField(blank=True, null=True)
    consent_to_store_personal_data = models.BooleanField(default=False)
    registered_at = models.DateTimeField()

    class Meta:
        ordering = ["-registered_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "event"],
                name="unique_user_registration_per_event",
            ),
            models.UniqueConstraint(
                fields=["email", "event"],
                condition=Q(user__isnull=True),
                name="unique_guest_registration_per_event",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} - {self.event_id}"


class Ticket(models.Model):
    """Persistence model for tickets and their lifecycle columns."""

    class PaymentStatus(models.TextChoices):
        PAYMENT_SENT = "payment_sent"
        PAID = "paid"

    class BoardingStatus(models.TextChoices):
        BOARDED = "boarded"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="tickets")
    user = models.ForeignKey(
        Profile,
        on_delete=models.CASCADE,
        related_name="tickets",
        null=True,
        blank=True,
    )
    ticket_number = models.CharField(max_length=12, unique=True)
    issued_at = models.DateTimeField()
    issued_to_name = models.CharField(max_length=200)
    issued_to_email = models.EmailField()
    assigned_to = models.ForeignKey(
        Profile,
        on_delete=models.SET_NULL,
        related_name="assigned_tickets",
        null=True,
        blank=True,
    )
    assigned_at = models.DateTimeField(blank=True, null=True)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, blank=True, null=True)
    payment_sent_at = models.DateTimeField(blank=True, null=True)
    paid_at = models.DateTimeField(blank=True, null=True)
    boarding_status = models.CharField(max_length=20, choices=BoardingStatus.choices, blank=True, null=True)
    boarded_at = models.DateTimeField(blank=True, null=True)
    boarded_by = models.ForeignKey(
        Profile,
        on_delete=models.SET_NULL,
        related_name="boarded_tickets",
        null=True,
        blank=True,
    )
    version = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["-issued_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "event"],
                name="unique_user_ticket_per_event",
            ),
            models.UniqueConstraint(
                fields=["issued_to_email", "event"],
                condition=Q(user__isnull=True),
                name="unique_guest_ticket_per_event",
            ),
        ]
        indexes = [
            models.Index(fields=["event", "assigned_to"], name="ticket_event_assignee_idx"),
        ]

    def __str__(self) -> str:
        return self.ticket_number


class Permission(models.Model):
    """A runtime-grantable permission in the catalogue."""

    id = models.CharField(primary_key=True, max_length=100)
    category = models.CharField(max_length=100)
    description = models.TextField()

    class Meta:
        ordering = ["category", "id"]

    def __str__(self) -> str:
        return self.id


class RolePermission(models.Model):
    """Grant of a permission to every user holding a role."""

    role = models.CharField(max_length=20, choices=Profile.Role.choices)
    permission = models.ForeignKey(Permission, on_delete=models.CASCADE, related_name="grants")

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["role", "permission"], name="unique_role_permission"),
        ]

    def __str__(self) -> str:
        return f"{self.role}: {self.permission_id}"
