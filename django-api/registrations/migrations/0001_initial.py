import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Profile",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("name", models.CharField(blank=True, max_length=200)),
                ("display_name", models.CharField(blank=True, max_length=200)),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("user", "User"),
                            ("member", "Member"),
                            ("organizer", "Organizer"),
                            ("moderator", "Moderator"),
                            ("admin", "Admin"),
                        ],
                        default="user",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "auth_user",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=200)),
                ("subtitle", models.CharField(blank=True, max_length=2000, null=True)),
                ("event_date", models.DateField()),
                ("start_at", models.DateTimeField()),
                ("end_at", models.DateTimeField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("upcoming", "Upcoming"),
                            ("ongoing", "Ongoing"),
                            ("ticket_closed", "Ticket Closed"),
                            ("archive", "Archive"),
                        ],
                        default="upcoming",
                        max_length=20,
                    ),
                ),
                ("category_id", models.CharField(max_length=50)),
                (
                    "visibility",
                    models.CharField(
                        choices=[("public", "Public"), ("private", "Private")],
                        default="public",
                        max_length=20,
                    ),
                ),
                ("location_name", models.CharField(blank=True, max_length=2000, null=True)),
                ("city", models.CharField(blank=True, max_length=2000, null=True)),
                ("cover_image_url", models.CharField(blank=True, max_length=2000, null=True)),
                ("short_description", models.TextField()),
                ("description", models.TextField()),
                ("organizer_name", models.CharField(max_length=200)),
                ("rating_average", models.DecimalField(blank=True, decimal_places=2, max_digits=3, null=True)),
                ("rating_count", models.PositiveIntegerField(default=0)),
                ("payment_instructions", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["event_date", "start_at"],
                "indexes": [models.Index(fields=["status"], name="event_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="Permission",
            fields=[
                ("id", models.CharField(max_length=100, primary_key=True, serialize=False)),
                ("category", models.CharField(max_length=100)),
                ("description", models.TextField()),
            ],
            options={
                "ordering": ["category", "id"],
            },
        ),
        migrations.CreateModel(
            name="Registration",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("email", models.EmailField(max_length=254)),
                ("full_name", models.CharField(max_length=200)),
                ("whatsapp_number", models.CharField(blank=True, max_length=200, null=True)),
                ("spouse_name", models.CharField(blank=True, max_length=200, null=True)),
                ("children_under_7_count", models.PositiveSmallIntegerField(default=0)),
                ("children_over_7_count", models.PositiveSmallIntegerField(default=0)),
                ("children_names_and_ages", models.TextField(blank=True, null=True)),
                ("vegetarian_meal_count", models.PositiveSmallIntegerField(default=0)),
                ("non_vegetarian_meal_count", models.PositiveSmallIntegerField(default=0)),
                ("other_preferences", models.TextField(blank=True, null=True)),
                ("consent_to_store_personal_data", models.BooleanField(default=False)),
                ("registered_at", models.DateTimeField()),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="registrations",
                        to="registrations.event",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="registrations",
                        to="registrations.profile",
                    ),
                ),
            ],
            options={
                "ordering": ["-registered_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "event"), name="unique_user_registration_per_event"),
                    models.UniqueConstraint(
                        condition=models.Q(("user__isnull", True)),
                        fields=("email", "event"),
                        name="unique_guest_registration_per_event",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("ticket_number", models.CharField(max_length=12, unique=True)),
                ("issued_at", models.DateTimeField()),
                ("issued_to_name", models.CharField(max_length=200)),
                ("issued_to_email", models.EmailField(max_length=254)),
                ("assigned_at", models.DateTimeField(blank=True, null=True)),
                (
                    "payment_status",
                    models.CharField(
                        blank=True,
                        choices=[("payment_sent", "Payment Sent"), ("paid", "Paid")],
                        max_length=20,
                        null=True,
                    ),
                ),
                ("payment_sent_at", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "boarding_status",
                    models.CharField(blank=True, choices=[("boarded", "Boarded")], max_length=20, null=True),
                ),
                ("boarded_at", models.DateTimeField(blank=True, null=True)),
                ("version", models.PositiveIntegerField(default=1)),
                (
                    "assigned_to",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assigned_tickets",
                        to="registrations.profile",
                    ),
                ),
                (
                    "boarded_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="boarded_tickets",
                        to="registrations.profile",
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tickets",
                        to="registrations.event",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tickets",
                        to="registrations.profile",
                    ),
                ),
            ],
            options={
                "ordering": ["-issued_at"],
                "indexes": [models.Index(fields=["event", "assigned_to"], name="ticket_event_assignee_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "event"), name="unique_user_ticket_per_event"),
                    models.UniqueConstraint(
                        condition=models.Q(("user__isnull", True)),
                        fields=("issued_to_email", "event"),
                        name="unique_guest_ticket_per_event",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RolePermission",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("user", "User"),
                            ("member", "Member"),
                            ("organizer", "Organizer"),
                            ("moderator", "Moderator"),
                            ("admin", "Admin"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "permission",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="grants",
                        to="registrations.permission",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("role", "permission"), name="unique_role_permission"),
                ],
            },
        ),
    ]
