from django.db import migrations

PERMISSIONS = [
    ("attendees.export", "attendees", "Export the attendee list of an event"),
    ("registrations.view", "registrations", "View the registration list of an event"),
    ("tickets.view_all", "tickets", "View every ticket issued for an event"),
]


def seed_permissions(apps, schema_editor):
    Permission = apps.get_model("registrations", "Permission")
    for permission_id, category, description in PERMISSIONS:
        Permission.objects.update_or_create(
            id=permission_id,
            defaults={"category": category, "description": description},
        )


def remove_permissions(apps, schema_editor):
    Permission = apps.get_model("registrations", "Permission")
    Permission.objects.filter(id__in=[row[0] for row in PERMISSIONS]).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("registrations", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_permissions, remove_permissions),
    ]
