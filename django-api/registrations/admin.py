from django.contrib import admin

from registrations.models import Event, Permission, Profile, Registration, RolePermission, Ticket


class RolePermissionInline(admin.TabularInline):
    model = RolePermission
    extra = 1


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ["email", "display_name", "role", "created_at"]
    list_filter = ["role"]
    search_fields = ["email", "name", "display_name"]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["title", "event_date", "status", "visibility", "category_id"]
    list_filter = ["status", "visibility", "category_id"]
    search_fields = ["title", "city", "organizer_name"]


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ["full_name", "email", "event", "user", "registered_at"]
    list_filter = ["event"]
    search_fields = ["full_name", "email"]


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ["ticket_number", "issued_to_name", "event", "assigned_to", "payment_status", "boarding_status"]
    list_filter = ["event", "payment_status", "boarding_status"]
    search_fields = ["ticket_number", "issued_to_name", "issued_to_email"]
    # Lifecycle columns go through TicketService so the version check applies.
    readonly_fields = [
        "assigned_to",
        "assigned_at",
        "payment_status",
        "payment_sent_at",
        "paid_at",
        "boarding_status",
        "boarded_at",
        "boarded_by",
        "version",
    ]


@admin.register(Permission)
class PermissionAdmin(admin.ModelAdmin):
    list_display = ["id", "category", "description"]
    list_filter = ["category"]
    inlines = [RolePermissionInline]


@admin.register(RolePermission)
class RolePermissionAdmin(admin.ModelAdmin):
    list_display = ["role", "permission"]
    list_filter = ["role"]
