from django.urls import path

from registrations.handlers import (
    AdminEventStatisticsView,
    AdminPermissionView,
    AdminTicketStageView,
    EventDetailView,
    EventListView,
    EventRegistrationView,
    EventTicketListView,
    GuestRegistrationView,
    TicketAssignView,
    TicketBoardView,
    TicketPaidView,
    TicketPaymentPreviewView,
    TicketPaymentSentView,
    TicketVerifyView,
)

urlpatterns = [
    path("events", EventListView.as_view(), name="event-list"),
    path("events/<str:event_id>", EventDetailView.as_view(), name="event-detail"),
    path(
        "events/<str:event_id>/registrations",
        EventRegistrationView.as_view(),
        name="event-registrations",
    ),
    path(
        "events/<str:event_id>/guest-registrations",
        GuestRegistrationView.as_view(),
        name="guest-registrations",
    ),
    path("events/<str:event_id>/tickets", EventTicketListView.as_view(), name="event-tickets"),
    path("tickets/verify/<str:ticket_number>", TicketVerifyView.as_view(), name="ticket-verify"),
    path("tickets/<str:ticket_id>/assign", TicketAssignView.as_view(), name="ticket-assign"),
    path("tickets/<str:ticket_id>/payment-sent", TicketPaymentSentView.as_view(), name="ticket-payment-sent"),
    path(
        "tickets/<str:ticket_id>/payment-preview",
        TicketPaymentPreviewView.as_view(),
        name="ticket-payment-preview",
    ),
    path("tickets/<str:ticket_id>/paid", TicketPaidView.as_view(), name="ticket-paid"),
    path("tickets/<str:ticket_id>/board", TicketBoardView.as_view(), name="ticket-board"),
    path("admin/tickets/<str:ticket_id>", AdminTicketStageView.as_view(), name="admin-ticket-stage"),
    path(
        "admin/events/<str:event_id>/statistics",
        AdminEventStatisticsView.as_view(),
        name="admin-event-statistics",
    ),
    path("admin/permissions", AdminPermissionView.as_view(), name="admin-permissions"),
]
