from registrations.handlers.views import (
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

__all__ = [
    "AdminEventStatisticsView",
    "AdminPermissionView",
    "AdminTicketStageView",
    "EventDetailView",
    "EventListView",
    "EventRegistrationView",
    "EventTicketListView",
    "GuestRegistrationView",
    "TicketAssignView",
    "TicketBoardView",
    "TicketPaidView",
    "TicketPaymentPreviewView",
    "TicketPaymentSentView",
    "TicketVerifyView",
]
