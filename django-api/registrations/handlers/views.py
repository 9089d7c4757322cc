"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and pass raw input to services
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

from collections.abc import Mapping
from typing import Any

from django.http import QueryDict
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from registrations.domain.errors import (
    DomainError,
    ErrorCode,
    ForbiddenError,
    PreconditionFailedError,
    ValidationError,
)
from registrations.handlers import dependencies
from registrations.handlers.serializers import (
    EventSerializer,
    PaymentMessageSerializer,
    PaymentSentSerializer,
    PermissionGrantSerializer,
    RegistrationResultSerializer,
    TicketSerializer,
    TicketVerificationSerializer,
)

ERROR_STATUS = {
    ErrorCode.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.DUPLICATE: status.HTTP_409_CONFLICT,
    ErrorCode.PRECONDITION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.TEMPLATE_NOT_FOUND: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(error: DomainError) -> Response:
    body: dict = {"code": error.code.value, "message": error.message}
    if isinstance(error, ValidationError):
        body["field"] = error.field
    elif isinstance(error, ForbiddenError):
        body["capability"] = error.capability
    elif isinstance(error, PreconditionFailedError):
        body["reason"] = error.reason.value
    elif error.code is ErrorCode.TEMPLATE_NOT_FOUND:
        body["message"] = "Message template is not configured"
    return Response({"error": body}, status=ERROR_STATUS[error.code])


def request_body(request: Request) -> dict[str, Any]:
    """Parsed request body as a plain dict. Bodies that are not objects are rejected."""
    data = request.data
    if isinstance(data, QueryDict):
        return data.dict()
    if not isinstance(data, Mapping):
        raise ValidationError("body", "Request body must be a JSON object")
    return dict(data)


class DomainAPIView(APIView):
    """Base view that turns domain errors into error responses."""

    def handle_exception(self, exc):
        if isinstance(exc, DomainError):
            return error_response(exc)
        return super().handle_exception(exc)


class EventListView(DomainAPIView):
    """Handler for GET /api/events"""

    def get(self, request: Request) -> Response:
        identity = dependencies.current_identity(request)
        events = dependencies.event_service().list_events(identity, request.query_params.get("status"))
        return Response(EventSerializer(events, many=True).data)


class EventDetailView(DomainAPIView):
    """Handler for GET /api/events/{event_id}"""

    def get(self, request: Request, event_id: str) -> Response:
        identity = dependencies.current_identity(request)
        event = dependencies.event_service().get_event(identity, event_id)
        return Response(EventSerializer(event).data)


class EventRegistrationView(DomainAPIView):
    """Handler for POST and DELETE /api/events/{event_id}/registrations"""

    def post(self, request: Request, event_id: str) -> Response:
        identity = dependencies.current_identity(request)
        form_data = request_body(request)
        user_id = form_data.pop("user_id", None)
        result = dependencies.registration_service().register_for_event(identity, event_id, form_data, user_id)
        return Response(RegistrationResultSerializer(result).data, status=status.HTTP_201_CREATED)

    def delete(self, request: Request, event_id: str) -> Response:
        identity = dependencies.current_identity(request)
        dependencies.registration_service().cancel_registration(
            identity, event_id, request.query_params.get("user_id")
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


class GuestRegistrationView(DomainAPIView):
    """Handler for POST /api/events/{event_id}/guest-registrations"""

    def post(self, request: Request, event_id: str) -> Response:
        result = dependencies.registration_service().register_guest(event_id, request_body(request))
        return Response(RegistrationResultSerializer(result).data, status=status.HTTP_201_CREATED)


class EventTicketListView(DomainAPIView):
    """Handler for GET /api/events/{event_id}/tickets"""

    def get(self, request: Request, event_id: str) -> Response:
        identity = dependencies.current_identity(request)
        tickets = dependencies.ticket_service().list_event_tickets(identity, event_id)
        return Response(TicketSerializer(tickets, many=True).data)


class TicketAssignView(DomainAPIView):
    """Handler for POST /api/tickets/{ticket_id}/assign"""

    def post(self, request: Request, ticket_id: str) -> Response:
        identity = dependencies.current_identity(request)
        ticket = dependencies.ticket_service().assign(identity, ticket_id, request_body(request).get("assigned_to_id"))
        return Response(TicketSerializer(ticket).data)


class TicketPaymentSentView(DomainAPIView):
    """Handler for POST /api/tickets/{ticket_id}/payment-sent"""

    def post(self, request: Request, ticket_id: str) -> Response:
        identity = dependencies.current_identity(request)
        result = dependencies.ticket_service().mark_payment_sent(identity, ticket_id)
        return Response(PaymentSentSerializer(result).data)


class TicketPaymentPreviewView(DomainAPIView):
    """Handler for GET /api/tickets/{ticket_id}/payment-preview"""

    def get(self, request: Request, ticket_id: str) -> Response:
        identity = dependencies.current_identity(request)
        message = dependencies.ticket_service().preview_payment_message(identity, ticket_id)
        return Response(PaymentMessageSerializer(message).data)


class TicketPaidView(DomainAPIView):
    """Handler for POST /api/tickets/{ticket_id}/paid"""

    def post(self, request: Request, ticket_id: str) -> Response:
        identity = dependencies.current_identity(request)
        ticket = dependencies.ticket_service().mark_paid(identity, ticket_id)
        return Response(TicketSerializer(ticket).data)


class TicketBoardView(DomainAPIView):
    """Handler for POST /api/tickets/{ticket_id}/board"""

    def post(self, request: Request, ticket_id: str) -> Response:
        identity = dependencies.current_identity(request)
        ticket = dependencies.ticket_service().mark_boarded(identity, ticket_id)
        return Response(TicketSerializer(ticket).data)


class TicketVerifyView(DomainAPIView):
    """Handler for GET /api/tickets/verify/{ticket_number}"""

    def get(self, request: Request, ticket_number: str) -> Response:
        verification = dependencies.ticket_service().verify_ticket(ticket_number)
        return Response(TicketVerificationSerializer(verification).data)


class AdminTicketStageView(DomainAPIView):
    """Handler for PATCH /api/admin/tickets/{ticket_id}"""

    def patch(self, request: Request, ticket_id: str) -> Response:
        identity = dependencies.current_identity(request)
        data = request_body(request)
        ticket = dependencies.ticket_service().set_stage(
            identity,
            ticket_id,
            data.get("target_stage"),
            data.get("assigned_to_id"),
        )
        return Response(TicketSerializer(ticket).data)


class AdminEventStatisticsView(DomainAPIView):
    """Handler for GET /api/admin/events/{event_id}/statistics"""

    def get(self, request: Request, event_id: str) -> Response:
        identity = dependencies.current_identity(request)
        stats = dependencies.admin_service().event_statistics(identity, event_id)
        return Response(
            {
                "event_id": str(stats.event_id),
                "registration_count": stats.registration_count,
                "guest_registration_count": stats.guest_registration_count,
                "attendee_count": stats.attendee_count,
                "vegetarian_meal_count": stats.vegetarian_meal_count,
                "non_vegetarian_meal_count": stats.non_vegetarian_meal_count,
                "ticket_count": stats.ticket_count,
                "tickets_by_stage": {stage.value: count for stage, count in stats.tickets_by_stage.items()},
            }
        )


class AdminPermissionView(DomainAPIView):
    """Handler for GET and POST /api/admin/permissions"""

    def get(self, request: Request) -> Response:
        identity = dependencies.current_identity(request)
        service = dependencies.permission_service()
        catalogue = service.list_permissions(identity)
        return Response(
            {
                "permissions": [
                    {"id": p.id, "category": p.category, "description": p.description} for p in catalogue
                ],
                "grants": service.get_role_permissions(identity),
            }
        )

    def post(self, request: Request) -> Response:
        identity = dependencies.current_identity(request)
        serializer = PermissionGrantSerializer(data=request.data)
        if not serializer.is_valid():
            field, messages = next(iter(serializer.errors.items()))
            return error_response(ValidationError(field, str(messages[0])))

        data = serializer.validated_data
        service = dependencies.permission_service()
        if data["action"] == "grant":
            service.grant(identity, data["role"], data["permission_id"])
        else:
            service.revoke(identity, data["role"], data["permission_id"])
        return Response({"grants": service.get_role_permissions(identity)})
