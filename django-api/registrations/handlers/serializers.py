"""Serializers for transforming domain models to API responses.

Output serializers read frozen domain dataclasses. Identifiers and value
objects render through ``str()``; enums render as their value.
"""

from rest_framework import serializers


class EnumValueField(serializers.Field):
    def to_representation(self, value):
        return value.value


class StringField(serializers.Field):
    """Renders value objects (ids, emails, ticket numbers, money) via str()."""

    def to_representation(self, value):
        return str(value)


class PaymentInstructionsSerializer(serializers.Serializer):
    bank_name = serializers.CharField()
    iban = serializers.CharField()
    account_holder = serializers.CharField()
    amount_per_person = serializers.DecimalField(source="amount_per_person.amount", max_digits=10, decimal_places=2)
    currency = serializers.CharField(source="amount_per_person.currency")
    reference_format = serializers.CharField()
    payment_deadline_days = serializers.IntegerField()
    notes = serializers.CharField(allow_null=True)


class EventSerializer(serializers.Serializer):
    """Serializer for Event domain model."""

    id = StringField()
    title = serializers.CharField()
    subtitle = serializers.CharField(allow_null=True)
    event_date = serializers.DateField()
    start_at = serializers.DateTimeField()
    end_at = serializers.DateTimeField(allow_null=True)
    status = EnumValueField()
    visibility = EnumValueField()
    category_id = serializers.CharField()
    location_name = serializers.CharField(allow_null=True)
    city = serializers.CharField(allow_null=True)
    cover_image_url = serializers.CharField(allow_null=True)
    short_description = serializers.CharField()
    description = serializers.CharField()
    organizer_name = serializers.CharField()
    rating_average = serializers.DecimalField(max_digits=3, decimal_places=2, allow_null=True)
    rating_count = serializers.IntegerField()
    payment_instructions = PaymentInstructionsSerializer(allow_null=True)


class RegistrationFormSerializer(serializers.Serializer):
    full_name = serializers.CharField()
    email = StringField()
    whatsapp_number = serializers.CharField(allow_null=True)
    spouse_name = serializers.CharField(allow_null=True)
    children_under_7_count = serializers.IntegerField()
    children_over_7_count = serializers.IntegerField()
    children_names_and_ages = serializers.CharField(allow_null=True)
    vegetarian_meal_count = serializers.IntegerField()
    non_vegetarian_meal_count = serializers.IntegerField()
    other_preferences = serializers.CharField(allow_null=True)
    consent_to_store_personal_data = serializers.BooleanField()


class RegistrationSerializer(serializers.Serializer):
    id = StringField()
    event_id = StringField()
    user_id = StringField(allow_null=True)
    is_guest = serializers.BooleanField()
    registered_at = serializers.DateTimeField()
    form = RegistrationFormSerializer()


class TicketSerializer(serializers.Serializer):
    """Ticket with its derived stage."""

    id = StringField()
    event_id = StringField()
    user_id = StringField(allow_null=True)
    ticket_number = StringField()
    stage = EnumValueField()
    issued_at = serializers.DateTimeField()
    issued_to_name = serializers.CharField()
    issued_to_email = StringField()
    assigned_to_id = StringField(allow_null=True)
    assigned_at = serializers.DateTimeField(allow_null=True)
    payment_sent_at = serializers.DateTimeField(allow_null=True)
    paid_at = serializers.DateTimeField(allow_null=True)
    boarded_at = serializers.DateTimeField(allow_null=True)
    boarded_by_id = StringField(allow_null=True)
    version = serializers.IntegerField()


class RenderedMessageSerializer(serializers.Serializer):
    subject = serializers.CharField(allow_null=True)
    body = serializers.CharField()


class PaymentMessageSerializer(serializers.Serializer):
    whatsapp = RenderedMessageSerializer()
    email = RenderedMessageSerializer()


class PaymentSentSerializer(serializers.Serializer):
    ticket = TicketSerializer()
    payment_message = PaymentMessageSerializer()


class RegistrationResultSerializer(serializers.Serializer):
    registration = RegistrationSerializer()
    ticket = TicketSerializer(allow_null=True)


class TicketVerificationSerializer(serializers.Serializer):
    valid = serializers.BooleanField()
    ticket = TicketSerializer(allow_null=True)


class PermissionGrantSerializer(serializers.Serializer):
    """Input for POST /api/admin/permissions."""

    action = serializers.ChoiceField(choices=["grant", "revoke"])
    role = serializers.CharField()
    permission_id = serializers.CharField()
