"""
Contact Form Serializers

Normalizes the raw form payload into a Submission. Field checks are
left to the submission guard so that they run in its fixed order.
"""
from rest_framework import serializers

from .guard import Submission


TIMESTAMP_FIELD = '_timestamp'


class FormTextField(serializers.CharField):
    """
    CharField that accepts any scalar and never rejects on content.

    DRF's null and surrogate character validators are dropped; sanitization
    and content rules belong to the guard, after the rate limit.
    """

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_blank', True)
        kwargs.setdefault('allow_null', True)
        kwargs.setdefault('trim_whitespace', False)
        kwargs.setdefault('default', '')
        super().__init__(**kwargs)
        self.validators = []

    def to_internal_value(self, data):
        return data if isinstance(data, str) else str(data)


class ContactFormSubmitSerializer(serializers.Serializer):
    """
    Public contact form submission serializer.

    All fields are optional here; missing or null values become empty strings.
    """

    name = FormTextField(help_text="Name of the person getting in touch")

    email = FormTextField(help_text="Address replies should go to")

    message = FormTextField(help_text="Message content")

    # Honeypot field for spam prevention (should be empty)
    website = FormTextField(
        write_only=True,
        help_text="Honeypot field - should be empty"
    )

    def to_internal_value(self, data):
        validated = super().to_internal_value(data)
        timestamp = data.get(TIMESTAMP_FIELD) if hasattr(data, 'get') else None
        validated['client_timestamp'] = None if timestamp in (None, '') else str(timestamp)
        return validated

    def to_submission(self):
        data = self.validated_data
        return Submission(
            name=data['name'] or '',
            email=data['email'] or '',
            message=data['message'] or '',
            honeypot=data['website'] or '',
            client_timestamp=data['client_timestamp'],
        )
