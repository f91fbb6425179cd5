"""
Contact Form Exceptions

Rejections raised by the submission guard and the email delivery service.
"""
from rest_framework import status


class SubmissionRejected(Exception):
    """Base class for submissions the guard refuses to relay."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid submission'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class RateLimitExceeded(SubmissionRejected):
    """Raised when a client has used up its submissions for the window."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = 'Too many requests. Please try again later.'

    def __init__(self, message=None, retry_after=0):
        super().__init__(message)
        self.retry_after = retry_after


class MissingFieldsError(SubmissionRejected):
    default_message = 'Missing fields'


class InvalidEmailError(SubmissionRejected):
    default_message = 'Invalid email format'


class SuspiciousContentError(SubmissionRejected):
    default_message = 'Message contains suspicious content'


class EmailDeliveryError(Exception):
    """Raised when the email provider fails to accept a message."""
    pass
