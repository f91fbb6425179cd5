"""
Contact Views

Public endpoint for the site's contact form.
"""
import logging

from django.apps import apps
from rest_framework import status
from rest_framework.exceptions import ParseError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import EmailDeliveryError, RateLimitExceeded, SubmissionRejected
from .rate_limiting import get_client_ip
from .serializers import ContactFormSubmitSerializer

logger = logging.getLogger(__name__)


class ContactFormSubmitView(APIView):
    """
    Public endpoint for contact form submissions.

    POST /api/contact

    No authentication required. Suspected bots receive the same success
    response as real visitors.
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    parser_classes = [FormParser, MultiPartParser, JSONParser]

    # Set through as_view(guard=...) to override the app's guard
    guard = None

    def get_guard(self):
        if self.guard is not None:
            return self.guard
        return apps.get_app_config('contact').guard

    def post(self, request):
        """Submit a contact form."""
        client_ip = get_client_ip(request)
        guard = self.get_guard()

        try:
            data = request.data
        except ParseError:
            data = None
        serializer = ContactFormSubmitSerializer(data=data)

        try:
            if not serializer.is_valid():
                # Malformed bodies still count towards the client's limit
                guard.check_rate_limit(client_ip)
                return Response(
                    {'error': 'Invalid submission'},
                    status=status.HTTP_400_BAD_REQUEST
                )
            guard.process(serializer.to_submission(), client_ip)
        except RateLimitExceeded as exc:
            return Response(
                {'error': exc.message},
                status=exc.status_code,
                headers={'Retry-After': str(exc.retry_after)}
            )
        except SubmissionRejected as exc:
            return Response({'error': exc.message}, status=exc.status_code)
        except EmailDeliveryError:
            return Response(
                {'error': 'Failed to send email'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return Response({'success': True}, status=status.HTTP_200_OK)
