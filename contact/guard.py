"""
Contact Form Submission Guard

Runs a submission through a fixed sequence of cheap abuse checks and,
if it survives, relays it by email:

1. Rate limit (per client identity)
2. Honeypot field
3. Submission timing
4. Required fields
5. Sanitization
6. Email format
7. Suspicious content
8. Dispatch

Suspected bots (honeypot, timing) get a normal-looking success result
but nothing is sent.
"""
import logging
import re
import time
from dataclasses import dataclass
from typing import Optional

from django.conf import settings

from .email_service import ResendEmailService
from .exceptions import (
    EmailDeliveryError,
    InvalidEmailError,
    MissingFieldsError,
    RateLimitExceeded,
    SuspiciousContentError,
)
from .rate_limiting import (
    CacheRateLimitStore,
    FixedWindowRateLimiter,
    InMemoryRateLimitStore,
)
from .sanitization import (
    MAX_FIELD_LENGTH,
    MAX_URLS,
    contains_suspicious_content,
    is_valid_email,
    sanitize_input,
)

logger = logging.getLogger(__name__)

LEADING_INT_PATTERN = re.compile(r'\s*([+-]?\d+)', re.ASCII)

REASON_SENT = 'sent'
REASON_HONEYPOT = 'honeypot'
REASON_TOO_FAST = 'too_fast'


@dataclass
class Submission:
    name: str = ''
    email: str = ''
    message: str = ''
    honeypot: str = ''
    client_timestamp: Optional[str] = None


@dataclass
class GuardResult:
    """Outcome of a submission that was not rejected."""
    delivered: bool
    reason: str
    submission: Optional[Submission] = None


def parse_client_timestamp(value):
    """
    Parse a millisecond timestamp the way a browser's parseInt would:
    leading integer only, None when there is none.
    """
    if value is None:
        return None
    match = LEADING_INT_PATTERN.match(str(value))
    if not match:
        return None
    return int(match.group(1))


class SubmissionGuard:
    """
    Decides whether a contact submission is relayed.

    Args:
        rate_limiter: FixedWindowRateLimiter shared across requests
        send_email: callable taking from_email, to, subject, reply_to, text
        recipient: address every accepted message is sent to
        sender: From header, e.g. 'Contact <onboarding@resend.dev>'
        min_submit_ms: submissions faster than this after render are dropped
        clock: returns current time in seconds
    """

    def __init__(self, rate_limiter, send_email, recipient, sender,
                 min_submit_ms=2000, max_field_length=MAX_FIELD_LENGTH,
                 max_urls=MAX_URLS, clock=time.time):
        self.rate_limiter = rate_limiter
        self.send_email = send_email
        self.recipient = recipient
        self.sender = sender
        self.min_submit_ms = min_submit_ms
        self.max_field_length = max_field_length
        self.max_urls = max_urls
        self.clock = clock

    def process(self, submission, client_id):
        """
        Evaluate and, if acceptable, send a submission.

        Returns:
            GuardResult for sent and silently dropped submissions

        Raises:
            RateLimitExceeded, MissingFieldsError, InvalidEmailError,
            SuspiciousContentError: submission rejected
            EmailDeliveryError: provider failed to send
        """
        self.check_rate_limit(client_id)

        if self.is_honeypot_filled(submission):
            logger.info(f"Honeypot filled by {client_id}; dropping submission")
            return GuardResult(delivered=False, reason=REASON_HONEYPOT)

        if self.is_too_fast(submission):
            logger.info(f"Submission from {client_id} arrived too quickly; dropping")
            return GuardResult(delivered=False, reason=REASON_TOO_FAST)

        self.check_required_fields(submission)
        cleaned = self.sanitize(submission)

        if not is_valid_email(cleaned.email):
            raise InvalidEmailError()

        if contains_suspicious_content(f'{cleaned.name} {cleaned.message}', self.max_urls):
            logger.info(f"Suspicious content from {client_id} rejected")
            raise SuspiciousContentError()

        self.dispatch(cleaned)
        return GuardResult(delivered=True, reason=REASON_SENT, submission=cleaned)

    def check_rate_limit(self, client_id):
        if self.rate_limiter.is_rate_limited(client_id):
            retry_after = self.rate_limiter.retry_after(client_id)
            logger.warning(f"Contact form rate limit hit for {client_id}")
            raise RateLimitExceeded(retry_after=retry_after)

    def is_honeypot_filled(self, submission):
        return bool(submission.honeypot)

    def is_too_fast(self, submission):
        """True if the form was submitted less than min_submit_ms after render."""
        rendered_at = parse_client_timestamp(submission.client_timestamp)
        if rendered_at is None:
            return False
        elapsed = int(self.clock() * 1000) - rendered_at
        return elapsed < self.min_submit_ms

    def check_required_fields(self, submission):
        for value in (submission.name, submission.email, submission.message):
            if not (value or '').strip():
                raise MissingFieldsError()

    def sanitize(self, submission):
        return Submission(
            name=sanitize_input(submission.name, self.max_field_length),
            email=sanitize_input(submission.email, self.max_field_length),
            message=sanitize_input(submission.message, self.max_field_length),
        )

    def dispatch(self, cleaned):
        try:
            self.send_email(
                from_email=self.sender,
                to=[self.recipient],
                subject=f'New message from {cleaned.name}',
                reply_to=cleaned.email,
                text=cleaned.message,
            )
        except Exception as exc:
            logger.exception(f"Failed to send contact email: {exc}")
            if isinstance(exc, EmailDeliveryError):
                raise
            raise EmailDeliveryError(str(exc)) from exc


def build_submission_guard():
    """Create a guard, its limiter and store from Django settings."""
    if getattr(settings, 'CONTACT_RATE_LIMIT_STORE', 'memory') == 'cache':
        store = CacheRateLimitStore(alias=getattr(settings, 'CONTACT_RATE_LIMIT_CACHE', 'default'))
    else:
        store = InMemoryRateLimitStore()

    # Limiter windows and the timing check read the same clock
    clock = time.time
    rate_limiter = FixedWindowRateLimiter(
        store,
        max_requests=settings.CONTACT_RATE_LIMIT_MAX,
        window_seconds=settings.CONTACT_RATE_LIMIT_WINDOW_SECONDS,
        sweep_every=settings.CONTACT_RATE_LIMIT_SWEEP_EVERY,
        clock=clock,
    )

    return SubmissionGuard(
        rate_limiter=rate_limiter,
        send_email=ResendEmailService().send_email,
        recipient=settings.CONTACT_EMAIL_TO,
        sender=settings.CONTACT_EMAIL_FROM,
        min_submit_ms=settings.CONTACT_MIN_SUBMIT_MS,
        max_field_length=settings.CONTACT_MAX_FIELD_LENGTH,
        max_urls=settings.CONTACT_MAX_URLS,
        clock=clock,
    )
