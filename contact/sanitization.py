"""
Input Sanitization for Contact Form

Plain text normalization and cheap spam heuristics applied to every
submission before it is echoed into an email.
"""
import re


MAX_FIELD_LENGTH = 5000
MAX_URLS = 3

TAG_PATTERN = re.compile(r'<[^>]*>')
ANGLE_BRACKET_PATTERN = re.compile(r'[<>]')
EMAIL_PATTERN = re.compile(r'[^\s@]+@[^\s@]+\.[^\s@]+')
URL_PATTERN = re.compile(r'https?://\S+', re.IGNORECASE)

SUSPICIOUS_PATTERNS = [
    re.compile(r'<script', re.IGNORECASE),
    re.compile(r'javascript:', re.IGNORECASE),
    re.compile(r'onclick', re.IGNORECASE),
    re.compile(r'onerror', re.IGNORECASE),
]


def sanitize_input(value, max_length=MAX_FIELD_LENGTH):
    """
    Trim, truncate and strip markup from a text field.

    Tags are removed but the text between them is kept, so
    '<b>hi</b>' becomes 'hi'.
    """
    cleaned = (value or '').strip()[:max_length]
    cleaned = TAG_PATTERN.sub('', cleaned)
    return ANGLE_BRACKET_PATTERN.sub('', cleaned)


def is_valid_email(value):
    """Loose address check: something@something.something, no whitespace."""
    return EMAIL_PATTERN.fullmatch(value or '') is not None


def count_urls(text):
    return len(URL_PATTERN.findall(text or ''))


def contains_suspicious_content(text, max_urls=MAX_URLS):
    """
    Spam heuristic for script injection markers and link stuffing.

    Returns True on any script-like marker or more than ``max_urls`` links.
    """
    text = text or ''
    for pattern in SUSPICIOUS_PATTERNS:
        if pattern.search(text):
            return True

    return count_urls(text) > max_urls
