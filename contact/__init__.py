"""
Contact App

Handles the site's contact form:
- Public submission endpoint relaying messages by email (Resend)
- Per-IP fixed-window rate limiting
- Honeypot and submission timing bot checks
- Input sanitization and spam content filtering
"""
