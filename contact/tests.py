"""
Tests for the public contact form endpoint.
"""
from urllib.parse import urlencode

import pytest
from django.apps import apps
from rest_framework import status
from rest_framework.test import APIRequestFactory

from contact.guard import SubmissionGuard, build_submission_guard
from contact.rate_limiting import CacheRateLimitStore, InMemoryRateLimitStore
from contact.views import ContactFormSubmitView


URL = '/api/contact'


@pytest.fixture
def form_data(rendered_at):
    return {
        'name': 'Test User',
        'email': 'test@example.com',
        'message': 'I would like to book a portrait session.',
        'website': '',
        '_timestamp': rendered_at,
    }


class TestContactFormSubmission:
    """Test public contact form submission."""

    def test_submit_valid_contact_form(self, api_client, contact_guard, send_email, form_data):
        response = api_client.post(URL, form_data, HTTP_X_FORWARDED_FOR='203.0.113.7')

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {'success': True}
        send_email.assert_called_once()

    def test_urlencoded_form(self, api_client, contact_guard, send_email, form_data):
        response = api_client.generic(
            'POST', URL, urlencode(form_data),
            content_type='application/x-www-form-urlencoded',
        )

        assert response.status_code == status.HTTP_200_OK
        send_email.assert_called_once()

    def test_json_body(self, api_client, contact_guard, send_email, form_data):
        response = api_client.post(URL, form_data, format='json')

        assert response.status_code == status.HTTP_200_OK
        send_email.assert_called_once()

    def test_trailing_slash(self, api_client, contact_guard, form_data):
        response = api_client.post(f'{URL}/', form_data)
        assert response.status_code == status.HTTP_200_OK

    def test_get_not_allowed(self, api_client, contact_guard):
        response = api_client.get(URL)
        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED

    def test_submit_missing_required_fields(self, api_client, contact_guard, send_email, rendered_at):
        response = api_client.post(URL, {'name': 'Test User', '_timestamp': rendered_at})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {'error': 'Missing fields'}
        send_email.assert_not_called()

    def test_submit_invalid_email(self, api_client, contact_guard, form_data):
        form_data['email'] = 'invalid-email'

        response = api_client.post(URL, form_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {'error': 'Invalid email format'}

    def test_suspicious_content(self, api_client, contact_guard, send_email, form_data):
        form_data['message'] = 'cheap http://a.io http://b.io http://c.io http://d.io'

        response = api_client.post(URL, form_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {'error': 'Message contains suspicious content'}
        send_email.assert_not_called()

    def test_honeypot_spam_detection(self, api_client, contact_guard, send_email, form_data):
        """Honeypot submissions look successful but are never sent."""
        form_data['website'] = 'http://spam.com'

        response = api_client.post(URL, form_data)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {'success': True}
        send_email.assert_not_called()

    def test_too_fast_submission(self, api_client, contact_guard, send_email, form_data, clock):
        form_data['_timestamp'] = str(int(clock() * 1000) - 500)

        response = api_client.post(URL, form_data)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {'success': True}
        send_email.assert_not_called()

    def test_honeypot_with_null_character(self, api_client, contact_guard, send_email, form_data):
        """Control characters in other fields do not unmask the honeypot."""
        form_data['website'] = 'spam'
        form_data['message'] = 'hi\x00there'

        response = api_client.post(URL, form_data)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {'success': True}
        send_email.assert_not_called()

    def test_non_string_json_values(self, api_client, contact_guard, send_email, form_data):
        form_data['name'] = 42
        form_data['website'] = None

        response = api_client.post(URL, form_data, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert send_email.call_args.kwargs['subject'] == 'New message from 42'

    def test_non_object_json_body(self, api_client, contact_guard, send_email):
        response = api_client.post(URL, ['name', 'email'], format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {'error': 'Invalid submission'}
        send_email.assert_not_called()

    def test_email_failure(self, api_client, contact_guard, send_email, form_data):
        send_email.side_effect = RuntimeError('api key revoked at provider')

        response = api_client.post(URL, form_data)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {'error': 'Failed to send email'}
        assert 'revoked' not in response.content.decode()


class TestRateLimiting:
    """Test rate limiting for contact form."""

    def test_rate_limit_per_hour(self, api_client, contact_guard, send_email, form_data):
        for _ in range(5):
            response = api_client.post(URL, form_data, HTTP_X_FORWARDED_FOR='203.0.113.7')
            assert response.status_code == status.HTTP_200_OK

        # 6th submission should be rate limited
        response = api_client.post(URL, form_data, HTTP_X_FORWARDED_FOR='203.0.113.7')

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json() == {'error': 'Too many requests. Please try again later.'}
        assert response['Retry-After'] == '3600'
        assert send_email.call_count == 5

    def test_other_ip_not_limited(self, api_client, contact_guard, form_data):
        for _ in range(6):
            api_client.post(URL, form_data, HTTP_X_FORWARDED_FOR='203.0.113.7')

        response = api_client.post(URL, form_data, HTTP_X_FORWARDED_FOR='198.51.100.2')

        assert response.status_code == status.HTTP_200_OK

    def test_unidentified_clients_share_a_bucket(self, api_client, contact_guard, form_data):
        for _ in range(5):
            api_client.post(URL, form_data)

        response = api_client.post(URL, form_data, HTTP_X_REAL_IP='')

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS

    def test_rate_limit_before_field_checks(self, api_client, contact_guard, form_data):
        for _ in range(5):
            api_client.post(URL, {}, HTTP_X_REAL_IP='198.51.100.9')

        response = api_client.post(URL, form_data, HTTP_X_REAL_IP='198.51.100.9')

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS

    def test_null_characters_are_rate_limited(self, api_client, contact_guard, send_email, form_data):
        form_data['message'] = 'hi\x00there'

        codes = [
            api_client.post(URL, form_data, HTTP_X_FORWARDED_FOR='9.9.9.8').status_code
            for _ in range(7)
        ]

        assert codes == [status.HTTP_200_OK] * 5 + [status.HTTP_429_TOO_MANY_REQUESTS] * 2

    def test_malformed_bodies_are_rate_limited(self, api_client, contact_guard):
        for _ in range(5):
            response = api_client.generic(
                'POST', URL, '{not json', content_type='application/json',
                HTTP_X_FORWARDED_FOR='9.9.9.7',
            )
            assert response.status_code == status.HTTP_400_BAD_REQUEST

        response = api_client.post(URL, [], format='json', HTTP_X_FORWARDED_FOR='9.9.9.7')

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response['Retry-After'] == '3600'


class TestAppGuard:
    """The app builds its guard from settings."""

    def test_app_config_owns_guard(self):
        guard = apps.get_app_config('contact').guard

        assert isinstance(guard, SubmissionGuard)
        assert isinstance(guard.rate_limiter.store, InMemoryRateLimitStore)
        assert guard.rate_limiter.max_requests == 5
        assert guard.rate_limiter.window_seconds == 3600
        assert guard.min_submit_ms == 2000

    def test_view_accepts_injected_guard(self, guard, send_email, rendered_at):
        view = ContactFormSubmitView.as_view(guard=guard)
        request = APIRequestFactory().post(URL, {
            'name': 'Jane',
            'email': 'jane@example.com',
            'message': 'Hello from the injected guard',
            '_timestamp': rendered_at,
        })

        response = view(request)

        assert response.status_code == status.HTTP_200_OK
        send_email.assert_called_once()

    def test_cache_store_selected_from_settings(self, settings):
        settings.CONTACT_RATE_LIMIT_STORE = 'cache'
        settings.CONTACT_RATE_LIMIT_MAX = 3

        guard = build_submission_guard()

        assert isinstance(guard.rate_limiter.store, CacheRateLimitStore)
        assert guard.rate_limiter.max_requests == 3

    def test_guard_and_limiter_share_a_clock(self):
        guard = build_submission_guard()
        assert guard.clock is guard.rate_limiter.clock
