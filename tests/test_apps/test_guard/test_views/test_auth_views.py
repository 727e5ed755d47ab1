"""Tests for registration and login JSON views."""

import json

import pytest
from django.test import Client
from django.urls import reverse

from server.apps.audit.models import AuditEvent, EventKind


def _post_json(client, name, payload, **extra):
    return client.post(
        reverse(name),
        data=json.dumps(payload),
        content_type='application/json',
        **extra,
    )


@pytest.mark.django_db
class TestAuthViews:
    """Tests for /api/auth endpoints."""

    def test_register_logs_in(self, client):
        """Test registration answers 201 and starts a session."""
        response = _post_json(client, 'guard:register', {
            'email': 'new@example.com',
            'password': 'long-enough',
        })

        assert response.status_code == 201
        assert response.json()['user']['email'] == 'new@example.com'
        assert client.get(reverse('sharing:my_files')).status_code == 200

    def test_register_conflict(self, client, user):
        """Test registering a taken email answers 409."""
        response = _post_json(client, 'guard:register', {
            'email': 'alice@example.com',
            'password': 'long-enough',
        })

        assert response.status_code == 409

    def test_register_invalid_json(self, client):
        """Test a non-JSON body answers 400."""
        response = client.post(
            reverse('guard:register'),
            data='not json',
            content_type='application/json',
        )

        assert response.status_code == 400

    def test_login_and_logout(self, client, user):
        """Test login opens a session and logout closes it."""
        response = _post_json(client, 'guard:login', {
            'email': 'alice@example.com',
            'password': 'correct-horse',
        })

        assert response.status_code == 200
        assert response.json()['user']['id'] == user.id
        assert client.get(reverse('sharing:my_files')).status_code == 200

        assert client.post(reverse('guard:logout')).status_code == 200
        assert client.get(reverse('sharing:my_files')).status_code == 401

    def test_login_wrong_password(self, client, user):
        """Test wrong credentials answer 401."""
        response = _post_json(client, 'guard:login', {
            'email': 'alice@example.com',
            'password': 'nope-nope',
        })

        assert response.status_code == 401
        assert response.json() == {'error': 'Invalid credentials'}

    def test_login_rate_limited(self, client, user, settings):
        """Test repeated logins from one address answer 429."""
        settings.AUTH_RATE_LIMIT_MAX = 2
        payload = {'email': 'alice@example.com', 'password': 'nope-nope'}

        for _ in range(2):
            assert _post_json(client, 'guard:login', payload).status_code == 401

        response = _post_json(client, 'guard:login', payload)

        assert response.status_code == 429
        assert 'Retry-After' in response

    def test_forwarded_for_does_not_reset_login_limit(self, client, user, settings):
        """Test rotating X-Forwarded-For still hits the peer address limit."""
        settings.AUTH_RATE_LIMIT_MAX = 5
        payload = {'email': 'alice@example.com', 'password': 'nope-nope'}

        statuses = [
            _post_json(
                client,
                'guard:login',
                payload,
                HTTP_X_FORWARDED_FOR=f'198.51.100.{attempt}',
            ).status_code
            for attempt in range(20)
        ]

        assert statuses[:5] == [401] * 5
        assert set(statuses[5:]) == {429}

        event = AuditEvent.objects.filter(
            event_kind=EventKind.AUTH_FAILED,
        ).order_by('id').first()
        assert event.source_address == '198.51.100.0'

    def test_trusted_proxy_limits_per_forwarded_address(self, client, user, settings):
        """Test a trusted proxy's X-Forwarded-For keys the limiter."""
        settings.AUTH_RATE_LIMIT_MAX = 1
        settings.RATE_LIMIT_TRUST_FORWARDED_FOR = True
        payload = {'email': 'alice@example.com', 'password': 'nope-nope'}

        for attempt in range(3):
            response = _post_json(
                client,
                'guard:login',
                payload,
                HTTP_X_FORWARDED_FOR=f'198.51.100.{attempt}',
            )
            assert response.status_code == 401

        response = _post_json(
            client,
            'guard:login',
            payload,
            HTTP_X_FORWARDED_FOR='198.51.100.0',
        )
        assert response.status_code == 429


@pytest.mark.django_db
class TestCsrfProtection:
    """Tests for CSRF enforcement on the JSON API."""

    @pytest.fixture
    def csrf_client(self):
        """Client that enforces CSRF like a browser session would."""
        return Client(enforce_csrf_checks=True)

    def test_login_without_token_refused(self, csrf_client, user):
        """Test a POST lacking the token answers 403 in JSON."""
        response = _post_json(csrf_client, 'guard:login', {
            'email': 'alice@example.com',
            'password': 'correct-horse',
        })

        assert response.status_code == 403
        assert response.json() == {'error': 'CSRF verification failed'}

    def test_login_with_token(self, csrf_client, user):
        """Test the token from /api/auth/csrf admits the login."""
        token = csrf_client.get(reverse('guard:csrf')).json()['csrfToken']

        response = _post_json(
            csrf_client,
            'guard:login',
            {'email': 'alice@example.com', 'password': 'correct-horse'},
            HTTP_X_CSRFTOKEN=token,
        )

        assert response.status_code == 200
        assert response.json()['user']['id'] == user.id

    def test_register_with_token(self, csrf_client):
        """Test registration works end to end with CSRF enforced."""
        token = csrf_client.get(reverse('guard:csrf')).json()['csrfToken']

        response = _post_json(
            csrf_client,
            'guard:register',
            {'email': 'new@example.com', 'password': 'long-enough'},
            HTTP_X_CSRFTOKEN=token,
        )

        assert response.status_code == 201
