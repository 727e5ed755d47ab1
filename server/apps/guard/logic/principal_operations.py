"""Business logic for principal registration and login.

Password hashing is Django's; this module only adds the email
rules, the auth rate-limit policy and AUTH_FAILED auditing.
"""

import logging
import re
from typing import Any, Final

from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.db import transaction
from django.http import HttpRequest

from server.apps.audit.logic.audit_log import record_event
from server.apps.audit.models import EventKind
from server.apps.guard.exceptions import (
    AuthenticationRequiredError,
    ConflictError,
)
from server.apps.guard.logic.access_guard import AccessGuard, ClientContext
from server.apps.guard.logic.rate_limiting import AUTH_POLICY
from server.apps.sharing.exceptions import InvalidInputError

User = get_user_model()
logger = logging.getLogger(__name__)

_EMAIL_PATTERN: Final = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
_EMAIL_MAX_LENGTH: Final = 150  # Emails double as usernames
_MIN_PASSWORD_LENGTH: Final = 8


def normalize_email(email: str) -> str:
    """Lowercase and strip an email so lookups are case-insensitive."""
    return email.strip().lower()


def register_principal(email: str, password: str) -> Any:
    """Create a principal identified by email.

    Args:
        email: Unique email address.
        password: Plain password, hashed by Django before storage.

    Returns:
        Created user.

    Raises:
        InvalidInputError: If email or password are missing or malformed,
            or the password fails AUTH_PASSWORD_VALIDATORS.
        ConflictError: If the email is already registered.
    """
    if not email or not password:
        raise InvalidInputError('Email and password are required')

    email = normalize_email(email)
    if len(email) > _EMAIL_MAX_LENGTH or not _EMAIL_PATTERN.match(email):
        raise InvalidInputError('Invalid email format')

    if len(password) < _MIN_PASSWORD_LENGTH:
        raise InvalidInputError(
            f'Password must be at least {_MIN_PASSWORD_LENGTH} characters',
        )

    try:
        validate_password(password)
    except ValidationError as error:
        raise InvalidInputError('; '.join(error.messages)) from error

    if User.objects.filter(email__iexact=email).exists():
        raise ConflictError('User with this email already exists')

    with transaction.atomic():
        user = User.objects.create_user(
            username=email,
            email=email,
            password=password,
        )

    logger.info('Principal registered: ID=%d', user.id)
    return user


def authenticate_principal(  # noqa: WPS211
    request: HttpRequest | None,
    email: str,
    password: str,
    client: ClientContext,
    guard: AccessGuard,
) -> Any:
    """Verify credentials behind the auth rate-limit policy.

    Every failure is audited as AUTH_FAILED with the reason; the caller
    only ever learns "invalid credentials".

    Args:
        request: Current request, passed to Django's auth backends.
        email: Login email.
        password: Login password.
        client: Request origin.
        guard: Access guard holding the limiter and audit sink.

    Returns:
        Authenticated user.

    Raises:
        RateLimitedError: If the client exceeded the auth policy.
        InvalidInputError: If credentials are missing.
        AuthenticationRequiredError: If credentials are wrong.
    """
    guard.throttle(AUTH_POLICY, client)

    if not email or not password:
        record_event(
            guard.audit_log,
            client,
            EventKind.AUTH_FAILED,
            detail={'reason': 'Missing credentials'},
        )
        raise InvalidInputError('Email and password are required')

    email = normalize_email(email)
    user = authenticate(request=request, username=email, password=password)

    if user is None:
        if User.objects.filter(username=email).exists():
            reason = 'Invalid password'
        else:
            reason = 'User not found'
        record_event(
            guard.audit_log,
            client,
            EventKind.AUTH_FAILED,
            detail={'reason': reason, 'email': email},
        )
        logger.warning('Authentication failed from %s', client.source_address)
        raise AuthenticationRequiredError('Invalid credentials')

    logger.info('Principal authenticated: ID=%d', user.id)
    return user
