"""JSON views for principal registration and login."""

import json

from django.contrib.auth import login, logout
from django.http import HttpRequest, JsonResponse
from django.middleware.csrf import get_token
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_POST

from server.apps.guard.http import HANDLED_ERRORS, error_response
from server.apps.guard.logic.access_guard import (
    ClientContext,
    build_access_guard,
)
from server.apps.guard.logic.principal_operations import (
    authenticate_principal,
    register_principal,
)
from server.apps.sharing.exceptions import InvalidInputError


def _read_json(request: HttpRequest) -> dict[str, str]:
    try:
        body = json.loads(request.body or b'{}')
    except json.JSONDecodeError as error:
        raise InvalidInputError('Request body must be JSON') from error
    if not isinstance(body, dict):
        raise InvalidInputError('Request body must be a JSON object')
    return body


def _principal_payload(user) -> dict[str, object]:
    return {'user': {'id': user.id, 'email': user.email}}


@require_POST
def register(request: HttpRequest) -> JsonResponse:
    """POST /api/auth/register: create a principal and log it in."""
    try:
        body = _read_json(request)
        user = register_principal(body.get('email', ''), body.get('password', ''))
    except HANDLED_ERRORS as error:
        return error_response(error)

    login(request, user, backend='django.contrib.auth.backends.ModelBackend')
    return JsonResponse(_principal_payload(user), status=201)


@require_POST
def login_view(request: HttpRequest) -> JsonResponse:
    """POST /api/auth/login: rate-limited credential check."""
    try:
        body = _read_json(request)
        user = authenticate_principal(
            request,
            body.get('email', ''),
            body.get('password', ''),
            client=ClientContext.from_request(request),
            guard=build_access_guard(),
        )
    except HANDLED_ERRORS as error:
        return error_response(error)

    login(request, user)
    return JsonResponse(_principal_payload(user))


@require_POST
def logout_view(request: HttpRequest) -> JsonResponse:
    """POST /api/auth/logout."""
    logout(request)
    return JsonResponse({'message': 'Logged out'})


@require_GET
@ensure_csrf_cookie
def csrf_token(request: HttpRequest) -> JsonResponse:
    """GET /api/auth/csrf: token to echo back in the X-CSRFToken header."""
    return JsonResponse({'csrfToken': get_token(request)})
