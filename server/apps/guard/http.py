"""JSON error responses for the error taxonomy."""

import logging
from typing import Final

from django.http import HttpRequest, JsonResponse

from server.apps.guard.exceptions import (
    AuthenticationRequiredError,
    ConflictError,
    RateLimitedError,
)
from server.apps.sharing.exceptions import (
    ForbiddenError,
    InvalidInputError,
    RecordExpiredError,
    RecordNotFoundError,
    StorageError,
)

logger = logging.getLogger(__name__)

HANDLED_ERRORS: Final = (
    AuthenticationRequiredError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    RateLimitedError,
    RecordExpiredError,
    RecordNotFoundError,
    StorageError,
)


def error_response(error: Exception) -> JsonResponse:
    """Render a taxonomy error as `{'error': message}` with its status.

    Args:
        error: One of HANDLED_ERRORS.

    Returns:
        JSON response; 429s carry Retry-After, 404s carry exists=false,
        410s carry expired=true.
    """
    status = getattr(error, 'status_code', 500)
    payload: dict[str, object] = {'error': str(error)}

    if isinstance(error, RecordNotFoundError):
        payload['exists'] = False
    elif isinstance(error, RecordExpiredError):
        payload['expired'] = True

    response = JsonResponse(payload, status=status)
    if isinstance(error, RateLimitedError):
        response['Retry-After'] = str(error.retry_after_seconds)
    return response


def csrf_failure(request: HttpRequest, reason: str = '') -> JsonResponse:
    """CSRF_FAILURE_VIEW answering in the API's JSON shape."""
    logger.warning('CSRF check failed for %s: %s', request.path, reason)
    return JsonResponse({'error': 'CSRF verification failed'}, status=403)
