"""JSON views for encrypted upload, download and owner management.

Views only translate HTTP to the transfer operations. The share-link
fragment carrying the key is never sent here by browsers, and nothing
in these views looks for it.
"""

from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from django.views.decorators.http import (
    require_GET,
    require_http_methods,
    require_POST,
)

from server.apps.guard.http import HANDLED_ERRORS, error_response
from server.apps.guard.logic.access_guard import ClientContext
from server.apps.sharing.logic.transfer_operations import (
    delete_owner_file,
    fetch_blob,
    get_file_metadata,
    list_owner_files,
    upload_encrypted_file,
)


@require_POST
def upload(request: HttpRequest) -> JsonResponse:
    """POST /api/upload: multipart `file`, `iv`, `filename`, `mimetype`, `expiresIn`."""
    try:
        result = upload_encrypted_file(
            owner=request.user,
            content=request.FILES.get('file'),
            iv=request.POST.get('iv', ''),
            filename=request.POST.get('filename', ''),
            mime_type=request.POST.get('mimetype', ''),
            client=ClientContext.from_request(request),
            ttl_hours=request.POST.get('expiresIn'),
        )
    except HANDLED_ERRORS as error:
        return error_response(error)
    return JsonResponse(result, status=201)


@require_GET
def file_metadata(request: HttpRequest, file_id: str) -> JsonResponse:
    """GET /api/file/<id>/metadata."""
    try:
        payload = get_file_metadata(file_id, ClientContext.from_request(request))
    except HANDLED_ERRORS as error:
        return error_response(error)
    return JsonResponse(payload)


@require_GET
def file_blob(request: HttpRequest, file_id: str) -> JsonResponse:
    """GET /api/file/<id>/blob: ciphertext as base64 plus the IV."""
    try:
        payload = fetch_blob(file_id, ClientContext.from_request(request))
    except HANDLED_ERRORS as error:
        return error_response(error)
    return JsonResponse(payload)


@require_GET
def my_files(request: HttpRequest) -> JsonResponse:
    """GET /api/myfiles: caller's uploads, newest first."""
    try:
        files = list_owner_files(request.user)
    except HANDLED_ERRORS as error:
        return error_response(error)
    return JsonResponse({'files': files})


@require_http_methods(['DELETE'])
def delete_my_file(request: HttpRequest, file_id: str) -> JsonResponse:
    """DELETE /api/myfiles/<id>: owner-only deletion."""
    try:
        delete_owner_file(file_id, request.user)
    except HANDLED_ERRORS as error:
        return error_response(error)
    return JsonResponse({'message': 'File deleted successfully'})


@require_GET
def health(request: HttpRequest) -> JsonResponse:
    """GET /health."""
    return JsonResponse({
        'status': 'ok',
        'timestamp': timezone.now().isoformat(),
    })
