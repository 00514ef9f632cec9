"""DRF glue shared by all apps: error mapping and caller role resolution."""

from django.http import Http404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from common.choices import Role
from common.errors import (
    AllocationFailed,
    CoreError,
    InsufficientStock,
    InvalidCoupon,
    InvalidInput,
    NotFound,
    PermissionDenied,
    UnknownTaxonomyReference,
    VariantNotFound,
)

_STATUS_BY_ERROR = (
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (VariantNotFound, status.HTTP_404_NOT_FOUND),
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (InvalidCoupon, status.HTTP_400_BAD_REQUEST),
    (UnknownTaxonomyReference, status.HTTP_400_BAD_REQUEST),
    (InsufficientStock, status.HTTP_409_CONFLICT),
    (AllocationFailed, status.HTTP_409_CONFLICT),
)


def status_for(exc: CoreError) -> int:
    for klass, code in _STATUS_BY_ERROR:
        if isinstance(exc, klass):
            return code
    return status.HTTP_409_CONFLICT


def error_body(exc: CoreError) -> dict:
    return {"detail": exc.message, "code": exc.code, **exc.payload()}


def core_exception_handler(exc, context):
    """Render CoreError subclasses; defer everything else to DRF.

    DRF's own single-message errors (401/403/404/429) get the same ``code``
    key so clients can branch on one field.
    """

    if isinstance(exc, CoreError):
        return Response(error_body(exc), status=status_for(exc))
    response = exception_handler(exc, context)
    if response is not None and isinstance(response.data, dict) and "detail" in response.data:
        code = "not_found" if isinstance(exc, Http404) else getattr(exc, "default_code", "error")
        response.data.setdefault("code", code)
    return response


def role_of(user) -> str:
    """Role label for the request user; anonymous callers act as customers."""

    if user is None or not getattr(user, "is_authenticated", False):
        return Role.CUSTOMER
    return getattr(user, "role", None) or Role.CUSTOMER
