"""Standardized API error responses.

Every error leaves the API as::

    {"type": "validation_error" | "client_error" | "server_error",
     "errors": [{"code": ..., "detail": ..., "attr": ...}]}

``attr`` names the offending field (dotted for nested input) or is
``None`` for errors that are not about a single field.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import PermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.settings import api_settings
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)


class Conflict(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The request conflicts with the current state of the resource."
    default_code = "conflict"


def standardized_exception_handler(exc: Exception, context: Dict[str, Any]):
    """DRF ``EXCEPTION_HANDLER`` rendering the standard error envelope."""
    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, PermissionDenied):
        exc = exceptions.PermissionDenied()

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        error_type = "validation_error"
    elif response.status_code >= 500:
        error_type = "server_error"
    else:
        error_type = "client_error"

    response.data = {
        "type": error_type,
        "errors": _flatten(exc.detail),
    }
    logger.info(
        "api.error_response",
        status_code=response.status_code,
        error_type=error_type,
        codes=[error["code"] for error in response.data["errors"]],
    )
    return response


def _flatten(detail: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    if isinstance(detail, dict):
        errors = []
        for key, value in detail.items():
            if key == api_settings.NON_FIELD_ERRORS_KEY:
                child = attr
            else:
                child = f"{attr}.{key}" if attr else str(key)
            errors.extend(_flatten(value, child))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            # Lists of dicts come from ``many=True`` serializers.
            child = f"{attr}.{index}" if attr and isinstance(value, dict) else attr
            errors.extend(_flatten(value, child))
        return errors
    return [
        {
            "code": getattr(detail, "code", "error"),
            "detail": str(detail),
            "attr": attr,
        }
    ]
