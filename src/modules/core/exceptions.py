"""Standardized API error responses.

Every error leaves the API with the same body::

    {"type": "<error type>", "errors": [{"code": "...", "detail": "...", "attr": ...}]}

DRF exceptions are flattened by ``api_exception_handler`` (wired through
``REST_FRAMEWORK["EXCEPTION_HANDLER"]``); views use ``error_response`` for
domain errors they translate themselves.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler


def _error_type(status_code: int) -> str:
    if status_code >= 500:
        return "server_error"
    if status_code in (401, 403):
        return "authentication_error" if status_code == 401 else "permission_error"
    return "client_error" if status_code != 400 else "validation_error"


def _flatten(detail: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    if isinstance(detail, dict):
        errors: List[Dict[str, Any]] = []
        for key, value in detail.items():
            nested = key if attr is None else f"{attr}.{key}"
            if key == "non_field_errors":
                nested = attr
            errors.extend(_flatten(value, nested))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            nested = attr
            if isinstance(value, dict) and attr is not None:
                nested = f"{attr}.{index}"
            errors.extend(_flatten(value, nested))
        return errors
    code = getattr(detail, "code", None) or "error"
    return [{"code": code, "detail": str(detail), "attr": attr}]


def api_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.APIException):
        errors = _flatten(exc.detail)
    else:
        errors = _flatten(response.data)

    response.data = {
        "type": _error_type(response.status_code),
        "errors": errors,
    }
    return response


def error_response(
    code: str,
    detail: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    extra: Optional[Dict[str, Any]] = None,
) -> Response:
    """Build a standard error ``Response`` for a translated domain error."""
    body: Dict[str, Any] = {
        "type": _error_type(status_code),
        "errors": [{"code": code, "detail": detail, "attr": None}],
    }
    if extra:
        body.update(extra)
    return Response(body, status=status_code)
