"""DRF exception handler producing the ``{"detail", "code"}`` error body.

Domain errors are translated by the views; this handler covers what DRF
raises itself (serializer validation, malformed JSON, unknown routes,
method not allowed) so every error response has the same shape.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)

VALIDATION_ERROR_CODE = "validation_error"


def api_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ValidationError):
        response.data = {
            "detail": "Invalid request.",
            "code": VALIDATION_ERROR_CODE,
            "errors": response.data,
        }
    else:
        detail = response.data.get("detail", "") if isinstance(response.data, dict) else ""
        response.data = {
            "detail": str(detail),
            "code": getattr(detail, "code", None) or getattr(exc, "default_code", "error"),
        }

    logger.warning(
        "api.request_rejected",
        status_code=response.status_code,
        code=response.data["code"],
    )
    return response
