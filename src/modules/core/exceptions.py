"""Project-wide DRF exception handler.

Domain exceptions are translated inside each view.  This handler only
covers what escapes them: storage failures.  ``OperationalError`` covers
lost connections and statement timeouts and is reported as transient
(503); any other ``DatabaseError`` becomes a 500.  Both are logged with
the request's correlation id and never retried here.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from django.db import DatabaseError, OperationalError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

logger = structlog.get_logger(__name__)


def api_exception_handler(exc: Exception, context: dict[str, Any]) -> Optional[Response]:
    response = exception_handler(exc, context)
    if response is not None:
        return response

    if not isinstance(exc, DatabaseError):
        return None

    set_rollback()
    view = context.get("view")
    log = logger.bind(
        view=view.__class__.__name__ if view else None,
        error=str(exc),
    )

    if isinstance(exc, OperationalError):
        log.error("storage.unavailable")
        return Response(
            {"detail": "Storage temporarily unavailable. Try again later."},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
            headers={"Retry-After": "1"},
        )

    log.error("storage.failure")
    return Response(
        {"detail": "Storage failure."},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
