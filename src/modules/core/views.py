"""Liveness/readiness endpoint.

``GET /health`` checks the two backing services the API cannot work
without (the database holding orders and the cache holding throttle
counters) and reports the outbox backlog so that a stalled relay shows
up next to them.  No authentication: it exposes no order data.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict

import structlog
from django.core.cache import cache
from django.db import DatabaseError, connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

from modules.core.models import EventStatus, OutboxEvent

logger = structlog.get_logger(__name__)

_CACHE_CHECK_KEY = "_health_check"


def _check_database() -> None:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _check_cache() -> None:
    cache.set(_CACHE_CHECK_KEY, "ok", 10)
    if cache.get(_CACHE_CHECK_KEY) != "ok":
        raise ConnectionError("Cache read-back failed")


def _timed(name: str, check: Callable[[], None]) -> Dict[str, Any]:
    start = time.monotonic()
    try:
        check()
    except (DatabaseError, ConnectionError, OSError) as exc:
        logger.error("health_check.service_down", service=name, error=str(exc))
        return {"status": "down"}
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - start) * 1000, 2),
    }


def health_check(request: HttpRequest) -> JsonResponse:
    services = {
        "database": _timed("database", _check_database),
        "cache": _timed("cache", _check_cache),
    }
    healthy = all(s["status"] == "up" for s in services.values())

    body: Dict[str, Any] = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": timezone.now().isoformat(),
        "services": services,
    }
    if services["database"]["status"] == "up":
        body["outbox_pending"] = OutboxEvent.objects.filter(
            status=EventStatus.PENDING
        ).count()

    logger.info("health_check.completed", status=body["status"])
    return JsonResponse(body, status=200 if healthy else 503)
