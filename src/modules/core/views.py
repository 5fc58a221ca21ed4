import time
from typing import Any, Callable, Dict

import structlog
from django.conf import settings
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.accounts.repositories import ParticipantDjangoRepository
from modules.accounts.services import IdentityService
from modules.core.models import OutboxEvent

logger = structlog.get_logger(__name__)


def _timed(probe: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
    start = time.monotonic()
    result = probe()
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - start) * 1000, 2),
        **result,
    }


def _probe_database() -> Dict[str, Any]:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()
    return {}


def _probe_cache() -> Dict[str, Any]:
    cache.set("_health_check", "ok", 10)
    if cache.get("_health_check") != "ok":
        raise ConnectionError("Cache read failed")
    return {}


def _probe_outbox() -> Dict[str, Any]:
    backlog = OutboxEvent.objects.due(settings.OUTBOX_MAX_RETRIES).count()
    return {"pending_events": backlog}


# The outbox backlog is informational: a slow relay does not make the
# service unhealthy.
_PROBES = (
    ("database", _probe_database, True),
    ("cache", _probe_cache, True),
    ("outbox", _probe_outbox, False),
)


def health_check(request: HttpRequest) -> JsonResponse:
    """Public liveness/readiness probe: 200 when every critical service is up."""
    services: Dict[str, Dict[str, Any]] = {}
    healthy = True

    for name, probe, critical in _PROBES:
        try:
            services[name] = _timed(probe)
        except Exception:
            logger.exception("health.service_down", service=name)
            services[name] = {"status": "down"}
            healthy = healthy and not critical

    overall = "healthy" if healthy else "unhealthy"
    logger.info("health.check_completed", status=overall)
    return JsonResponse(
        {
            "status": overall,
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if healthy else 503,
    )


class MeView(APIView):
    """The authenticated user and the participant it acts as.

    Requires a valid JWT (fail closed: no or bad token -> 401).
    ``participant`` is ``None`` for users not linked to an active
    participant; such users cannot act on orders.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request: HttpRequest) -> Response:
        participant = IdentityService(ParticipantDjangoRepository()).resolve_user(
            request.user.pk
        )
        return Response(
            {
                "user": str(request.user),
                "participant": None
                if participant is None
                else {
                    "id": str(participant.id),
                    "role": participant.role,
                    "business_name": participant.business_name,
                },
            }
        )
