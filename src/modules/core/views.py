import time
from typing import Any, Dict

import structlog
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.actors import Role, resolve_actor
from shared.infrastructure.notifier import (
    customer_channel,
    delivery_channel,
    vendor_channel,
)

logger = structlog.get_logger()

_CHANNEL_FOR_ROLE = {
    Role.CUSTOMER: customer_channel,
    Role.VENDOR: vendor_channel,
    Role.DELIVERY: delivery_channel,
}


def health_check(request: HttpRequest) -> JsonResponse:
    services: Dict[str, Dict[str, Any]] = {}
    overall_healthy = True

    # Check database
    try:
        start = time.monotonic()
        conn = connections["default"]
        conn.ensure_connection()
        with conn.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        services["database"] = {
            "status": "up",
            "response_time_ms": round((time.monotonic() - start) * 1000, 2),
        }
    except Exception:
        services["database"] = {"status": "down"}
        overall_healthy = False
        logger.error("health_check_db_failure")

    # Check cache (Redis)
    try:
        start = time.monotonic()
        cache.set("_health_check", "ok", 10)
        result = cache.get("_health_check")
        if result != "ok":
            raise ConnectionError("Cache read failed")
        services["cache"] = {
            "status": "up",
            "response_time_ms": round((time.monotonic() - start) * 1000, 2),
        }
    except Exception:
        services["cache"] = {"status": "down"}
        overall_healthy = False
        logger.error("health_check_cache_failure")

    status_code = 200 if overall_healthy else 503

    logger.info(
        "health_check_completed", status="healthy" if overall_healthy else "unhealthy"
    )

    return JsonResponse(
        {
            "status": "healthy" if overall_healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=status_code,
    )


class MeView(APIView):
    """The caller's marketplace role and the real-time channel to subscribe to."""

    permission_classes = [IsAuthenticated]

    def get(self, request: HttpRequest) -> Response:
        actor = resolve_actor(request.user)
        channel_for = _CHANNEL_FOR_ROLE.get(actor.role)
        return Response(
            {
                "success": True,
                "message": "authenticated",
                "role": actor.role.value,
                "entity_id": str(actor.entity_id) if actor.entity_id else None,
                "channel": channel_for(actor.entity_id) if channel_for else None,
            }
        )
