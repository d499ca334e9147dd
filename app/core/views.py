"""
Core views providing infrastructure endpoints.

This module contains views that are not part of the business domain but are
essential for application infrastructure:
- health_check: Liveness/readiness probe
- api_exception_handler: DRF EXCEPTION_HANDLER rendering application errors
"""

import logging

from django.db import connection
from django.http import JsonResponse
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError, TransientStoreError

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    This endpoint is used by:
    - Docker health checks
    - Kubernetes liveness/readiness probes
    - Load balancers

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - cache: "connected" or "disconnected"

    HTTP Status Codes:
        200: All systems operational
        503: Database unreachable
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    # Check database connectivity
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        logger.exception("Health check could not reach the database")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    # Check cache connectivity
    try:
        from django.core.cache import cache

        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") == "ok":
            health_status["cache"] = "connected"
        else:
            health_status["cache"] = "disconnected"
            # Cache failure is not critical
    except Exception:
        health_status["cache"] = "disconnected"

    status_code = 200 if is_healthy else 503

    return JsonResponse(health_status, status=status_code)


def api_exception_handler(exc, context):
    """
    Render application errors raised by views.

    Configured as REST_FRAMEWORK["EXCEPTION_HANDLER"]. BaseApplicationError
    subclasses become {"error", "error_code"[, "details"]} with the
    subclass's status code. Everything else falls through to DRF's
    default handler.

    Args:
        exc: The raised exception
        context: DRF handler context (view, request, args, kwargs)

    Returns:
        Response, or None to let Django handle the exception
    """
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        view_name = view.__class__.__name__ if view else "unknown"
        if isinstance(exc, TransientStoreError):
            logger.error(f"{view_name}: {exc}")
        else:
            logger.info(f"{view_name}: {exc}")
        return Response(exc.to_dict(), status=exc.status_code)

    return exception_handler(exc, context)
