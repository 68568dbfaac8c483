"""
Core views providing infrastructure endpoints.

These are not part of the upload domain but are needed to run it: the
health check reports on every backing service an upload touches.
"""

import os

from django.conf import settings
from django.db import DatabaseError, connection
from django.http import JsonResponse
from django_redis import get_redis_connection
from redis.exceptions import RedisError


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Components:
        - database: session store ("connected" or "disconnected")
        - redis: per-session lock backend ("connected" or "disconnected")
        - staging: scratch directory ("writable" or "unavailable")

    Uploads cannot make progress without any of them, so each failure turns
    the overall status to "unhealthy".

    HTTP Status Codes:
        200: All systems operational
        503: One or more systems unhealthy
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "redis": "unknown",
        "staging": "unknown",
    }

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        health_status["database"] = "disconnected"

    try:
        get_redis_connection("default").ping()
        health_status["redis"] = "connected"
    except RedisError:
        health_status["redis"] = "disconnected"

    staging_dir = settings.UPLOAD_STAGING_DIR
    if os.path.isdir(staging_dir) and os.access(staging_dir, os.W_OK):
        health_status["staging"] = "writable"
    else:
        health_status["staging"] = "unavailable"

    is_healthy = (
        health_status["database"] == "connected"
        and health_status["redis"] == "connected"
        and health_status["staging"] == "writable"
    )
    if not is_healthy:
        health_status["status"] = "unhealthy"

    return JsonResponse(health_status, status=200 if is_healthy else 503)
