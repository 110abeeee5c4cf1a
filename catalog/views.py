"""
Catalog service views.

Includes health check endpoint for monitoring and load balancer checks.
"""

import os

from django.conf import settings
from django.http import JsonResponse

from catalog.services.recipe_catalog import get_catalog


def get_celery_worker_count():
    """
    Get the count of active Celery workers.

    Returns:
        int: Number of active workers, 0 if Celery not available.
    """
    try:
        from config.celery import app as celery_app

        inspect = celery_app.control.inspect(timeout=1.0)
        active = inspect.active()
        if active:
            return len(active)
        return 0
    except Exception:
        return 0


def health_check(request):
    """
    Health check endpoint for the catalog service.

    Endpoint: GET /api/health/
    No authentication required (for load balancer checks).

    Response fields:
        - status: "healthy" or "unhealthy"
        - recipes_dir: "writable", "missing" or "read_only"
        - recipes: number of recipes in the in-memory catalog
        - ready: whether the readiness gate has opened
        - celery_workers: integer count of active workers

    Returns:
        JsonResponse: HTTP 200 for healthy, HTTP 503 for unhealthy
    """
    status = "healthy"
    http_status = 200

    recipes_dir = settings.BREWPAD_RECIPES_DIR
    if not os.path.isdir(recipes_dir):
        # Created on first write
        recipes_dir_status = "missing"
    elif os.access(recipes_dir, os.W_OK):
        recipes_dir_status = "writable"
    else:
        recipes_dir_status = "read_only"
        status = "unhealthy"
        http_status = 503

    catalog = get_catalog()

    return JsonResponse(
        {
            "status": status,
            "recipes_dir": recipes_dir_status,
            "recipes": len(catalog.recipes),
            "ready": catalog.ready,
            "celery_workers": get_celery_worker_count(),
        },
        status=http_status,
    )
