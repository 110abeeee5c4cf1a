"""
Celery tasks for the recipe catalog.

- refresh_catalog: runs one sync cycle (prune, download, reload) against the
  remote recipe index. Scheduled every 6 hours via Celery Beat and
  dispatched on demand by POST /api/v1/sync/refresh/.
"""

import logging
from typing import Any, Dict

from asgiref.sync import async_to_sync
from celery import shared_task

from catalog.services.recipe_catalog import get_catalog

logger = logging.getLogger(__name__)


@shared_task(name="catalog.tasks.refresh_catalog")
def refresh_catalog() -> Dict[str, Any]:
    """
    Refresh the local catalog from the remote recipe index.

    Returns:
        The sync report as a dict (outcome, downloaded, pruned, failed...)
    """
    logger.info("Refreshing recipe catalog...")

    catalog = get_catalog()
    report = async_to_sync(catalog.refresh)()

    logger.info(
        f"Catalog refresh finished: {report.outcome} "
        f"({len(report.downloaded)} downloaded, {len(report.pruned)} pruned)"
    )
    return report.to_dict()
