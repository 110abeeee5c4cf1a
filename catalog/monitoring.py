"""
Sentry error tracking for catalog sync.

- Adds breadcrumbs for each sync stage (listing, prune, download, reload)
- Captures listing and download failures with sync context
- Filters sensitive data from the attached context

Sentry is initialised in settings only when SENTRY_DSN is set; without it
these calls are no-ops inside the SDK.

Usage:
    from catalog.monitoring import add_sync_breadcrumb, capture_sync_failure

    add_sync_breadcrumb("listing", "Fetched listing", extra_data={"count": 12})
    capture_sync_failure("download", "HTTP 500", name="mocha.brewpadrecipe")
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk

logger = logging.getLogger(__name__)

# Sensitive fields to filter from Sentry events
SENSITIVE_FIELDS = {
    "cookie",
    "authorization",
    "password",
    "secret",
    "token",
    "api_key",
}


def _filter_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Replace values whose key looks sensitive, recursing into nested dicts."""
    if not isinstance(data, dict):
        return data

    filtered = {}
    for key, value in data.items():
        if any(sensitive in key.lower() for sensitive in SENSITIVE_FIELDS):
            filtered[key] = "[Filtered]"
        elif isinstance(value, dict):
            filtered[key] = _filter_sensitive_data(value)
        else:
            filtered[key] = value
    return filtered


def add_sync_breadcrumb(
    stage: str,
    message: str,
    level: str = "info",
    extra_data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Add a breadcrumb to Sentry for sync context.

    Args:
        stage: Sync stage (listing, prune, download, reload)
        message: Description of the operation
        level: Log level (info, warning, error)
        extra_data: Additional context data
    """
    data = {"stage": stage}
    if extra_data:
        data.update(_filter_sensitive_data(extra_data))

    sentry_sdk.add_breadcrumb(
        category="catalog.sync",
        message=message,
        level=level,
        data=data,
    )


def capture_sync_failure(
    stage: str,
    error: str,
    name: Optional[str] = None,
    extra_context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Report a sync failure to Sentry.

    Per-item failures are expected from time to time, so they are sent as
    warning-level messages rather than exceptions.

    Args:
        stage: Sync stage that failed
        error: Error description
        name: Recipe filename involved, if any
        extra_context: Additional context (filtered for sensitive data)
    """
    add_sync_breadcrumb(stage, f"Failure: {error}", level="warning", extra_data={"name": name})

    with sentry_sdk.new_scope() as scope:
        scope.set_tag("catalog.sync_stage", stage)
        if name:
            scope.set_extra("recipe_file", name)
        if extra_context:
            scope.set_extra("sync_context", _filter_sensitive_data(extra_context))
        sentry_sdk.capture_message(f"Catalog sync {stage} failed: {error}", level="warning")
