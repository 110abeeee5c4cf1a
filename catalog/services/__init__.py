"""
Services module for the recipe catalog.

Contains:
- local_store: recipe files on disk, filename rules, built-in recipes
- catalog_sync: prune/download/reload cycle against the remote index
- readiness: three-signal readiness gate
- recipe_catalog: in-memory catalog and user edit flows
"""

from catalog.services.local_store import DeleteOutcome, LocalCatalogStore, generate_filename
from catalog.services.catalog_sync import CatalogSyncEngine, SyncReport, SyncState
from catalog.services.readiness import ReadinessGate, splash_duration
from catalog.services.recipe_catalog import RecipeCatalog, get_catalog, reset_catalog

__all__ = [
    "DeleteOutcome",
    "LocalCatalogStore",
    "generate_filename",
    "CatalogSyncEngine",
    "SyncReport",
    "SyncState",
    "ReadinessGate",
    "splash_duration",
    "RecipeCatalog",
    "get_catalog",
    "reset_catalog",
]
