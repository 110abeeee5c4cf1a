"""
Remote recipe index fetching.

The remote index is a plain directory listing of recipe files; the client
scrapes filenames from it and downloads payloads one at a time.
"""

from .remote_index import (
    DownloadResult,
    HealthStatus,
    ListingResult,
    RemoteIndexClient,
    extract_recipe_filenames,
)

__all__ = [
    "DownloadResult",
    "HealthStatus",
    "ListingResult",
    "RemoteIndexClient",
    "extract_recipe_filenames",
]
