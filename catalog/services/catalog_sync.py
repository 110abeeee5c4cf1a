"""
Catalog Sync Engine.

Reconciles the local recipe directory with the remote recipe index. One sync
cycle walks through these states:

    IDLE -> LISTING_FETCHED -> PRUNING -> DOWNLOADING -> RELOADING -> DONE

- LISTING_FETCHED: the remote listing was requested (it may have failed)
- PRUNING: remote-sync files no longer listed server-side are deleted;
  generic-format files (user-created, imported) are never pruned
- DOWNLOADING: listed files are downloaded strictly one at a time and
  written over any existing copy; a failed item is recorded and skipped
- RELOADING: the local catalog is reloaded and the attempt is reported,
  whatever happened before, so readiness is never blocked by the network

A failed listing skips pruning and downloading entirely: an unreachable
server must not look like a server that removed every recipe.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from asgiref.sync import sync_to_async

from catalog.entries import FIRST_PARTY_CREATOR, CatalogEntry
from catalog.exceptions import (
    CatalogWriteError,
    EntryDecodeError,
    RecipeFileTooLargeError,
)
from catalog.fetchers.remote_index import RemoteIndexClient
from catalog.monitoring import add_sync_breadcrumb, capture_sync_failure
from catalog.services.local_store import REMOTE_EXTENSION, LocalCatalogStore

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    """States of one sync cycle."""

    IDLE = "idle"
    LISTING_FETCHED = "listing_fetched"
    PRUNING = "pruning"
    DOWNLOADING = "downloading"
    RELOADING = "reloading"
    DONE = "done"


@dataclass
class SyncReport:
    """
    Outcome of one sync cycle.

    Attributes:
        listing: Bare filenames listed by the server
        listing_ok: Whether the listing was fetched and decoded
        pruned: Local filenames removed because the server no longer lists them
        downloaded: Filenames downloaded and written
        failed: Filename -> error for every item that failed
        error: Listing or unexpected cycle error, if any
        state: Last state reached
        duration_seconds: Wall time of the cycle
    """

    listing: List[str] = field(default_factory=list)
    listing_ok: bool = False
    pruned: List[str] = field(default_factory=list)
    downloaded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    state: SyncState = SyncState.IDLE
    duration_seconds: float = 0.0

    @property
    def outcome(self) -> str:
        """"success" when everything listed was fetched, "partial" otherwise."""
        if self.listing_ok and not self.failed and self.error is None:
            return "success"
        return "partial"

    def to_dict(self) -> Dict[str, object]:
        """Convert report to dictionary for JSON serialization."""
        return {
            "outcome": self.outcome,
            "state": self.state.value,
            "listing_ok": self.listing_ok,
            "listing": self.listing,
            "pruned": self.pruned,
            "downloaded": self.downloaded,
            "failed": self.failed,
            "error": self.error,
            "duration_seconds": round(self.duration_seconds, 3),
        }


def local_filename(name: str) -> str:
    """Canonical local filename for a listed remote file (extension lowercased)."""
    if name.lower().endswith(REMOTE_EXTENSION):
        name = name[: -len(REMOTE_EXTENSION)]
    return f"{name}{REMOTE_EXTENSION}"


def reconcile_downloaded(entry: CatalogEntry) -> CatalogEntry:
    """
    Apply the metadata rules for server-published recipes.

    The creator becomes "Brewpad" unless the recipe is a community
    highlight, which keeps its original creator. Feature flags pass through
    as declared; downloaded recipes are never built-in.
    """
    creator = entry.creator if entry.is_community_highlight else FIRST_PARTY_CREATOR
    return entry.with_changes(creator=creator, is_built_in=False)


class CatalogSyncEngine:
    """
    Orchestrates RemoteIndexClient and LocalCatalogStore for one sync cycle.

    Collaborators are injected: `on_reload` reloads the in-memory catalog and
    `on_attempted` reports the finished attempt (the readiness gate).
    Concurrent cycles are not mutually excluded.
    """

    def __init__(
        self,
        store: LocalCatalogStore,
        client_factory: Optional[Callable[[], RemoteIndexClient]] = None,
        on_reload: Optional[Callable[[], None]] = None,
        on_attempted: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize the sync engine.

        Args:
            store: Local store downloads are written through
            client_factory: Builds the remote client used as an async context manager
            on_reload: Called once per cycle after downloads, to reload the catalog
            on_attempted: Called once per cycle after the reload
        """
        self.store = store
        self.client_factory = client_factory or RemoteIndexClient
        self.on_reload = on_reload
        self.on_attempted = on_attempted
        self.state = SyncState.IDLE
        self.last_report: Optional[SyncReport] = None

    def _transition(self, report: SyncReport, state: SyncState) -> None:
        self.state = state
        report.state = state
        logger.debug(f"Sync state -> {state.value}")

    async def run(self) -> SyncReport:
        """Run one full sync cycle and return its report."""
        report = SyncReport()
        started = time.monotonic()
        logger.info("Starting catalog sync")

        try:
            async with self.client_factory() as client:
                listing = await client.fetch_listing()
                self._transition(report, SyncState.LISTING_FETCHED)
                report.listing = list(listing.names)
                report.listing_ok = listing.success

                if not listing.success:
                    report.error = listing.error or "Listing unavailable"
                    logger.warning(f"Skipping prune and downloads: {report.error}")
                    capture_sync_failure("listing", report.error)
                else:
                    add_sync_breadcrumb(
                        "listing", "Fetched listing", extra_data={"count": len(report.listing)}
                    )
                    self._transition(report, SyncState.PRUNING)
                    report.pruned = await sync_to_async(self.prune)(report.listing)

                    self._transition(report, SyncState.DOWNLOADING)
                    for name in report.listing:
                        await self._download(client, name, report)

        except Exception as e:
            # Anything unexpected still ends in a reload and a reported attempt.
            logger.exception(f"Catalog sync failed: {e}")
            report.error = str(e)
            capture_sync_failure(report.state.value, str(e))

        self._transition(report, SyncState.RELOADING)
        try:
            if self.on_reload is not None:
                await sync_to_async(self.on_reload)()
        except Exception as e:
            # The attempt is still reported and the completion still runs.
            logger.exception(f"Catalog reload failed: {e}")
            reload_error = f"Reload failed: {e}"
            report.error = f"{report.error}; {reload_error}" if report.error else reload_error
            capture_sync_failure(SyncState.RELOADING.value, str(e))
        finally:
            if self.on_attempted is not None:
                self.on_attempted()
            report.duration_seconds = time.monotonic() - started
            self._transition(report, SyncState.DONE)
            self.last_report = report

        logger.info(
            f"Catalog sync {report.outcome}: {len(report.downloaded)} downloaded, "
            f"{len(report.pruned)} pruned, {len(report.failed)} failed"
        )
        return report

    async def refresh(
        self, completion: Optional[Callable[[SyncReport], None]] = None
    ) -> SyncReport:
        """
        Manual refresh: run the same pipeline on demand.

        The completion callback is invoked exactly once, after the reload.
        """
        report = await self.run()
        if completion is not None:
            completion(report)
        return report

    def prune(self, listing: List[str]) -> List[str]:
        """
        Delete remote-sync files the server no longer lists.

        Returns:
            Filenames removed from the local directory
        """
        listed = {local_filename(name) for name in listing}
        pruned = []
        for path in self.store.list_files(extensions=(REMOTE_EXTENSION,)):
            if path.name in listed:
                continue
            if self.store.delete_file(path):
                logger.info(f"Pruned recipe no longer on server: {path.name}")
                pruned.append(path.name)
        if pruned:
            add_sync_breadcrumb("prune", "Pruned stale recipes", extra_data={"count": len(pruned)})
        return pruned

    async def _download(self, client: RemoteIndexClient, name: str, report: SyncReport) -> None:
        """Download, decode, reconcile and write one listed file."""
        result = await client.download_one(name)
        if not result.success:
            self._record_failure(report, name, result.error or "Download failed")
            return

        filename = local_filename(name)
        try:
            entry = self.store.decode_payload(
                result.content, trust_feature_flags=True, source=filename
            )
            entry = reconcile_downloaded(entry)
            await sync_to_async(self.store.write_named)(filename, entry)
        except (EntryDecodeError, RecipeFileTooLargeError, CatalogWriteError) as e:
            self._record_failure(report, name, str(e))
            return

        report.downloaded.append(filename)
        logger.debug(f"Downloaded recipe {filename}")

    def _record_failure(self, report: SyncReport, name: str, error: str) -> None:
        logger.warning(f"Failed to sync recipe {name}: {error}")
        report.failed[name] = error
        capture_sync_failure("download", error, name=name)
