"""
Recipe Catalog Service.

Owns the in-memory recipe list and ties the local store, the sync engine and
the readiness gate together.

Flow:
1. Construction starts the minimum display timer of the readiness gate
2. start() loads the local catalog and runs a sync cycle concurrently;
   get_catalog() runs it on a background thread the first time
3. Every reload swaps the whole list in one step; readers never observe a
   partially reloaded catalog, and a snapshot from an older load never
   replaces a newer one
4. User edits, deletes and imports go through the store first and only then
   reload, so a failed write leaves the in-memory catalog unchanged
5. Changes written to the recipe directory by another process are picked
   up on the next get_catalog() call
"""

import asyncio
import logging
import threading
import uuid
from typing import Callable, Dict, List, Optional, Tuple, Union

from asgiref.sync import async_to_sync, sync_to_async
from django.conf import settings

from catalog.entries import (
    COPIED_FROM_PREFIX,
    FIRST_PARTY_CREATOR,
    UNKNOWN_CREATOR,
    CatalogEntry,
    Category,
)
from catalog.exceptions import ReadOnlyRecipeError
from catalog.fetchers.remote_index import HealthStatus, RemoteIndexClient
from catalog.preferences import UserPreferences
from catalog.services.catalog_sync import CatalogSyncEngine, SyncReport
from catalog.services.local_store import (
    GENERIC_EXTENSION,
    REMOTE_EXTENSION,
    DeleteOutcome,
    LocalCatalogStore,
)
from catalog.services.readiness import ReadinessGate, splash_duration
from catalog.utils.measurement import convert_lines

logger = logging.getLogger(__name__)


ALL_CATEGORIES = "All"

EntryRef = Union[CatalogEntry, uuid.UUID, str]


def share_filename(entry: CatalogEntry) -> str:
    """Filename offered when sharing a recipe, e.g. "earl_grey_tea.brewpadrecipe"."""
    return f"{entry.name.lower().replace(' ', '_')}{REMOTE_EXTENSION}"


def _sort_key(entry: CatalogEntry) -> Tuple[str, str]:
    return (entry.name.lower(), str(entry.id))


class RecipeCatalog:
    """
    In-memory recipe catalog.

    Usage:
        catalog = RecipeCatalog()
        async_to_sync(catalog.start)()
        catalog.gate.wait(timeout=10)
        for entry in catalog.recipes_for_category("Tea"):
            ...
    """

    def __init__(
        self,
        store: Optional[LocalCatalogStore] = None,
        preferences: Optional[UserPreferences] = None,
        client_factory: Optional[Callable[[], RemoteIndexClient]] = None,
        gate: Optional[ReadinessGate] = None,
        start_timer: bool = True,
    ):
        """
        Initialize the catalog.

        Args:
            store: Local store (default: configured from settings)
            preferences: User preferences (default: from settings)
            client_factory: Builds the remote index client
            gate: Readiness gate (default: a fresh gate)
            start_timer: Start the minimum display timer now
        """
        self.store = store or LocalCatalogStore()
        self.preferences = preferences or UserPreferences.from_settings()
        self.client_factory = client_factory or RemoteIndexClient
        self.gate = gate or ReadinessGate()

        self._lock = threading.Lock()
        self._entries: Tuple[CatalogEntry, ...] = ()
        self._load_generation = 0
        self._applied_generation = 0
        self._loaded_mtime: Optional[int] = None
        self._startup_thread: Optional[threading.Thread] = None

        self.sync_engine = CatalogSyncEngine(
            store=self.store,
            client_factory=self.client_factory,
            on_reload=self.load,
            on_attempted=self.gate.mark_sync_attempted,
        )

        if start_timer:
            self.gate.start_min_timer(splash_duration(self.preferences.birthdate))

    # ------------------------------------------------------------------
    # Loading and sync
    # ------------------------------------------------------------------

    def load(self) -> List[CatalogEntry]:
        """
        Reload built-in and local recipes and swap them in.

        Loads may overlap (the startup load runs next to the sync reload).
        Each load takes a generation number before reading the directory and
        its snapshot is applied only if no later-started load has been
        applied already, so a slow early read never overwrites a newer one.
        """
        with self._lock:
            self._load_generation += 1
            generation = self._load_generation

        directory_mtime = self.store.directory_mtime()
        built_in, local = self.store.load_all()

        entries: Dict[uuid.UUID, CatalogEntry] = {}
        for entry in built_in + local:
            if entry.id in entries:
                logger.warning(f"Duplicate recipe id {entry.id} ({entry.name}), keeping first")
                continue
            entries[entry.id] = entry

        snapshot = tuple(sorted(entries.values(), key=_sort_key))
        with self._lock:
            if generation > self._applied_generation:
                self._entries = snapshot
                self._applied_generation = generation
                self._loaded_mtime = directory_mtime
            else:
                logger.debug(
                    f"Discarding catalog load {generation}, load "
                    f"{self._applied_generation} is newer"
                )
                snapshot = self._entries

        self.gate.mark_local_loaded()
        return list(snapshot)

    def reload_if_changed(self) -> bool:
        """
        Reload when the recipe directory changed since the last applied load.

        Picks up writes made by other processes, such as a Celery worker
        running the refresh task. Returns True if a reload happened.
        """
        current = self.store.directory_mtime()
        with self._lock:
            unchanged = self._applied_generation > 0 and current == self._loaded_mtime
        if unchanged:
            return False

        logger.info("Recipe directory changed on disk, reloading catalog")
        self.load()
        return True

    async def start(self) -> SyncReport:
        """Startup: load the local catalog and run a sync cycle concurrently."""
        _, report = await asyncio.gather(
            sync_to_async(self.load, thread_sensitive=False)(),
            self.sync_engine.run(),
        )
        return report

    def start_in_background(self) -> threading.Thread:
        """Run start() on a daemon thread; the gate opens when it finishes."""
        if self._startup_thread is not None:
            return self._startup_thread

        def run_startup():
            try:
                async_to_sync(self.start)()
            except Exception as e:
                logger.exception(f"Catalog startup failed: {e}")

        thread = threading.Thread(target=run_startup, name="catalog-startup", daemon=True)
        self._startup_thread = thread
        thread.start()
        return thread

    def join_startup(self, timeout: Optional[float] = None) -> None:
        """Wait for a background startup to finish, if one was started."""
        if self._startup_thread is not None:
            self._startup_thread.join(timeout)

    async def refresh(
        self, completion: Optional[Callable[[SyncReport], None]] = None
    ) -> SyncReport:
        """Manual refresh; completion runs once, after the reload."""
        return await self.sync_engine.refresh(completion)

    async def check_server_health(self) -> HealthStatus:
        async with self.client_factory() as client:
            return await client.check_health()

    @property
    def ready(self) -> bool:
        return self.gate.ready

    @property
    def last_sync(self) -> Optional[SyncReport]:
        return self.sync_engine.last_report

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def recipes(self) -> List[CatalogEntry]:
        return list(self._entries)

    @property
    def user_recipes(self) -> List[CatalogEntry]:
        """Recipes the user owns: neither built-in nor first-party."""
        return [entry for entry in self._entries if entry.is_deletable]

    def get(self, entry_id: Union[uuid.UUID, str]) -> Optional[CatalogEntry]:
        try:
            wanted = entry_id if isinstance(entry_id, uuid.UUID) else uuid.UUID(str(entry_id))
        except ValueError:
            return None
        for entry in self._entries:
            if entry.id == wanted:
                return entry
        return None

    def recipes_for_category(self, name: str) -> List[CatalogEntry]:
        """
        Recipes in one category; "All" returns every recipe.

        Raises:
            EntryDecodeError: If name is not a known category
        """
        if name == ALL_CATEGORIES:
            return self.recipes
        category = Category.parse(name)
        return [entry for entry in self._entries if entry.category == category]

    def weekly_features(self) -> List[CatalogEntry]:
        return [entry for entry in self._entries if entry.is_weekly_feature]

    def community_highlights(self) -> List[CatalogEntry]:
        return [entry for entry in self._entries if entry.is_community_highlight]

    def display(
        self, entry: CatalogEntry, preferences: Optional[UserPreferences] = None
    ) -> CatalogEntry:
        """Entry as shown to the user: converted to imperial unless metric is preferred."""
        preferences = preferences or self.preferences
        if not preferences.to_imperial:
            return entry
        return entry.with_changes(
            ingredients=convert_lines(entry.ingredients, to_imperial=True),
            preparations=convert_lines(entry.preparations, to_imperial=True),
        )

    # ------------------------------------------------------------------
    # User edits
    # ------------------------------------------------------------------

    def create(
        self,
        name: str,
        category: Union[Category, str],
        description: str,
        ingredients: List[str],
        preparations: List[str],
    ) -> CatalogEntry:
        """Create and save a new recipe attributed to the current user."""
        entry = CatalogEntry.create(
            name=name,
            category=category,
            description=description,
            ingredients=ingredients,
            preparations=preparations,
            creator=self.preferences.username or UNKNOWN_CREATOR,
        )
        return self.save(entry)

    def save(
        self, entry: CatalogEntry, previous: Optional[CatalogEntry] = None
    ) -> CatalogEntry:
        """
        Write a new or edited recipe and reload.

        Edits keep the id; a rename leaves exactly one file behind. Feature
        flags never survive a user save.

        Raises:
            ReadOnlyRecipeError: If the edited recipe is built-in or first-party
            CatalogWriteError: If the file cannot be written (memory unchanged)
        """
        previous = previous or self.get(entry.id)
        entry = entry.with_changes(
            is_built_in=False, is_weekly_feature=False, is_community_highlight=False
        )

        if previous is None:
            if entry.creator in (FIRST_PARTY_CREATOR, UNKNOWN_CREATOR, ""):
                entry = entry.with_changes(
                    creator=self.preferences.username or UNKNOWN_CREATOR
                )
            self.store.write(entry, GENERIC_EXTENSION)
            logger.info(f"Created recipe {entry.name}")
        else:
            if not previous.is_deletable:
                raise ReadOnlyRecipeError(f"Brewpad recipes cannot be edited: {previous.name}")
            entry = entry.with_changes(creator=previous.creator)
            self.store.rename_on_edit(previous, entry, GENERIC_EXTENSION)
            logger.info(f"Saved recipe {entry.name}")

        self.load()
        return entry

    def delete(self, ref: EntryRef) -> DeleteOutcome:
        """Delete a recipe. Built-in and first-party recipes are refused."""
        entry = self._resolve(ref)
        if entry is None:
            return DeleteOutcome.NOT_FOUND

        outcome = self.store.delete(entry)
        if outcome == DeleteOutcome.DELETED:
            self.load()
        return outcome

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    def import_shared(self, payload: bytes, source: str = "") -> CatalogEntry:
        """
        Import somebody else's shared recipe as a local copy.

        The copy gets a fresh id and is attributed "Copied from <creator>".
        It is written in the generic format, so sync never prunes it and
        its feature flags are never trusted.

        Raises:
            EntryDecodeError: If the payload is not a valid recipe
            RecipeFileTooLargeError: If the payload exceeds the size cap
            CatalogWriteError: If the copy cannot be written
        """
        original = self.store.decode_payload(payload, trust_feature_flags=False, source=source)
        imported = CatalogEntry(
            id=uuid.uuid4(),
            name=original.name,
            category=original.category,
            description=original.description,
            ingredients=original.ingredients,
            preparations=original.preparations,
            is_built_in=False,
            creator=f"{COPIED_FROM_PREFIX}{original.creator}",
        )
        self.store.write(imported, GENERIC_EXTENSION)
        logger.info(f"Imported shared recipe {imported.name} ({imported.creator})")

        self.load()
        return imported

    def export_payload(self, ref: EntryRef) -> Optional[bytes]:
        """Shareable JSON for a recipe: a clean copy with flags cleared, creator kept."""
        entry = self._resolve(ref)
        if entry is None:
            return None
        clean = entry.with_changes(
            is_built_in=False, is_weekly_feature=False, is_community_highlight=False
        )
        return clean.to_json()

    def status(self) -> Dict[str, object]:
        """Readiness and catalog counters."""
        report = self.last_sync
        return {
            "readiness": self.gate.snapshot(),
            "recipes": len(self._entries),
            "user_recipes": len(self.user_recipes),
            "last_sync": report.to_dict() if report else None,
        }

    def _resolve(self, ref: EntryRef) -> Optional[CatalogEntry]:
        if isinstance(ref, CatalogEntry):
            return self.get(ref.id) or ref
        return self.get(ref)


# Singleton instance
_recipe_catalog: Optional[RecipeCatalog] = None
_recipe_catalog_lock = threading.Lock()


def get_catalog() -> RecipeCatalog:
    """
    Get singleton RecipeCatalog instance.

    The first call loads the local catalog and, when BREWPAD_SYNC_ON_STARTUP
    is enabled, starts the startup sync on a background thread; the
    readiness gate opens once that sync has been attempted. Every call
    reloads the catalog if the recipe directory changed on disk since the
    last load, so refreshes run by a Celery worker reach this process too.
    """
    global _recipe_catalog
    with _recipe_catalog_lock:
        if _recipe_catalog is None:
            catalog = RecipeCatalog()
            catalog.load()
            if getattr(settings, "BREWPAD_SYNC_ON_STARTUP", True):
                catalog.start_in_background()
            _recipe_catalog = catalog
            return catalog
        catalog = _recipe_catalog

    catalog.reload_if_changed()
    return catalog


def reset_catalog() -> None:
    """Reset singleton for testing."""
    global _recipe_catalog
    with _recipe_catalog_lock:
        catalog, _recipe_catalog = _recipe_catalog, None
    if catalog is not None:
        catalog.gate.cancel_timer()
        catalog.join_startup(timeout=5)
