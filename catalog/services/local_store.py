"""
Local Catalog Store.

Authoritative mapping between CatalogEntry records and files in the local
recipe directory, plus the read-only directory of packaged built-in recipes.

File formats:
- Generic format (.json): user-created and imported recipes. Feature flags
  stored in these files are ignored on load, so a hand-edited file cannot
  promote itself to a featured recipe.
- Remote-sync format (.brewpadrecipe): recipes downloaded from the remote
  index. Feature flags are trusted on load.

Filename convention:
    <lowercased_name_with_underscores>_<last 8 hex of id>.<ext>

The name is part of the filename, so renaming an entry means writing a new
file and removing the old one.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from django.conf import settings

from catalog.entries import FIRST_PARTY_CREATOR, CatalogEntry
from catalog.exceptions import (
    CatalogWriteError,
    EntryDecodeError,
    RecipeFileTooLargeError,
)

logger = logging.getLogger(__name__)


GENERIC_EXTENSION = ".json"
REMOTE_EXTENSION = ".brewpadrecipe"
ACCEPTED_EXTENSIONS = (GENERIC_EXTENSION, REMOTE_EXTENSION)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB

_TEMP_SUFFIX = ".partial"


class DeleteOutcome(str, Enum):
    """Result of a delete request."""

    DELETED = "deleted"
    NOT_FOUND = "not_found"
    REFUSED = "refused"


@dataclass
class LoadResult:
    """
    Result of loading the catalog from disk.

    Attributes:
        built_in: Packaged recipes, always read-only first-party entries
        local: Recipes decoded from the local directory
        skipped: Paths that could not be loaded, with the reason
    """

    built_in: List[CatalogEntry] = field(default_factory=list)
    local: List[CatalogEntry] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)

    def __iter__(self):
        # Allows `built_in, local = store.load_all()`
        return iter((self.built_in, self.local))


def generate_filename(entry: CatalogEntry, extension: str = GENERIC_EXTENSION) -> str:
    """
    Build the storage filename for an entry.

    Example:
        >>> generate_filename(entry_named_earl_grey_tea, ".json")
        'earl_grey_tea_3F4A5678.json'
    """
    if not extension.startswith("."):
        extension = f".{extension}"
    stem = entry.name.lower().replace(" ", "_")
    suffix = str(entry.id).upper()[-8:]
    return f"{stem}_{suffix}{extension}"


def trusts_feature_flags(path: Path) -> bool:
    """Only files in the remote-sync format may carry feature flags."""
    return path.suffix == REMOTE_EXTENSION


class LocalCatalogStore:
    """
    Reads and writes recipe files in the local recipe directory.

    Every per-file failure while loading is logged and skipped; a single
    corrupt or oversized file never fails the whole load.
    """

    def __init__(
        self,
        recipes_dir: Optional[Path] = None,
        bundled_dir: Optional[Path] = None,
        max_file_size: Optional[int] = None,
    ):
        """
        Initialize the store.

        Args:
            recipes_dir: Local recipe directory (default from settings)
            bundled_dir: Directory of packaged built-in recipes (default from settings)
            max_file_size: Size cap in bytes for any recipe file (default from settings)
        """
        self.recipes_dir = Path(
            recipes_dir or getattr(settings, "BREWPAD_RECIPES_DIR")
        )
        self.bundled_dir = Path(
            bundled_dir or getattr(settings, "BREWPAD_BUNDLED_DIR")
        )
        self.max_file_size = max_file_size or getattr(
            settings, "BREWPAD_MAX_RECIPE_FILE_SIZE", DEFAULT_MAX_FILE_SIZE
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_all(self) -> LoadResult:
        """Load built-in and local recipes."""
        result = LoadResult()
        result.built_in = self._load_built_in(result.skipped)
        result.local = self._load_local(result.skipped)

        logger.info(
            f"Loaded {len(result.built_in)} built-in and {len(result.local)} local recipes "
            f"({len(result.skipped)} skipped)"
        )
        return result

    def _load_built_in(self, skipped: List[Tuple[str, str]]) -> List[CatalogEntry]:
        entries = []
        if not self.bundled_dir.is_dir():
            logger.warning(f"Bundled recipe directory missing: {self.bundled_dir}")
            return entries

        for path in sorted(self.bundled_dir.glob(f"*{GENERIC_EXTENSION}")):
            try:
                entry = self.read_file(path, trust_feature_flags=False)
            except (OSError, EntryDecodeError, RecipeFileTooLargeError) as e:
                logger.warning(f"Skipping bundled recipe {path.name}: {e}")
                skipped.append((str(path), str(e)))
                continue

            # Packaged content never decides these fields.
            entries.append(
                entry.with_changes(
                    is_built_in=True,
                    creator=FIRST_PARTY_CREATOR,
                    is_weekly_feature=False,
                    is_community_highlight=False,
                )
            )
        return entries

    def _load_local(self, skipped: List[Tuple[str, str]]) -> List[CatalogEntry]:
        entries = []
        for path in self.list_files():
            try:
                entry = self.read_file(path, trust_feature_flags=trusts_feature_flags(path))
            except (OSError, EntryDecodeError, RecipeFileTooLargeError) as e:
                logger.warning(f"Skipping recipe file {path.name}: {e}")
                skipped.append((str(path), str(e)))
                continue

            if entry.is_built_in:
                # Only packaged recipes are built-in.
                entry = entry.with_changes(is_built_in=False)
            entries.append(entry)
        return entries

    def list_files(self, extensions: Sequence[str] = ACCEPTED_EXTENSIONS) -> List[Path]:
        """List recipe files in the local directory with one of the given extensions."""
        if not self.recipes_dir.is_dir():
            return []
        return sorted(
            path
            for path in self.recipes_dir.iterdir()
            if path.is_file() and path.suffix in extensions
        )

    def directory_mtime(self) -> Optional[int]:
        """
        Modification time of the local directory in nanoseconds, or None if missing.

        Adding, replacing or removing a recipe file changes it, whichever
        process did the write.
        """
        try:
            return self.recipes_dir.stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def read_file(self, path: Path, trust_feature_flags: bool = True) -> CatalogEntry:
        """
        Read and decode a single recipe file.

        Raises:
            RecipeFileTooLargeError: If the file exceeds the size cap
            EntryDecodeError: If the file is not a valid recipe
            OSError: If the file cannot be read
        """
        size = path.stat().st_size
        if size > self.max_file_size:
            raise RecipeFileTooLargeError(size, self.max_file_size, source=path.name)
        return CatalogEntry.from_json(
            path.read_bytes(), trust_feature_flags=trust_feature_flags
        )

    def decode_payload(
        self, payload: bytes, trust_feature_flags: bool = True, source: str = ""
    ) -> CatalogEntry:
        """Decode a recipe payload that did not come from the local directory."""
        if len(payload) > self.max_file_size:
            raise RecipeFileTooLargeError(len(payload), self.max_file_size, source=source)
        return CatalogEntry.from_json(payload, trust_feature_flags=trust_feature_flags)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def path_for(self, entry: CatalogEntry, extension: str = GENERIC_EXTENSION) -> Path:
        return self.recipes_dir / generate_filename(entry, extension)

    def write(self, entry: CatalogEntry, extension: str = GENERIC_EXTENSION) -> Path:
        """
        Serialize entry and write (or overwrite) its file.

        Raises:
            CatalogWriteError: If the entry cannot be encoded or written
        """
        return self.write_named(generate_filename(entry, extension), entry)

    def write_named(self, filename: str, entry: CatalogEntry) -> Path:
        """
        Write entry under an explicit filename in the local directory.

        Used by the sync engine, which stores downloads under the name the
        remote index lists them with.

        Raises:
            CatalogWriteError: If the entry cannot be encoded or written
        """
        if Path(filename).name != filename:
            raise CatalogWriteError(f"Refusing to write outside the recipe directory: {filename}")

        try:
            data = entry.to_json()
        except (TypeError, ValueError) as e:
            raise CatalogWriteError(f"Failed to encode recipe {entry.name}: {e}") from e

        if len(data) > self.max_file_size:
            raise CatalogWriteError(
                f"Recipe {entry.name} encodes to {len(data)} bytes, over the {self.max_file_size} byte limit"
            )

        destination = self.recipes_dir / filename
        try:
            self.recipes_dir.mkdir(parents=True, exist_ok=True)
            self._atomic_write(destination, data)
        except OSError as e:
            raise CatalogWriteError(f"Failed to save recipe {entry.name}: {e}") from e

        logger.debug(f"Wrote recipe file {destination}")
        return destination

    def _atomic_write(self, destination: Path, data: bytes) -> None:
        # Readers never see a half-written recipe file.
        fd, temp_name = tempfile.mkstemp(
            dir=str(destination.parent), prefix=".", suffix=_TEMP_SUFFIX
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(temp_name, destination)
        except OSError:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise

    # ------------------------------------------------------------------
    # Deleting
    # ------------------------------------------------------------------

    def delete(self, entry: CatalogEntry) -> DeleteOutcome:
        """
        Delete the file(s) backing an entry.

        Built-in and first-party entries are refused without touching the
        filesystem. Otherwise both extension variants of the entry's
        filename are removed if present.
        """
        if not entry.is_deletable:
            logger.info(f"Refusing to delete Brewpad recipe: {entry.name}")
            return DeleteOutcome.REFUSED

        removed = self._remove_variants(entry)
        if not removed:
            # Downloads keep the filename the remote index lists them under.
            removed = [
                path for path in self.find_by_id(entry) if self.delete_file(path)
            ]
        if not removed:
            logger.warning(f"No recipe file found to delete for {entry.name}")
            return DeleteOutcome.NOT_FOUND
        return DeleteOutcome.DELETED

    def delete_file(self, path: Path) -> bool:
        """Remove a single file from the local directory. Returns True if removed."""
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Failed to delete {path.name}: {e}")
            return False
        logger.debug(f"Deleted recipe file {path}")
        return True

    def find_by_id(self, entry: CatalogEntry) -> List[Path]:
        """Scan the local directory for files whose payload carries entry's id."""
        matches = []
        for path in self.list_files():
            try:
                if self.read_file(path).id == entry.id:
                    matches.append(path)
            except (OSError, EntryDecodeError, RecipeFileTooLargeError):
                continue
        return matches

    def _remove_variants(self, entry: CatalogEntry, keep: Optional[Path] = None) -> List[Path]:
        removed = []
        for extension in ACCEPTED_EXTENSIONS:
            path = self.path_for(entry, extension)
            if keep is not None and path == keep:
                continue
            if path.exists() and self.delete_file(path):
                removed.append(path)
        return removed

    def rename_on_edit(
        self,
        old_entry: CatalogEntry,
        new_entry: CatalogEntry,
        extension: str = GENERIC_EXTENSION,
    ) -> Path:
        """
        Persist an edited entry.

        The new file is written first; the old entry's files are removed only
        after the write succeeded, so a failed write never loses the recipe.
        Afterwards exactly one file backs the entry.

        Raises:
            CatalogWriteError: If the new file cannot be written
        """
        if old_entry.id != new_entry.id:
            raise ValueError("An edit must keep the entry id")

        written = self.write(new_entry, extension)
        stale = self._remove_variants(old_entry, keep=written)
        if old_entry.name != new_entry.name:
            stale += self._remove_variants(new_entry, keep=written)
        # A synced copy stored under its listing name also backs this id.
        stale += [
            path
            for path in self.find_by_id(new_entry)
            if path != written and self.delete_file(path)
        ]
        if stale:
            logger.info(
                f"Removed {len(stale)} stale file(s) after saving {new_entry.name}"
            )
        return written
