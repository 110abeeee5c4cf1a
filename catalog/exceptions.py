"""
Exceptions raised by the recipe catalog.

Per-item failures during a sync are reported through result objects, not
exceptions; these types cover decoding and writing, where the caller has to
decide what to do.
"""


class CatalogError(Exception):
    """Base class for catalog errors."""

    pass


class EntryDecodeError(CatalogError):
    """Exception raised when a recipe payload cannot be decoded."""

    pass


class RecipeFileTooLargeError(CatalogError):
    """Exception raised when a recipe file exceeds the size cap."""

    def __init__(self, size: int, limit: int, source: str = ""):
        self.size = size
        self.limit = limit
        self.source = source
        where = f" ({source})" if source else ""
        super().__init__(f"Recipe file too large{where}: {size} bytes exceeds {limit}")


class CatalogWriteError(CatalogError):
    """Exception raised when an entry cannot be encoded or written to disk."""

    pass


class ReadOnlyRecipeError(CatalogError):
    """Exception raised when editing a built-in or first-party recipe."""

    pass
