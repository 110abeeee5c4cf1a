"""
Recipe catalog entry model.

A CatalogEntry is one recipe record. The JSON schema is shared by the local
recipe files, the remote recipe index and shared recipe files:

    {
        "id": "<uuid>",
        "name": "...",
        "category": "Coffee",
        "description": "...",
        "ingredients": ["..."],
        "preparations": ["..."],
        "isBuiltIn": false,             # default false
        "creator": "...",               # default "Unknown"
        "isWeeklyFeature": false,       # default false
        "isCommunityHighlight": false   # default false
    }

Missing or mistyped optional fields decode to their defaults; missing or
invalid required fields raise EntryDecodeError.
"""

import json
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from catalog.exceptions import EntryDecodeError

# Creator of first-party recipes (bundled or published by the server)
FIRST_PARTY_CREATOR = "Brewpad"

# Creator used when a payload does not declare one
UNKNOWN_CREATOR = "Unknown"

# Prefix marking a local copy of somebody else's recipe
COPIED_FROM_PREFIX = "Copied from "


class Category(str, Enum):
    """Closed set of drink categories."""

    COFFEE = "Coffee"
    TEA = "Tea"
    GREEN_TEA = "Green Tea"
    MILK = "Milk"
    CHOCOLATE = "Chocolate"
    ALCOHOL = "Alcohol"

    @classmethod
    def parse(cls, value: Any) -> "Category":
        """
        Resolve a category from its display value.

        Accepts the display value ("Green Tea") as well as the spelling
        without spaces ("GreenTea"), case-insensitively.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise EntryDecodeError(f"Invalid category: {value!r}")

        wanted = value.replace(" ", "").replace("_", "").lower()
        for category in cls:
            if category.value.replace(" ", "").lower() == wanted:
                return category
        raise EntryDecodeError(f"Unknown category: {value!r}")


@dataclass(frozen=True)
class CatalogEntry:
    """
    Immutable recipe record.

    Attributes:
        id: Unique identifier, assigned once at creation and kept across edits
        name: Display name, also the base of the storage filename
        category: Drink category
        description: Free text
        ingredients: Ordered ingredient lines (may contain unit expressions)
        preparations: Ordered preparation steps (may contain unit expressions)
        is_built_in: True only for recipes packaged with the application
        creator: Attribution; "Brewpad" marks first-party recipes
        is_weekly_feature: Surfaced as a weekly feature (remote sync only)
        is_community_highlight: Surfaced as a community highlight (remote sync only)
    """

    id: uuid.UUID
    name: str
    category: Category
    description: str
    ingredients: Tuple[str, ...] = field(default_factory=tuple)
    preparations: Tuple[str, ...] = field(default_factory=tuple)
    is_built_in: bool = False
    creator: str = UNKNOWN_CREATOR
    is_weekly_feature: bool = False
    is_community_highlight: bool = False

    def __post_init__(self):
        # Lists are accepted for convenience but stored as tuples.
        object.__setattr__(self, "ingredients", tuple(self.ingredients))
        object.__setattr__(self, "preparations", tuple(self.preparations))

    @classmethod
    def create(
        cls,
        name: str,
        category: Union[Category, str],
        description: str,
        ingredients: Iterable[str],
        preparations: Iterable[str],
        creator: Optional[str] = None,
    ) -> "CatalogEntry":
        """Create a brand new user recipe with a freshly generated id."""
        return cls(
            id=uuid.uuid4(),
            name=name,
            category=Category.parse(category),
            description=description,
            ingredients=tuple(ingredients),
            preparations=tuple(preparations),
            creator=creator or UNKNOWN_CREATOR,
        )

    @property
    def is_first_party(self) -> bool:
        return self.creator == FIRST_PARTY_CREATOR

    @property
    def is_copy(self) -> bool:
        return self.creator.startswith(COPIED_FROM_PREFIX)

    @property
    def is_deletable(self) -> bool:
        """Built-in and first-party recipes can never be deleted by the user."""
        return not self.is_built_in and not self.is_first_party

    @property
    def is_featured(self) -> bool:
        return self.is_weekly_feature or self.is_community_highlight

    def with_changes(self, **changes: Any) -> "CatalogEntry":
        """Return a copy with the given fields replaced. The id never changes."""
        if "id" in changes and changes["id"] != self.id:
            raise ValueError("CatalogEntry.id is immutable")
        return replace(self, **changes)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Convert entry to its JSON schema representation."""
        return {
            "id": str(self.id).upper(),
            "name": self.name,
            "category": self.category.value,
            "description": self.description,
            "ingredients": list(self.ingredients),
            "preparations": list(self.preparations),
            "isBuiltIn": self.is_built_in,
            "creator": self.creator,
            "isWeeklyFeature": self.is_weekly_feature,
            "isCommunityHighlight": self.is_community_highlight,
        }

    def to_json(self) -> bytes:
        """Encode entry as pretty-printed UTF-8 JSON."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], trust_feature_flags: bool = True
    ) -> "CatalogEntry":
        """
        Build an entry from its JSON schema representation.

        Args:
            data: Decoded JSON object
            trust_feature_flags: When False, isWeeklyFeature and
                isCommunityHighlight are forced to False whatever the
                payload says

        Raises:
            EntryDecodeError: If a required field is missing or invalid
        """
        if not isinstance(data, dict):
            raise EntryDecodeError("Recipe payload must be a JSON object")

        try:
            entry_id = uuid.UUID(str(data["id"]))
        except KeyError:
            raise EntryDecodeError("Missing required field: id")
        except ValueError:
            raise EntryDecodeError(f"Invalid id: {data.get('id')!r}")

        name = _required_str(data, "name")
        description = _required_str(data, "description")
        if "category" not in data:
            raise EntryDecodeError("Missing required field: category")
        category = Category.parse(data["category"])
        ingredients = _required_lines(data, "ingredients")
        preparations = _required_lines(data, "preparations")

        creator = data.get("creator")
        if not isinstance(creator, str):
            creator = UNKNOWN_CREATOR

        is_weekly_feature = _optional_bool(data, "isWeeklyFeature")
        is_community_highlight = _optional_bool(data, "isCommunityHighlight")
        if not trust_feature_flags:
            is_weekly_feature = False
            is_community_highlight = False

        return cls(
            id=entry_id,
            name=name,
            category=category,
            description=description,
            ingredients=ingredients,
            preparations=preparations,
            is_built_in=_optional_bool(data, "isBuiltIn"),
            creator=creator,
            is_weekly_feature=is_weekly_feature,
            is_community_highlight=is_community_highlight,
        )

    @classmethod
    def from_json(
        cls, raw: Union[bytes, str], trust_feature_flags: bool = True
    ) -> "CatalogEntry":
        """Decode an entry from raw JSON bytes or text."""
        try:
            data = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            raise EntryDecodeError(f"Invalid JSON: {e}")
        return cls.from_dict(data, trust_feature_flags=trust_feature_flags)


def _required_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        raise EntryDecodeError(f"Missing required field: {key}")
    if not isinstance(value, str):
        raise EntryDecodeError(f"Field {key} must be a string")
    return value


def _required_lines(data: Dict[str, Any], key: str) -> Tuple[str, ...]:
    value = data.get(key)
    if value is None:
        raise EntryDecodeError(f"Missing required field: {key}")
    if not isinstance(value, list) or not all(isinstance(line, str) for line in value):
        raise EntryDecodeError(f"Field {key} must be a list of strings")
    return tuple(value)


def _optional_bool(data: Dict[str, Any], key: str) -> bool:
    value = data.get(key, False)
    return value if isinstance(value, bool) else False
