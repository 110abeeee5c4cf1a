"""
User preferences passed explicitly into the catalog engines.

Preferences are read once from Django settings and handed to the catalog,
the readiness timer and the unit conversion helpers as a value, so nothing
reads shared mutable state behind the caller's back.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from django.conf import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserPreferences:
    """
    Immutable snapshot of the user's preferences.

    Attributes:
        username: Name used as creator of new recipes
        use_metric_units: Show recipes in metric units (imperial otherwise)
        birthdate: Used to lengthen the splash on the user's birthday
    """

    username: Optional[str] = None
    use_metric_units: bool = True
    birthdate: Optional[date] = None

    @classmethod
    def from_settings(cls) -> "UserPreferences":
        """Build preferences from the BREWPAD_* Django settings."""
        birthdate = getattr(settings, "BREWPAD_BIRTHDATE", None)
        if isinstance(birthdate, str):
            try:
                birthdate = date.fromisoformat(birthdate)
            except ValueError:
                logger.warning(f"Ignoring invalid BREWPAD_BIRTHDATE: {birthdate!r}")
                birthdate = None

        return cls(
            username=getattr(settings, "BREWPAD_USERNAME", None),
            use_metric_units=getattr(settings, "BREWPAD_USE_METRIC_UNITS", True),
            birthdate=birthdate,
        )

    @property
    def to_imperial(self) -> bool:
        return not self.use_metric_units


def is_birthday(birthdate: Optional[date], today: Optional[date] = None) -> bool:
    """True when today's month and day match the birthdate, whatever the year."""
    if birthdate is None:
        return False
    today = today or date.today()
    return (today.month, today.day) == (birthdate.month, birthdate.day)
