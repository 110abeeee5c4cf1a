"""
Development settings for the Brewpad recipe catalog.

Uses local SQLite and relaxed security settings for development.
"""

from .base import *

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = True

ALLOWED_HOSTS = ["localhost", "127.0.0.1"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

LOGGING["loggers"]["catalog"]["level"] = "DEBUG"
