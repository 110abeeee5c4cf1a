"""
Test settings for the Brewpad recipe catalog.

Uses in-memory SQLite and eager Celery for fast test execution.
"""

from .base import *

# Test mode
DEBUG = False

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Test Celery - run tasks synchronously
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

# Test logging - minimal output
LOGGING["loggers"]["django"]["level"] = "WARNING"
LOGGING["loggers"]["catalog"]["level"] = "WARNING"

# Disable Sentry in tests
SENTRY_DSN = ""

# Test catalog settings - fail fast, never touch the real server
BREWPAD_SERVER_BASE_URL = "https://recipes.test/recipes/"
BREWPAD_HEALTH_URL = "https://recipes.test"
BREWPAD_REQUEST_TIMEOUT = 5
BREWPAD_MAX_RETRIES = 0
BREWPAD_SPLASH_SECONDS = 0.05
BREWPAD_BIRTHDAY_SPLASH_SECONDS = 0.1
BREWPAD_SYNC_ON_STARTUP = False
BREWPAD_USERNAME = "tester"
BREWPAD_USE_METRIC_UNITS = True
BREWPAD_BIRTHDATE = None

# In-memory broker so nothing reaches Redis
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"
