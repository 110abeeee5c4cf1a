"""
Django base settings for the Brewpad recipe catalog.

This module contains settings common to all environments.
For more information on this file, see
https://docs.djangoproject.com/en/4.2/topics/settings/
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv(
    "SECRET_KEY",
    "django-insecure-brewpad-dev-key-change-in-production"
)

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv("DEBUG", "True") == "True"

ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")


# Application definition

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    # Third-party apps
    "rest_framework",
    "drf_spectacular",
    # Local apps
    "catalog",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"


# Database
# The catalog lives on disk as recipe files; the database only backs the
# contrib apps DRF depends on. Configured per environment.

DATABASES = {
    # Override in environment-specific settings
}


# Internationalization
# https://docs.djangoproject.com/en/4.2/topics/i18n/

LANGUAGE_CODE = "en-us"

TIME_ZONE = "UTC"

USE_I18N = True

USE_TZ = True


STATIC_URL = "static/"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# Celery Configuration
# https://docs.celeryproject.org/en/stable/django/first-steps-with-django.html

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/1")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 10 * 60  # a full catalog refresh is small


# Django REST Framework Configuration
# https://www.django-rest-framework.org/
# Personal catalog served on localhost: no authentication layer.

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "UNAUTHENTICATED_USER": None,
}


# DRF Spectacular (OpenAPI/Swagger) Configuration
# https://drf-spectacular.readthedocs.io/

SPECTACULAR_SETTINGS = {
    "TITLE": "Brewpad Recipe Catalog API",
    "DESCRIPTION": "Local recipe catalog with remote sync and unit conversion",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}


# Logging Configuration
# https://docs.djangoproject.com/en/4.2/topics/logging/

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": os.getenv("LOG_LEVEL", "INFO"),
        },
        "catalog": {
            "handlers": ["console"],
            "level": os.getenv("LOG_LEVEL", "INFO"),
        },
    },
}


# Sentry Configuration
# https://docs.sentry.io/platforms/python/guides/django/

SENTRY_DSN = os.getenv("SENTRY_DSN", "")
SENTRY_ENVIRONMENT = os.getenv("SENTRY_ENVIRONMENT", "development")
SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.0"))

if SENTRY_DSN:
    import sentry_sdk

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        environment=SENTRY_ENVIRONMENT,
    )


# Recipe Catalog Configuration

# Directory holding user-created, imported and server-downloaded recipe files
BREWPAD_RECIPES_DIR = Path(
    os.getenv("BREWPAD_RECIPES_DIR", str(BASE_DIR / "var" / "Recipes"))
)

# Packaged built-in recipes (read-only)
BREWPAD_BUNDLED_DIR = BASE_DIR / "catalog" / "bundled"

# Remote recipe index
BREWPAD_SERVER_BASE_URL = os.getenv(
    "BREWPAD_SERVER_BASE_URL", "https://bprs.mirreravencd.com/recipes/"
)
BREWPAD_HEALTH_URL = os.getenv("BREWPAD_HEALTH_URL", "https://bprs.mirreravencd.com")

# Default timeout for HTTP requests (seconds)
BREWPAD_REQUEST_TIMEOUT = int(os.getenv("BREWPAD_REQUEST_TIMEOUT", "30"))

# Extra attempts after the first one for transient network failures
BREWPAD_MAX_RETRIES = int(os.getenv("BREWPAD_MAX_RETRIES", "2"))

# Maximum allowed size for any recipe file, local or downloaded (bytes)
BREWPAD_MAX_RECIPE_FILE_SIZE = int(
    os.getenv("BREWPAD_MAX_RECIPE_FILE_SIZE", str(10 * 1024 * 1024))
)

# Minimum time before the catalog reports ready (seconds)
BREWPAD_SPLASH_SECONDS = float(os.getenv("BREWPAD_SPLASH_SECONDS", "2"))
BREWPAD_BIRTHDAY_SPLASH_SECONDS = float(os.getenv("BREWPAD_BIRTHDAY_SPLASH_SECONDS", "3"))

# Run the startup sync in the background when the catalog is first used
BREWPAD_SYNC_ON_STARTUP = os.getenv("BREWPAD_SYNC_ON_STARTUP", "True") == "True"

# User preferences
BREWPAD_USERNAME = os.getenv("BREWPAD_USERNAME") or None
BREWPAD_USE_METRIC_UNITS = os.getenv("BREWPAD_USE_METRIC_UNITS", "True") == "True"
BREWPAD_BIRTHDATE = os.getenv("BREWPAD_BIRTHDATE") or None
