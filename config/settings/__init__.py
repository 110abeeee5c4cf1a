"""
Settings loader for the Brewpad recipe catalog.

manage.py, the WSGI application and the Celery worker all start from
``config.settings``. DJANGO_ENV chooses the module that is actually loaded:

- production: Redis broker, hardened security headers
- test: temporary recipe directory, eager Celery, no startup sync
- anything else: development
"""

import os

DJANGO_ENV = os.getenv("DJANGO_ENV", "development").strip().lower()

if DJANGO_ENV == "production":
    from .production import *
elif DJANGO_ENV == "test":
    from .test import *
else:
    from .development import *
