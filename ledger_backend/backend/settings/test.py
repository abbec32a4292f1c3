"""
PATH: backend/settings/test.py

TEST SETTINGS
- In-memory SQLite (pytest-django creates the test database)
- Fast password hashing
- Short closing-check timeout
"""

from __future__ import annotations

from .base import *  # noqa: F403

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

LEDGER_CHECK_TIMEOUT_SECONDS = 2.0
LEDGER_CHECK_SOURCES = {}

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_CLASSES": (),
}
