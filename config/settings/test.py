"""
Test settings – in-memory SQLite, short store deadlines, no external services.

The document store client is created lazily, so nothing connects to MongoDB
unless a test exercises the real handle; tests inject fakes instead.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

from .base import *  # noqa: E402, F401, F403

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

MONGO_URI = "mongodb://localhost:27017"
MONGO_DATABASE = "vnf_config_test"
STORE_TIMEOUT_SECONDS = 0.5
MIRROR_SEARCH_TIMEOUT_SECONDS = 0.5
UPLOAD_MAX_BYTES = 1024 * 1024

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

LOGGING["root"]["level"] = "WARNING"  # noqa: F405
