from decimal import Decimal

from .base import *  # noqa
from .base import BASE_DIR
from .base import REST_FRAMEWORK as BASE_REST_FRAMEWORK

# Test settings: force SQLite so the open-order partial index is available in CI
DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "test_db.sqlite3",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "freshcart-tests",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Locmem backend collects messages in django.core.mail.outbox
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

SUPPORT_EMAIL = "support@freshcart.test"
SETTLEMENT_ACCOUNTS = [
    {
        "bank_name": "First Test Bank",
        "account_name": "Freshcart Ltd",
        "account_number": "0123456789",
        "sort_code": "011",
    },
]
DELIVERY_ZONE_SURCHARGES = {"abuja": Decimal("500")}

# Relax throttling for tests to reduce flakiness
REST_FRAMEWORK = {**BASE_REST_FRAMEWORK}
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    **BASE_REST_FRAMEWORK.get("DEFAULT_THROTTLE_RATES", {}),
    "user": "10000/min",
    "anon": "10000/min",
    "token": "1000/min",
    "identity": "1000/min",
    "cart": "1000/min",
    "cart_write": "1000/min",
    "orders": "1000/min",
    "orders_write": "1000/min",
}
