from decimal import Decimal
from pathlib import Path

from decouple import Csv, config

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Core security
SECRET_KEY = config("SECRET_KEY", default="dev-secret-key-change-me")

# Hosts and CORS
ALLOWED_HOSTS = config("ALLOWED_HOSTS", default="localhost,127.0.0.1", cast=Csv())
CORS_ALLOW_ALL_ORIGINS = config("CORS_ALLOW_ALL_ORIGINS", default=True, cast=bool)
CORS_ALLOWED_ORIGINS = config("CORS_ALLOWED_ORIGINS", default="", cast=Csv())
CORS_ALLOW_HEADERS = (
    "accept",
    "authorization",
    "content-type",
    "origin",
    "x-csrftoken",
    "x-requested-with",
    "x-session-id",
)
CSRF_TRUSTED_ORIGINS = config("CSRF_TRUSTED_ORIGINS", default="", cast=Csv())

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third-party
    "rest_framework",
    "drf_spectacular",
    "corsheaders",
    # Local
    "catalog",
    "identity",
    "cart",
    "orders",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"
ASGI_APPLICATION = "config.asgi.application"

# Database
DB_ENGINE = config("DATABASE_ENGINE", default="sqlite")
if DB_ENGINE.lower() == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": config("DATABASE_NAME", default="postgres"),
            "USER": config("DATABASE_USER", default="postgres"),
            "PASSWORD": config("DATABASE_PASSWORD", default=""),
            "HOST": config("DATABASE_HOST", default="localhost"),
            "PORT": config("DATABASE_PORT", default="5432"),
        }
    }
else:
    # The open-order partial unique index needs a backend with conditional
    # indexes (PostgreSQL or SQLite). MySQL is not supported.
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# Static files
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# Django 5 storages for whitenoise
STORAGES = {
    "default": {
        "BACKEND": "django.core.files.storage.FileSystemStorage",
    },
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage",
    },
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Cache: local memory by default; dev/prod switch to Redis when REDIS_URL is set.
# The cart resilience mirror lives here.
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "freshcart-default",
    }
}

# Email (dev defaults to console backend; override via env for SMTP)
EMAIL_BACKEND = config(
    "EMAIL_BACKEND",
    default="django.core.mail.backends.console.EmailBackend",
)
EMAIL_HOST = config("EMAIL_HOST", default="")
EMAIL_PORT = config("EMAIL_PORT", default=587, cast=int)
EMAIL_HOST_USER = config("EMAIL_HOST_USER", default="")
EMAIL_HOST_PASSWORD = config("EMAIL_HOST_PASSWORD", default="")
EMAIL_USE_TLS = config("EMAIL_USE_TLS", default=True, cast=bool)
EMAIL_USE_SSL = config("EMAIL_USE_SSL", default=False, cast=bool)
DEFAULT_FROM_EMAIL = config("DEFAULT_FROM_EMAIL", default="Freshcart <noreply@example.com>")
FRONTEND_URL = config("FRONTEND_URL", default="")

# Identity
MERGE_GUARD_TIMEOUT_SECONDS = config("MERGE_GUARD_TIMEOUT_SECONDS", default=60, cast=int)

# Cart
LOCAL_CART_CACHE_ALIAS = config("LOCAL_CART_CACHE_ALIAS", default="default")
LOCAL_CART_MAX_AGE_DAYS = config("LOCAL_CART_MAX_AGE_DAYS", default=30, cast=int)

# Checkout and orders
ORDER_TTL_HOURS = config("ORDER_TTL_HOURS", default=24, cast=int)
INVOICE_DUE_DAYS = config("INVOICE_DUE_DAYS", default=7, cast=int)
RECENT_ORDER_WINDOW_MINUTES = config("RECENT_ORDER_WINDOW_MINUTES", default=5, cast=int)
SETTLEMENT_CURRENCY = config("SETTLEMENT_CURRENCY", default="NGN")

# Delivery: (max_kg, fee) pairs; weights above the last tier pay the last fee
DELIVERY_WEIGHT_TIERS = [
    (Decimal("1"), Decimal("1200")),
    (Decimal("5"), Decimal("1500")),
    (Decimal("10"), Decimal("3500")),
    (Decimal("25"), Decimal("3500")),
    (Decimal("50"), Decimal("4500")),
]
# "lagos:0,abuja:1500" -> {"lagos": Decimal("0"), "abuja": Decimal("1500")}
DELIVERY_ZONE_SURCHARGES = {
    zone.strip().lower(): Decimal(fee.strip())
    for zone, fee in (
        pair.split(":", 1) for pair in config("DELIVERY_ZONE_SURCHARGES", default="", cast=Csv()) if ":" in pair
    )
}

# Bank-transfer settlement details shown on invoices
SETTLEMENT_ACCOUNTS = [
    {
        "bank_name": config(f"{prefix}_NAME", default=""),
        "account_name": config(f"{prefix}_ACCOUNT_NAME", default=""),
        "account_number": config(f"{prefix}_ACCOUNT_NUMBER", default=""),
        "sort_code": config(f"{prefix}_SORT_CODE", default=""),
    }
    for prefix in ("BANK_ONE", "BANK_TWO")
]
COMPANY_NAME = config("COMPANY_NAME", default="Freshcart")
COMPANY_ADDRESS = config("COMPANY_ADDRESS", default="")
COMPANY_PHONE = config("COMPANY_PHONE", default="")
SUPPORT_EMAIL = config("SUPPORT_EMAIL", default="support@example.com")

# DRF + Spectacular
REST_FRAMEWORK = {
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "common.api.api_exception_handler",
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_THROTTLE_CLASSES": [
        "rest_framework.throttling.ScopedRateThrottle",
        "rest_framework.throttling.UserRateThrottle",
        "rest_framework.throttling.AnonRateThrottle",
    ],
    "DEFAULT_THROTTLE_RATES": {
        # Global throttles
        "user": "100/min",
        "anon": "20/min",
        # Scoped throttles
        "token": "10/min",
        "identity": "60/min",
        "cart": "120/min",
        "cart_write": "60/min",
        "orders": "60/min",
        "orders_write": "30/min",
    },
}

SIMPLE_JWT = {
    "AUTH_HEADER_TYPES": ("Bearer",),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Freshcart API",
    "DESCRIPTION": "Cart ownership, guest cart merge and bank-transfer checkout",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}
