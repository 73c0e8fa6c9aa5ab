"""
StayLedger - Django Settings (Infrastructure Only)
==================================================
Django hosts the persistence layer (hotel_store) and logging.
Domain rules live in core/ and engines/; Django does not dictate them.

Database selection is environment-driven; SQLite is the default for
development and tests.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("STAY_SECRET_KEY", "stay-dev-key-replace-before-deployment")

DEBUG = os.environ.get("STAY_DEBUG", "1") == "1"

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    # ── StayLedger Modules ────────────────────────────────
    "core.hotel_store",
]

MIDDLEWARE = []

# ── Database ──────────────────────────────────────────────────
_DB_ENGINE = os.environ.get("STAY_DB_ENGINE", "django.db.backends.sqlite3")

if _DB_ENGINE.endswith("sqlite3"):
    DATABASES = {
        "default": {
            "ENGINE": _DB_ENGINE,
            "NAME": os.environ.get("STAY_DB_NAME", str(BASE_DIR / "db.sqlite3")),
            # Take the write lock at BEGIN so concurrent processes queue on
            # the busy timeout instead of failing mid-unit.
            "OPTIONS": {
                "transaction_mode": "IMMEDIATE",
                "timeout": 20,
            },
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": _DB_ENGINE,
            "NAME": os.environ.get("STAY_DB_NAME", "stayledger"),
            "USER": os.environ.get("STAY_DB_USER", ""),
            "PASSWORD": os.environ.get("STAY_DB_PASSWORD", ""),
            "HOST": os.environ.get("STAY_DB_HOST", "localhost"),
            "PORT": os.environ.get("STAY_DB_PORT", "5432"),
        }
    }

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Business Rules ────────────────────────────────────────────
# Overrides for core.config.rules.StayRules. Keys must match field names.
STAY_RULES = {}

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "stay": {
            "handlers": ["console"],
            "level": os.environ.get("STAY_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
