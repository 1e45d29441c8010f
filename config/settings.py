"""
Django settings for the ponderado project.

Los valores sensibles se leen del entorno (.env vía python-dotenv).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def _env_bool(name: str, default: bool = False) -> bool:
    val = str(os.environ.get(name, "1" if default else "0")).strip().lower()
    return val in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except (TypeError, ValueError):
        return int(default)


def _env_list(name: str, default: str = "") -> list[str]:
    raw = os.environ.get(name, default) or ""
    return [x.strip() for x in raw.split(",") if x.strip()]


SECRET_KEY = os.environ.get("SECRET_KEY", "dev-only-insecure-key-change-me")
DEBUG = _env_bool("DEBUG", default=True)
ALLOWED_HOSTS = _env_list("ALLOWED_HOSTS", "localhost,127.0.0.1")
CSRF_TRUSTED_ORIGINS = _env_list("CSRF_TRUSTED_ORIGINS")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "axes",
    "academico",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "academico.middleware.RequestContextMiddleware",
    # axes debe ir al final
    "axes.middleware.AxesMiddleware",
]

AUTHENTICATION_BACKENDS = [
    "axes.backends.AxesStandaloneBackend",
    "django.contrib.auth.backends.ModelBackend",
]

AXES_FAILURE_LIMIT = _env_int("AXES_FAILURE_LIMIT", 5)
AXES_COOLOFF_TIME = _env_int("AXES_COOLOFF_HOURS", 1)
AXES_RESET_ON_SUCCESS = True
AXES_LOCKOUT_CALLABLE = "academico.views.lockout_response"

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"

# Por defecto sqlite; en producción se apunta al Postgres hospedado.
DATABASES = {
    "default": {
        "ENGINE": os.environ.get("DATABASE_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("DATABASE_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.environ.get("DATABASE_USER", ""),
        "PASSWORD": os.environ.get("DATABASE_PASSWORD", ""),
        "HOST": os.environ.get("DATABASE_HOST", ""),
        "PORT": os.environ.get("DATABASE_PORT", ""),
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator", "OPTIONS": {"min_length": 6}},
]

LANGUAGE_CODE = "es"
TIME_ZONE = os.environ.get("TIME_ZONE", "America/Lima")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
MEDIA_URL = "/media/"
MEDIA_ROOT = BASE_DIR / "media"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

DATA_UPLOAD_MAX_MEMORY_SIZE = 12 * 1024 * 1024

PONDERADO = {
    "CURRICULA_FILE": os.environ.get("PONDERADO_CURRICULA_FILE", str(BASE_DIR / "config" / "curricula.yaml")),
    "AVERAGE_DECIMALS": _env_int("PONDERADO_AVERAGE_DECIMALS", 4),
    "GRADE_MAX": _env_int("PONDERADO_GRADE_MAX", 20),
    "RANKING_PAGE_SIZE": _env_int("PONDERADO_RANKING_PAGE_SIZE", 50),
    "DEFAULT_CURRICULUM": os.environ.get("PONDERADO_DEFAULT_CURRICULUM", "systems"),
    "RESOURCE_MAX_BYTES": _env_int("PONDERADO_RESOURCE_MAX_BYTES", 10 * 1024 * 1024),
    "RESOURCE_ALLOWED_EXTENSIONS": _env_list(
        "PONDERADO_RESOURCE_ALLOWED_EXTENSIONS",
        ".pdf,.docx,.pptx,.xlsx,.txt,.md,.png,.jpg",
    ),
}

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_context": {"()": "config.logging_filters.RequestContextFilter"},
    },
    "formatters": {
        "app": {
            "format": "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s",
        },
        "access": {
            "format": "%(asctime)s [%(request_id)s] %(status_color)s%(status)s\x1b[0m "
                      "%(method)s %(path)s %(duration_ms)sms user=%(user)s ip=%(ip)s",
        },
        "audit": {
            "format": "%(asctime)s AUDIT [%(request_id)s] user=%(user)s ip=%(ip)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "filters": ["request_context"],
            "formatter": "app",
        },
        "access_console": {
            "class": "logging.StreamHandler",
            "filters": ["request_context"],
            "formatter": "access",
        },
        "audit_console": {
            "class": "logging.StreamHandler",
            "filters": ["request_context"],
            "formatter": "audit",
        },
    },
    "loggers": {
        "academico": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "request": {"handlers": ["access_console"], "level": LOG_LEVEL, "propagate": False},
        "audit": {"handlers": ["audit_console"], "level": LOG_LEVEL, "propagate": False},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
}
