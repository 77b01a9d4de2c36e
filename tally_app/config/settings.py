from pathlib import Path
import logging
import os
import sys

import environ
from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    DEBUG=(bool, False),
)

# Optional local env file support (container deployments set env vars directly).
environ.Env.read_env(os.path.join(BASE_DIR, ".env"))

DEBUG = env.bool("DEBUG", default=False)

# Test runs import settings without a production environment.
TESTING = sys.argv[1:2] == ["test"] or "pytest" in sys.modules

SECRET_KEY = env(
    "SECRET_KEY",
    default="django-insecure-dev-only-change-me",
)
if not (DEBUG or TESTING) and SECRET_KEY.startswith("django-insecure-dev-only"):
    raise ImproperlyConfigured("SECRET_KEY must be set in production.")

_dev_allowed_hosts = ["localhost", "127.0.0.1", "[::1]", "testserver"]
ALLOWED_HOSTS = env.list(
    "ALLOWED_HOSTS",
    default=_dev_allowed_hosts if (DEBUG or TESTING) else [],
)
if not (DEBUG or TESTING) and not ALLOWED_HOSTS:
    raise ImproperlyConfigured("ALLOWED_HOSTS must be set in production.")

INSTALLED_APPS = [
    'jazzmin',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'core',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'

# Database
# DATABASE_URL wins; otherwise discrete DATABASE_* variables select PostgreSQL,
# and a local SQLite file is used when neither is present.
if env("DATABASE_URL", default=""):
    DATABASES = {'default': env.db('DATABASE_URL')}
elif env("DATABASE_HOST", default=""):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'HOST': env("DATABASE_HOST"),
            'PORT': env("DATABASE_PORT", default="5432"),
            'NAME': env("DATABASE_NAME", default="tally"),
            'USER': env("DATABASE_USER", default="tally"),
            'PASSWORD': env("DATABASE_PASSWORD", default=""),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

JAZZMIN_SETTINGS = {
    "site_title": "Election Tally",
    "site_header": "Election Tally",
    "welcome_sign": "Election administration",
}

# Password validation
# https://docs.djangoproject.com/en/5.0/ref/settings/#auth-password-validators
AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# Security
if not DEBUG:
    if env.bool("SECURE_PROXY_SSL", default=True):
        SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

    SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=False)
    SESSION_COOKIE_SECURE = env.bool("SESSION_COOKIE_SECURE", default=True)
    CSRF_COOKIE_SECURE = env.bool("CSRF_COOKIE_SECURE", default=True)
    SECURE_CONTENT_TYPE_NOSNIFF = True
    SECURE_REFERRER_POLICY = env("SECURE_REFERRER_POLICY", default="same-origin")

    CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=[])

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / "staticfiles"

LOGIN_URL = '/admin/login/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Elections
# Ballot open/close times are wall-clock times on the scheduled date in this zone.
ELECTION_TIME_ZONE = env("ELECTION_TIME_ZONE", default="UTC")

# When enabled a voter must confirm participation before a ballot is accepted.
ELECTION_REQUIRE_PARTICIPATION_CONFIRMATION = env.bool(
    "ELECTION_REQUIRE_PARTICIPATION_CONFIRMATION",
    default=True,
)

# Import path of the VoterDirectory implementation used for eligibility lookups.
ELECTION_VOTER_DIRECTORY_BACKEND = env(
    "ELECTION_VOTER_DIRECTORY_BACKEND",
    default="core.voter_directory.DatabaseVoterDirectory",
)
ELECTION_DIRECTORY_CACHE_TTL_SECONDS = env.int("ELECTION_DIRECTORY_CACHE_TTL_SECONDS", default=300)

# FreeIPA group whose (direct and nested) members are eligible voters, and a
# JSON object mapping scope codes to the FreeIPA group listing that scope.
ELECTION_FREEIPA_ELIGIBLE_GROUP = env("ELECTION_FREEIPA_ELIGIBLE_GROUP", default="voters")
ELECTION_FREEIPA_SCOPE_GROUPS: dict[str, str] = env.json("ELECTION_FREEIPA_SCOPE_GROUPS", default={})

# FreeIPA Configuration
FREEIPA_HOST = env("FREEIPA_HOST", default="ipa.demo1.freeipa.org")
FREEIPA_VERIFY_SSL = env.bool("FREEIPA_VERIFY_SSL", default=True)
FREEIPA_SERVICE_USER = env("FREEIPA_SERVICE_USER", default="admin")
FREEIPA_SERVICE_PASSWORD = env("FREEIPA_SERVICE_PASSWORD", default="")
FREEIPA_REQUEST_TIMEOUT_SECONDS = env.int("FREEIPA_REQUEST_TIMEOUT_SECONDS", default=10)
FREEIPA_CIRCUIT_BREAKER_CONSECUTIVE_FAILURES = env.int("FREEIPA_CIRCUIT_BREAKER_CONSECUTIVE_FAILURES", default=3)
FREEIPA_CIRCUIT_BREAKER_COOLDOWN_SECONDS = env.int("FREEIPA_CIRCUIT_BREAKER_COOLDOWN_SECONDS", default=60)

_uses_freeipa_directory = ELECTION_VOTER_DIRECTORY_BACKEND.startswith("core.freeipa.")
if _uses_freeipa_directory and not (DEBUG or TESTING) and not FREEIPA_SERVICE_PASSWORD:
    raise ImproperlyConfigured("FREEIPA_SERVICE_PASSWORD must be set when the FreeIPA voter directory is used.")

# Caching
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'election-tally',
        'TIMEOUT': 300,
    }
}

# Logging
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'filters': {
        'health_endpoint': {
            '()': 'config.logging_filters.HealthEndpointFilter',
        },
    },
    'formatters': {
        'console': {
            'format': '[{asctime}] {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'console',
            'filters': ['health_endpoint'],
        },
    },
    'loggers': {
        'core': {
            'handlers': ['console'],
            'level': 'DEBUG' if DEBUG else 'INFO',
            'propagate': False,
        },
        # FreeIPA client libs can be noisy; keep them at INFO by default.
        'python_freeipa': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'django.request': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
        'django.server': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}

# Error reporting
SENTRY_DSN = env("SENTRY_DSN", default="")
if SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[
            DjangoIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        environment=env("SENTRY_ENVIRONMENT", default="production"),
        traces_sample_rate=0.0,
        send_default_pii=False,
        send_client_reports=False,
        auto_session_tracking=False,
    )
