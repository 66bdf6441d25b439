"""
Django settings for the Shepherd church management API.

All deployment-specific values come from environment variables so the same
settings module serves local development, tests, Celery workers and Lambda.
"""
import os
from pathlib import Path

from .database import get_database_config
from .storage import get_storage_settings

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() in ('1', 'true', 'yes')


# =============================================================================
# Core
# =============================================================================

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'shepherd-insecure-dev-key-change-me')
DEBUG = _env_bool('DJANGO_DEBUG', 'true')
ALLOWED_HOSTS = [h.strip() for h in os.getenv('DJANGO_ALLOWED_HOSTS', '*').split(',') if h.strip()]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    # Project apps
    'apps.core',
    'apps.identity',
    'apps.tenants',
    'apps.audit',
    'apps.notifications',
    'apps.members',
    'apps.scheduler',
    'apps.ledger',
    'apps.imports',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'apps.identity.middleware.JWTCookieMiddleware',
    'apps.tenants.middleware.TenantMiddleware',
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
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

ASGI_APPLICATION = 'config.asgi.application'

AUTH_USER_MODEL = 'identity.User'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# =============================================================================
# Database & Storage
# =============================================================================

DATABASES = {
    'default': get_database_config(BASE_DIR),
}

globals().update(get_storage_settings(BASE_DIR))

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# =============================================================================
# Localization
# =============================================================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('DJANGO_TIME_ZONE', 'UTC')
USE_I18N = True
USE_TZ = True


# =============================================================================
# Authentication
# =============================================================================

JWT_SECRET = os.getenv('JWT_SECRET', SECRET_KEY)

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
]


# =============================================================================
# Background Tasks
# =============================================================================

TASK_BACKEND = os.getenv('TASK_BACKEND', 'local')

CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', CELERY_BROKER_URL)
CELERY_TASK_ALWAYS_EAGER = _env_bool('CELERY_TASK_ALWAYS_EAGER')
CELERY_TIMEZONE = TIME_ZONE

# Days of occurrences kept materialized ahead of today
SCHEDULER_DAYS_AHEAD = int(os.getenv('SCHEDULER_DAYS_AHEAD', '60'))

# Hard cap on rows accepted by a single spreadsheet import
IMPORT_MAX_ROWS = int(os.getenv('IMPORT_MAX_ROWS', '5000'))

DATA_UPLOAD_MAX_MEMORY_SIZE = 10 * 1024 * 1024


# =============================================================================
# Logging
# =============================================================================

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'apps': {
            'handlers': ['console'],
            'level': os.getenv('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'django': {
            'handlers': ['console'],
            'level': os.getenv('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
