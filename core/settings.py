"""
Django settings for the personal site backend.

The only dynamic surface is the contact form endpoint; everything else
is served by the static front end.

For more information on this file, see
https://docs.djangoproject.com/en/5.2/topics/settings/

For the full list of settings and their values, see
https://docs.djangoproject.com/en/5.2/ref/settings/
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
env_file = os.path.join(BASE_DIR, '.env.development')
if os.path.exists(env_file):
    load_dotenv(env_file)
else:
    load_dotenv()  # Try default .env


# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DEBUG', 'True') == 'True'

# SECURITY WARNING: keep the secret key used in production secret!
# SECRET_KEY MUST be set in environment outside of development
SECRET_KEY = os.getenv('SECRET_KEY')
if not SECRET_KEY:
    if not DEBUG:
        raise ValueError(
            "SECRET_KEY environment variable is not set. "
            "Please add SECRET_KEY to your .env file."
        )
    SECRET_KEY = 'django-insecure-development-only-key'

ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')


# =============================================================================
# CACHING
# =============================================================================

REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/1')

# Redis lets the contact rate limit be shared across workers
if os.getenv('REDIS_ENABLED', 'False') == 'True':
    CACHES = {
        'default': {
            'BACKEND': 'django_redis.cache.RedisCache',
            'LOCATION': REDIS_URL,
            'OPTIONS': {
                'CLIENT_CLASS': 'django_redis.client.DefaultClient',
            },
            'KEY_PREFIX': 'site',
            'TIMEOUT': 300,  # 5 minutes default
        }
    }
else:
    # Development: use local memory cache
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'unique-snowflake',
        }
    }


# Application definition

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',

    # Third-party apps
    'rest_framework',
    'corsheaders',

    # Local apps
    'contact',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'corsheaders.middleware.CorsMiddleware',  # CORS before CommonMiddleware
    'django.middleware.common.CommonMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'core.urls'

WSGI_APPLICATION = 'core.wsgi.application'


# Database
# Nothing is persisted; SQLite keeps management commands happy.

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / os.getenv('DB_NAME', 'db.sqlite3'),
    }
}


# Internationalization

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# =============================================================================
# REST FRAMEWORK SETTINGS
# =============================================================================

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.AllowAny',
    ),
    'DEFAULT_RENDERER_CLASSES': (
        'rest_framework.renderers.JSONRenderer',
    ),
    'UNAUTHENTICATED_USER': None,
}


# =============================================================================
# CORS SETTINGS
# =============================================================================

if DEBUG:
    # Development: Allow all origins for easier testing
    CORS_ORIGIN_ALLOW_ALL = True
else:
    # Production: Whitelist the front end origins
    cors_origins_env = os.getenv(
        'CORS_ALLOWED_ORIGINS',
        'https://jenniferlouise.io'
    )
    CORS_ALLOWED_ORIGINS = [origin.strip() for origin in cors_origins_env.split(',')]

CORS_ALLOW_METHODS = [
    'OPTIONS',
    'POST',
]


# =============================================================================
# CONTACT FORM SETTINGS
# =============================================================================

# Every accepted message goes to a single inbox
CONTACT_EMAIL_TO = os.getenv('CONTACT_EMAIL_TO', 'jl.lynch9@gmail.com')
CONTACT_EMAIL_FROM = os.getenv('CONTACT_EMAIL_FROM', 'Contact <onboarding@resend.dev>')

# Fixed-window rate limiting per client IP
CONTACT_RATE_LIMIT_MAX = int(os.getenv('CONTACT_RATE_LIMIT_MAX', 5))
CONTACT_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv('CONTACT_RATE_LIMIT_WINDOW_SECONDS', 3600))
CONTACT_RATE_LIMIT_SWEEP_EVERY = int(os.getenv('CONTACT_RATE_LIMIT_SWEEP_EVERY', 10))
CONTACT_RATE_LIMIT_STORE = os.getenv('CONTACT_RATE_LIMIT_STORE', 'memory')  # Options: 'memory', 'cache'
CONTACT_RATE_LIMIT_CACHE = os.getenv('CONTACT_RATE_LIMIT_CACHE', 'default')

# Bot heuristics
CONTACT_MIN_SUBMIT_MS = int(os.getenv('CONTACT_MIN_SUBMIT_MS', 2000))
CONTACT_MAX_FIELD_LENGTH = int(os.getenv('CONTACT_MAX_FIELD_LENGTH', 5000))
CONTACT_MAX_URLS = int(os.getenv('CONTACT_MAX_URLS', 3))


# =============================================================================
# RESEND EMAIL SETTINGS
# =============================================================================

# Get an API key from: https://resend.com/api-keys
RESEND_API_KEY = os.getenv('RESEND_API_KEY', '')
RESEND_ENABLED = os.getenv('RESEND_ENABLED', 'False') == 'True'
RESEND_TIMEOUT = int(os.getenv('RESEND_TIMEOUT', 10))


# =============================================================================
# LOGGING SETTINGS
# =============================================================================

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_TO_FILE = os.getenv('LOG_TO_FILE', 'False') == 'True'
LOG_FILE_PATH = os.getenv('LOG_FILE_PATH', 'logs/django.log')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        'file': {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': LOG_FILE_PATH,
            'maxBytes': 1024 * 1024 * 10,  # 10MB
            'backupCount': 5,
            'formatter': 'verbose',
        } if LOG_TO_FILE else {
            'class': 'logging.NullHandler',
        },
    },
    'root': {
        'handlers': ['console', 'file'] if LOG_TO_FILE else ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django': {
            'handlers': ['console', 'file'] if LOG_TO_FILE else ['console'],
            'level': os.getenv('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'contact': {
            'handlers': ['console', 'file'] if LOG_TO_FILE else ['console'],
            'level': os.getenv('CONTACT_LOG_LEVEL', LOG_LEVEL),
            'propagate': False,
        },
    },
}


# =============================================================================
# SECURITY SETTINGS (Production)
# =============================================================================

if not DEBUG:
    SECURE_SSL_REDIRECT = os.getenv('SECURE_SSL_REDIRECT', 'True') == 'True'
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = 'DENY'
    SECURE_HSTS_SECONDS = int(os.getenv('SECURE_HSTS_SECONDS', 31536000))
    SECURE_HSTS_INCLUDE_SUBDOMAINS = os.getenv('SECURE_HSTS_INCLUDE_SUBDOMAINS', 'True') == 'True'
    SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
