import os
from pathlib import Path
from celery.schedules import crontab

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('SECRET_KEY', 'django-insecure-your-secret-key-here')

DEBUG = os.environ.get('DEBUG', 'False') == 'True'

ALLOWED_HOSTS = os.environ.get('ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',')

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'corsheaders',  # CORS support
    'exchange',
    'transactions',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'corsheaders.middleware.CorsMiddleware',  # CORS middleware
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'fx_tracker.urls'

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

WSGI_APPLICATION = 'fx_tracker.wsgi.application'

  # PostgreSQL
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.environ.get('POSTGRES_DB', 'fxdb'),
        'USER': os.environ.get('POSTGRES_USER', 'fxuser'),
        'PASSWORD': os.environ.get('POSTGRES_PASSWORD', 'fxpass123'),
        'HOST': os.environ.get('POSTGRES_HOST', '127.0.0.1'),
        'PORT': os.environ.get('POSTGRES_PORT', '5432'),
    }
}

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# CORS settings - allow frontend to access API
CORS_ALLOWED_ORIGINS = [
    origin for origin in os.environ.get('CORS_ALLOWED_ORIGINS', 'http://localhost:3000').split(',') if origin
]

# Allow credentials (cookies, authorization headers, etc.)
CORS_ALLOW_CREDENTIALS = True

# Cross-origin session POSTs send X-CSRFToken from the csrftoken cookie
CSRF_TRUSTED_ORIGINS = CORS_ALLOWED_ORIGINS

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.environ.get('LOG_LEVEL', 'INFO'),
    },
}

# Django cache settings - Redis when configured, process-local memory otherwise
REDIS_URL = os.environ.get('REDIS_URL', '')

if REDIS_URL:
    CACHES = {
        'default': {
            'BACKEND': 'django_redis.cache.RedisCache',
            'LOCATION': REDIS_URL,
            'OPTIONS': {
                'CLIENT_CLASS': 'django_redis.client.DefaultClient',
                'SOCKET_CONNECT_TIMEOUT': 5,
                'SOCKET_TIMEOUT': 5,
                'CONNECTION_POOL_KWARGS': {
                    'max_connections': 100,
                    'retry_on_timeout': True,
                },
            },
            'KEY_PREFIX': 'fx',
            'TIMEOUT': 300,
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'fx-live-rates',
            'TIMEOUT': 300,
        }
    }

LIVE_RATE_CACHE_ALIAS = os.environ.get('LIVE_RATE_CACHE_ALIAS', 'default')

# Per-feature cache timeouts (in seconds)
CACHE_TIMEOUT = {
    'live_rates': 3 * 60 * 60,  # 3 hours
}

# Upstream rate provider (exchangerate-api.com v6)
EXCHANGE_RATE_API_BASE_URL = os.environ.get('EXCHANGE_RATE_API_BASE_URL', 'https://v6.exchangerate-api.com/v6')
EXCHANGE_RATE_API_KEY = os.environ.get('EXCHANGE_RATE_API_KEY', '')
EXCHANGE_RATE_API_TIMEOUT = int(os.environ.get('EXCHANGE_RATE_API_TIMEOUT', '15'))
EXCHANGE_RATE_API_USER_AGENT = os.environ.get(
    'EXCHANGE_RATE_API_USER_AGENT', 'Mozilla/5.0 (compatible; FXTracker/1.0)'
)
# Historical endpoint requires a paid plan
EXCHANGE_RATE_HISTORY_ENABLED = os.environ.get('EXCHANGE_RATE_HISTORY_ENABLED', 'True') == 'True'

EXCHANGE_RATE_RECONCILE_TIMEOUT = int(os.environ.get('EXCHANGE_RATE_RECONCILE_TIMEOUT', '25'))

EXCHANGE_RATE_SYNC_BASES = [
    code.strip().upper()
    for code in os.environ.get('EXCHANGE_RATE_SYNC_BASES', 'USD,CAD').split(',')
    if code.strip()
]

# Bearer token expected by the scheduled trigger endpoint
CRON_SECRET = os.environ.get('CRON_SECRET', '')

# Celery Configuration
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://127.0.0.1:6379/1')
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', 'redis://127.0.0.1:6379/1')
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = 'UTC'

# Celery Beat Schedule - store today's latest rates every day at 00:15 UTC
CELERY_BEAT_SCHEDULE = {
    'sync-latest-exchange-rates': {
        'task': 'exchange.tasks.sync_latest_rates_task',
        'schedule': crontab(hour=0, minute=15),
    },
}
