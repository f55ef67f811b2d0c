# app/settings/base.py
from pathlib import Path
import os
import sys
from dotenv import load_dotenv
from decimal import Decimal
from celery.schedules import crontab

# Load environment variables
load_dotenv()

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Security
SECRET_KEY = os.environ.get('SECRET_KEY')
if not SECRET_KEY:
    # Only allow empty SECRET_KEY in development/testing
    if 'test' in sys.argv or 'pytest' in sys.modules:
        SECRET_KEY = 'django-insecure-fallback-for-testing'
    elif os.environ.get('DJANGO_SETTINGS_MODULE', '').endswith(('development', 'test')):
        SECRET_KEY = 'django-insecure-fallback-for-development'
    else:
        raise ValueError("SECRET_KEY environment variable is required")

DEBUG = False  # Always False in base, override in development

# Application definition
INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'rest_framework.authtoken',
    'drf_spectacular',
    'django_extensions',
    'corsheaders',
    # Local apps
    'core',
    'users',
    'clients',
    'psychologists',
    'appointments',
    'payments',
    'subscriptions',
    'credits',
    'revenue',
    'notifications',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'app.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'app' / 'templates'],
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

WSGI_APPLICATION = 'app.wsgi.application'

# Database - Base configuration (override in environment-specific files)
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'HOST': os.environ.get('DB_HOST'),
        'NAME': os.environ.get('DB_NAME'),
        'USER': os.environ.get('DB_USER'),
        'PASSWORD': os.environ.get('DB_PASSWORD'),
        'PORT': os.environ.get('DB_PORT', '5432'),
    }
}

# Password validation
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

# Static files
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Django REST Framework
REST_FRAMEWORK = {
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.TokenAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 20
}

# DRF Spectacular
SPECTACULAR_SETTINGS = {
    'TITLE': 'Terapia Marketplace API',
    'DESCRIPTION': 'Scheduling, packages and revenue recognition for therapy sessions',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
}

# Custom User Model
AUTH_USER_MODEL = 'users.User'

# Email Configuration Base
EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'  # Override in production
DEFAULT_FROM_EMAIL = 'Terapia <noreply@terapia.mx>'
SERVER_EMAIL = os.environ.get('SERVER_EMAIL', 'alerts@terapia.mx')

# Operators receiving revenue reconciliation alerts
ADMINS = [
    ('Operations', email.strip())
    for email in os.environ.get('OPERATOR_EMAILS', 'ops@terapia.mx').split(',')
    if email.strip()
]

# Application-specific settings
FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://127.0.0.1:8000')
SUPPORT_EMAIL = os.environ.get('SUPPORT_EMAIL', 'soporte@terapia.mx')

# Security defaults (will be overridden in production)
ALLOWED_HOSTS = []
CORS_ALLOW_ALL_ORIGINS = False
CORS_ALLOW_CREDENTIALS = True
CSRF_TRUSTED_ORIGINS = []


# =============================================================================
# BOOKING POLICY
# =============================================================================

# Single canonical values: cancellation credit and session restore both use
# CANCELLATION_WINDOW_HOURS.
BOOKING_POLICY = {
    'SESSION_DURATION_MINUTES': int(os.environ.get('SESSION_DURATION_MINUTES', '50')),
    'SLOT_INTERVAL_MINUTES': int(os.environ.get('SLOT_INTERVAL_MINUTES', '60')),
    'MINIMUM_NOTICE_HOURS': int(os.environ.get('MINIMUM_NOTICE_HOURS', '6')),
    'CANCELLATION_WINDOW_HOURS': int(os.environ.get('CANCELLATION_WINDOW_HOURS', '24')),
    'ROLLOVER_FRACTION': Decimal(os.environ.get('ROLLOVER_FRACTION', '0.25')),
    'SUBSCRIPTION_PERIOD_DAYS': int(os.environ.get('SUBSCRIPTION_PERIOD_DAYS', '30')),
    'MAX_RANGE_DAYS': int(os.environ.get('AVAILABILITY_MAX_RANGE_DAYS', '31')),
}

# =============================================================================
# REVENUE CONFIGURATION
# =============================================================================

REVENUE_SETTINGS = {
    'CURRENCY': os.environ.get('MARKETPLACE_CURRENCY', 'MXN'),
    'COMMISSION_RATE': Decimal(os.environ.get('COMMISSION_RATE', '0.15')),
    'PLATFORM_FEE_RATE': Decimal(os.environ.get('PLATFORM_FEE_RATE', '0.05')),
}

# Experience-based session price caps: (min_years, max_years_exclusive, cap)
PRICE_CAPS = {
    'TIERS': [
        (1, 3, Decimal('700.00')),
        (3, 5, Decimal('1000.00')),
        (5, None, Decimal('2000.00')),
    ],
    'DEFAULT_CAP': Decimal('700.00'),
}

# =============================================================================
# PAYMENT CONFIGURATION
# =============================================================================

# The marketplace never initiates charges; Stripe credentials are only used to
# verify webhook signatures reporting payment status changes.
PAYMENT_PROVIDERS = {
    'STRIPE': {
        'ENABLED': os.environ.get('STRIPE_ENABLED', 'False') == 'True',
        'SECRET_KEY': os.environ.get('STRIPE_SECRET_KEY', ''),
        'WEBHOOK_SECRET': os.environ.get('STRIPE_WEBHOOK_SECRET', ''),
        'WEBHOOK_ENDPOINT': '/api/payments/webhooks/stripe/',
    },
}

# =============================================================================
# CELERY
# =============================================================================

CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://redis:6379/0')
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', CELERY_BROKER_URL)

CELERY_TASK_ROUTES = {
    'notifications.tasks.*': {'queue': 'notifications'},
    'subscriptions.tasks.sweep_expired_periods_task': {'queue': 'billing'},
}

# Renewal is lazy on access; the sweep only catches subscriptions nobody touched.
SUBSCRIPTION_SWEEP_ENABLED = os.environ.get('SUBSCRIPTION_SWEEP_ENABLED', 'True') == 'True'

CELERY_BEAT_SCHEDULE = {}
if SUBSCRIPTION_SWEEP_ENABLED:
    CELERY_BEAT_SCHEDULE['sweep-expired-subscription-periods'] = {
        'task': 'subscriptions.tasks.sweep_expired_periods_task',
        'schedule': crontab(hour=3, minute=0),  # Daily at 3 AM
        'options': {'expires': 3600},
    }

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
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
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'appointments': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'revenue': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'subscriptions': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
