# app/settings/production.py
from .base import *

DEBUG = False

# Parse ALLOWED_HOSTS from environment variable
ALLOWED_HOSTS_ENV = os.environ.get('ALLOWED_HOSTS', '')
if ALLOWED_HOSTS_ENV:
    ALLOWED_HOSTS = [host.strip() for host in ALLOWED_HOSTS_ENV.split(',') if host.strip()]
else:
    ALLOWED_HOSTS = ['terapia.mx', 'www.terapia.mx']

# Production database with SSL
DATABASES['default'].update({
    'OPTIONS': {
        'sslmode': os.environ.get('DB_SSL_MODE', 'require'),
    }
})

# Email Configuration for Production
EMAIL_BACKEND = os.environ.get('EMAIL_BACKEND', 'django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = os.environ.get('EMAIL_HOST', '')
EMAIL_PORT = int(os.environ.get('EMAIL_PORT', 587))
EMAIL_USE_TLS = os.environ.get('EMAIL_USE_TLS', 'True') == 'True'
EMAIL_HOST_USER = os.environ.get('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.environ.get('EMAIL_HOST_PASSWORD', '')
DEFAULT_FROM_EMAIL = os.environ.get('DEFAULT_FROM_EMAIL', 'Terapia <noreply@terapia.mx>')

# Security settings
SECURE_SSL_REDIRECT = os.environ.get('SECURE_SSL_REDIRECT', 'False') == 'True'
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = 'SAMEORIGIN'

CSRF_COOKIE_SECURE = os.environ.get('HTTPS_ENABLED', 'False') == 'True'
SESSION_COOKIE_SECURE = os.environ.get('HTTPS_ENABLED', 'False') == 'True'

CSRF_TRUSTED_ORIGINS = [
    'https://terapia.mx',
    'https://www.terapia.mx',
]

CSRF_TRUSTED_ORIGINS_ENV = os.environ.get('CSRF_TRUSTED_ORIGINS', '')
if CSRF_TRUSTED_ORIGINS_ENV:
    CSRF_TRUSTED_ORIGINS.extend([
        origin.strip() for origin in CSRF_TRUSTED_ORIGINS_ENV.split(',') if origin.strip()
    ])

# CORS settings
CORS_ALLOW_ALL_ORIGINS = False
CORS_ALLOWED_ORIGINS = [
    'https://terapia.mx',
    'https://www.terapia.mx',
]

CORS_ALLOWED_ORIGINS_ENV = os.environ.get('CORS_ALLOWED_ORIGINS', '')
if CORS_ALLOWED_ORIGINS_ENV:
    CORS_ALLOWED_ORIGINS.extend([
        origin.strip() for origin in CORS_ALLOWED_ORIGINS_ENV.split(',') if origin.strip()
    ])

CORS_ALLOW_CREDENTIALS = True

STATIC_ROOT = '/app/staticfiles/'

# Less verbose in production, but revenue stays at INFO for reconciliation trails
LOGGING['loggers']['appointments']['level'] = 'WARNING'
LOGGING['loggers']['subscriptions']['level'] = 'WARNING'
LOGGING['loggers']['revenue']['level'] = 'INFO'
