# app/settings/development.py
from .base import *

# Database for development
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'HOST': os.environ.get('DB_HOST', 'db'),
        'NAME': os.environ.get('DB_NAME', 'terapia'),
        'USER': os.environ.get('DB_USER', 'terapia'),
        'PASSWORD': os.environ.get('DB_PASSWORD', 'terapia'),
        'PORT': os.environ.get('DB_PORT', '5432'),
    }
}

# Development-specific settings
CORS_ALLOW_ALL_ORIGINS = True

DEBUG = os.getenv("DEBUG", "False") == "True"
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")

LOGGING['loggers']['appointments']['level'] = 'DEBUG'
LOGGING['loggers']['revenue']['level'] = 'DEBUG'
