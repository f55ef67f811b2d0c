# app/settings/test.py
from .base import *

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = False
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

PAYMENT_PROVIDERS['STRIPE'].update({
    'ENABLED': True,
    'SECRET_KEY': 'sk_test_dummy',
    'WEBHOOK_SECRET': 'whsec_test_dummy',
})

LOGGING['root']['level'] = 'WARNING'
for _logger in ('appointments', 'revenue', 'subscriptions'):
    LOGGING['loggers'][_logger]['level'] = 'WARNING'
