"""
WSGI entrypoint for the marketplace API.
"""
# app/wsgi.py
import os
from django.core.wsgi import get_wsgi_application

# Web servers run production settings unless told otherwise
if 'DJANGO_SETTINGS_MODULE' not in os.environ:
    os.environ['DJANGO_SETTINGS_MODULE'] = 'app.settings.production'

application = get_wsgi_application()
