"""
ASGI entrypoint for the marketplace API.
"""
# app/asgi.py
import os
from django.core.asgi import get_asgi_application

# Web servers run production settings unless told otherwise
if 'DJANGO_SETTINGS_MODULE' not in os.environ:
    os.environ['DJANGO_SETTINGS_MODULE'] = 'app.settings.production'

application = get_asgi_application()
