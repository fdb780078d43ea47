"""WSGI config for the oohops project."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'oohops.config.settings')

application = get_wsgi_application()
