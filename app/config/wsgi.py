"""
WSGI entry point (``config.wsgi:application``) for the web process.

Chunk bodies arrive as ordinary request bodies, so a plain WSGI server in
front of Django is all the upload API needs.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
