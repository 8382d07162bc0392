"""
WSGI config for leasehub project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'leasehub.settings')

application = get_wsgi_application()
