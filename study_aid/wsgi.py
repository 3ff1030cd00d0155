"""
WSGI config for the study_aid project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "study_aid.settings")

application = get_wsgi_application()
