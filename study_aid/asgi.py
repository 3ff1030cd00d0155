"""
ASGI config for the study_aid project.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "study_aid.settings")

application = get_asgi_application()
