# passenger_wsgi.py
import os
import sys

BASE_DIR = os.path.dirname(__file__)
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "paydesk.settings")
from paydesk.wsgi import application  # noqa: E402,F401
