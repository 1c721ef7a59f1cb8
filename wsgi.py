"""WSGI entrypoint for production servers (gunicorn/uwsgi)."""

import os

from dotenv import load_dotenv

load_dotenv()

from pegasus_admin import create_app

app = create_app(os.environ.get("FLASK_CONFIG") or "production")
