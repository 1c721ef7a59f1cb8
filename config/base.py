"""Base defaults shared by runtime profiles."""

from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]

DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"
DEFAULT_DB_URI = f"sqlite:///{(BASE_DIR / 'data' / 'pegasus.db').as_posix()}"

DEFAULT_FIREBASE_URL = "https://pegasus-tool-database-default-rtdb.firebaseio.com"
DEFAULT_FIREBASE_AUTH_URL = (
    "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
)
DEFAULT_LEGACY_HTTP_TIMEOUT = 30.0

DEFAULT_JWT_AUDIENCE = "authenticated"

DEFAULT_CORS_ALLOWED_ORIGINS = "*"
DEFAULT_CORS_ALLOWED_ORIGINS_PROD = ""
