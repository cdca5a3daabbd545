import os
import secrets
from pathlib import Path

# Base URL of the AuraCare REST backend
API_URL = os.getenv("AURACARE_API_URL", "http://localhost:4000").rstrip("/")

# Where the backend serves uploaded photos from
UPLOADS_URL = os.getenv("AURACARE_UPLOADS_URL", f"{API_URL}/uploads").rstrip("/")

# Signs the session cookie. A fresh key per process logs everyone out on restart.
SECRET_KEY = os.getenv("AURACARE_SECRET_KEY") or secrets.token_hex(32)

SESSION_COOKIE = os.getenv("AURACARE_SESSION_COOKIE", "auracare_session")

LOG_LEVEL = os.getenv("AURACARE_LOG_LEVEL", "INFO")

TEMPLATES_DIR = str(Path(__file__).resolve().parent / "templates")

STATIC_DIR = str(Path(__file__).resolve().parent / "static")

HOST = os.getenv("AURACARE_HOST", "127.0.0.1")

PORT = int(os.getenv("AURACARE_PORT", "8000"))
