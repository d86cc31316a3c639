"""
Runtime configuration for the hostel API and its clients.

Every value comes from the environment so the same code runs locally,
in tests and behind a deployment.
"""
import os


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------------
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "hostel_db")

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret")
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_MIN = int(os.getenv("JWT_EXPIRES_MIN", "60"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
DEBUG = _flag("DEBUG")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", "8000"))

# Rooms available for the occupancy figure on the admin overview
HOSTEL_CAPACITY = int(os.getenv("HOSTEL_CAPACITY", "50"))

# ---------------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------------
API_URL = os.getenv("HOSTEL_API_URL", "http://localhost:8000/api")
BACKEND = os.getenv("HOSTEL_BACKEND", "api")
SESSION_FILE = os.getenv("HOSTEL_SESSION_FILE", os.path.join(os.path.expanduser("~"), ".hostel", "session.json"))
HTTP_TIMEOUT = float(os.getenv("HOSTEL_HTTP_TIMEOUT", "10"))
