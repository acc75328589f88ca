import os
from datetime import timedelta
from pathlib import Path
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent  # project root (where wsgi.py is)
load_dotenv(BASE_DIR / ".env")

DEFAULT_FINGERPRINT_FIELDS = (
    "userAgent,platform,model,screenWidth,screenHeight,colorDepth,"
    "language,timezone,hardwareConcurrency,deviceMemory,touchSupport"
)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///pollguard.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "jwt-dev-secret")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(
        minutes=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES_MIN", "30"))
    )

    # Operator key exchanged for an admin JWT
    ADMIN_KEY = os.getenv("ADMIN_KEY")

    # Hashing
    HASH_SECRET = os.getenv("HASH_SECRET", "")
    FINGERPRINT_SECRET = os.getenv("FINGERPRINT_SECRET", "default-secret-change-in-production")
    FINGERPRINT_FIELDS = [
        f.strip() for f in os.getenv("FINGERPRINT_FIELDS", DEFAULT_FINGERPRINT_FIELDS).split(",") if f.strip()
    ]
    FINGERPRINT_MIN_ATTRIBUTES = int(os.getenv("FINGERPRINT_MIN_ATTRIBUTES", "1"))

    # Rate limiting (per client IP, process-local)
    RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
    RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "10"))
    # Only enable behind a proxy that overwrites X-Forwarded-For; otherwise
    # clients choose their own rate-limit identity
    TRUST_PROXY_HEADERS = _env_bool("TRUST_PROXY_HEADERS", "false")

    # Cookies
    DEVICE_COOKIE_MAX_AGE = int(os.getenv("DEVICE_COOKIE_MAX_AGE", "31536000"))  # 1 year
    DEVICE_COOKIE_SECURE = _env_bool("DEVICE_COOKIE_SECURE", "false")

    # Admin device reset: delete the linked vote (true) or keep it in the tally (false)
    ADMIN_RESET_REMOVES_VOTE = _env_bool("ADMIN_RESET_REMOVES_VOTE", "true")

    DEFAULT_OPTION_COUNT = int(os.getenv("DEFAULT_OPTION_COUNT", "6"))

    SWAGGER = {"title": "PollGuard API", "uiversion": 3}
