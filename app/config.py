import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./operly.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))  # 7 days

# Wall-clock zone used for "today" and past-slot filtering
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "America/Sao_Paulo")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Comma separated list of allowed origins for the client application
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

# Public booking pages (unauthenticated) rate limiting
PUBLIC_RATE_LIMIT = int(os.getenv("PUBLIC_RATE_LIMIT", "100"))
PUBLIC_RATE_WINDOW_SECONDS = int(os.getenv("PUBLIC_RATE_WINDOW_SECONDS", "900"))  # 15 minutes
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

# Optional shared store for rate limiting across workers
REDIS_URL = os.getenv("REDIS_URL")

# Business defaults applied at onboarding
DEFAULT_OPEN_TIME = os.getenv("DEFAULT_OPEN_TIME", "08:00")
DEFAULT_CLOSE_TIME = os.getenv("DEFAULT_CLOSE_TIME", "18:00")
DEFAULT_SLOT_DURATION = int(os.getenv("DEFAULT_SLOT_DURATION", "60"))

INVOICE_NUMBER_PREFIX = os.getenv("INVOICE_NUMBER_PREFIX", "NF-")

# Connection pool (ignored for SQLite)
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
DB_LOG_SLOW_QUERIES = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
DB_SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))
