import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load a local .env file if present (no-op otherwise).
load_dotenv()


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


def current_env() -> str:
    """Runtime environment name (development|test|production)."""
    return (os.environ.get("APP_ENV") or os.environ.get("NODE_ENV") or "production").strip().lower()


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide the database URI and JWT secret via environment variables
    or a .env file. Do not hardcode secrets in source code.
    """

    # -----------------
    # Core
    # -----------------
    APP_ENV: str = current_env()

    # -----------------
    # MongoDB
    # -----------------
    # Required. Absence is fatal the first time the database is used.
    MONGODB_URI: str = os.environ.get("MONGODB_URI", "")
    # Empty means: the database named in the URI, else DEFAULT_DB_NAME.
    MONGODB_DB: str = os.environ.get("MONGODB_DB", "")
    MONGODB_MAX_POOL_SIZE: int = int(os.environ.get("MONGODB_MAX_POOL_SIZE", "10"))
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = int(os.environ.get("MONGODB_SERVER_SELECTION_TIMEOUT_MS", "5000"))
    MONGODB_SOCKET_TIMEOUT_MS: int = int(os.environ.get("MONGODB_SOCKET_TIMEOUT_MS", "45000"))

    # Create indexes when the API starts (scripts/init_db.py does the same thing).
    INIT_DB_ON_STARTUP: bool = _env_bool("INIT_DB_ON_STARTUP", False) is True

    # -----------------
    # Auth (JWT)
    # -----------------
    # Required. Absence is fatal the first time a token is signed or verified.
    JWT_SECRET: str = os.environ.get("JWT_SECRET", "")
    JWT_EXPIRES_MINUTES: int = int(os.environ.get("JWT_EXPIRES_MINUTES", "10080"))  # 7 days

    # Browser sessions: the token lives only in an httpOnly cookie.
    AUTH_COOKIE_NAME: str = os.environ.get("AUTH_COOKIE_NAME", "token")
    AUTH_COOKIE_DOMAIN: str | None = (os.environ.get("AUTH_COOKIE_DOMAIN") or "").strip() or None
    AUTH_COOKIE_PATH: str = os.environ.get("AUTH_COOKIE_PATH", "/")
    AUTH_COOKIE_SAMESITE: str = os.environ.get("AUTH_COOKIE_SAMESITE", "strict")  # lax|strict|none

    # Secure cookies in production unless overridden with AUTH_COOKIE_SECURE=0/1.
    AUTH_COOKIE_SECURE: bool = (
        _env_bool("AUTH_COOKIE_SECURE", None)
        if _env_bool("AUTH_COOKIE_SECURE", None) is not None
        else current_env() == "production"
    )

    # -----------------
    # Rate limiting (in-process)
    # -----------------
    RATE_LIMIT_CLEANUP_SECONDS: float = float(os.environ.get("RATE_LIMIT_CLEANUP_SECONDS", "30"))
    RATE_LIMIT_MAX_ENTRIES: int = int(os.environ.get("RATE_LIMIT_MAX_ENTRIES", "10000"))

    # -----------------
    # CORS (development)
    # -----------------
    # Comma-separated origins. Empty disables the middleware (same-origin deployments).
    CORS_ALLOW_ORIGINS: str = os.environ.get("CORS_ALLOW_ORIGINS", "")

    @property
    def is_development(self) -> bool:
        return (self.APP_ENV or "").strip().lower() == "development"


def load_config() -> Config:
    return Config()
