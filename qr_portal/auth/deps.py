from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from fastapi import Request
from pymongo.database import Database

from qr_portal.admin.crud import find_admin_by_id
from qr_portal.config import Config
from qr_portal.db import get_database
from qr_portal.errors import ApiError
from qr_portal.models import PERMISSION_DENIED_MESSAGES, AdminPermission, has_admin_permission
from qr_portal.ratelimit import RateLimiter
from qr_portal.util import log
from qr_portal.util.net import get_client_ip

from .crud import find_user_by_id
from .security import DecodedToken, verify_token


def _debug(msg: str) -> None:
    log.debug("auth", msg)


def _error(msg: str) -> None:
    log.error("auth", msg)


def get_config(request: Request) -> Config:
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise ApiError(500, "SERVER_ERROR", "Server configuration missing")
    return cfg


def get_db(request: Request) -> Database:
    """Application database, resolved once per app and cached on app.state."""
    state = request.app.state
    db = getattr(state, "db", None)
    if db is None:
        db = get_database(get_config(request), client=getattr(state, "mongo_client", None))
        state.db = db
    return db


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def extract_token(request: Request, cookie_name: str) -> Optional[str]:
    """Bearer header first (API clients), then the session cookie (browsers)."""
    auth = request.headers.get("authorization") or ""
    if auth.startswith("Bearer "):
        token = auth[len("Bearer "):].strip()
        if token:
            return token
    return request.cookies.get(cookie_name) or None


def get_current_user(request: Request) -> Dict[str, Any]:
    """Authenticated user document (password excluded)."""
    cfg = get_config(request)
    token = extract_token(request, cfg.AUTH_COOKIE_NAME)
    if not token:
        raise ApiError(401, "UNAUTHORIZED", "Not authenticated")

    decoded = verify_token(token, cfg.JWT_SECRET)
    if decoded is None:
        raise ApiError(401, "INVALID_TOKEN", "Invalid or expired token")

    user = find_user_by_id(get_db(request), decoded.user_id)
    if user is None:
        raise ApiError(404, "USER_NOT_FOUND", "User not found")
    return user


# -----------------------------
# Admin gate
# -----------------------------


@dataclass(frozen=True)
class AdminRequestValidation:
    """Outcome of the admin check.

    401 means the caller is not authenticated; 403 means authenticated but not
    an admin. Callers must look at `is_valid` and then at `status_code`.
    """

    is_valid: bool
    decoded: Optional[DecodedToken] = None
    admin: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    status_code: Optional[int] = None


def validate_admin_request(request: Request, db: Database, cfg: Config) -> AdminRequestValidation:
    try:
        token = extract_token(request, cfg.AUTH_COOKIE_NAME)
        if not token:
            return AdminRequestValidation(is_valid=False, error="Authentication required", status_code=401)

        decoded = verify_token(token, cfg.JWT_SECRET)
        if decoded is None:
            return AdminRequestValidation(is_valid=False, error="Invalid or expired token", status_code=401)

        admin = find_admin_by_id(db, decoded.user_id)
        if admin is None:
            return AdminRequestValidation(
                is_valid=False,
                decoded=decoded,
                error="Admin access required",
                status_code=403,
            )

        return AdminRequestValidation(is_valid=True, decoded=decoded, admin=admin)
    except Exception as e:
        _error(f"Admin request validation error: {e}")
        return AdminRequestValidation(is_valid=False, error="Validation failed", status_code=500)


@dataclass(frozen=True)
class AdminContext:
    admin_id: str
    admin: Dict[str, Any]
    client_ip: str
    user_agent: Optional[str]


def require_admin(
    scope: str,
    max_requests: int,
    permission: AdminPermission,
    *,
    window_seconds: float = 60.0,
) -> Callable[[Request], AdminContext]:
    """Dependency factory for admin routes.

    Order matters: rate limit, then token, then admin flag, then `permission`.
    Input validation and the mutation itself happen in the route afterwards.
    """

    def dependency(request: Request) -> AdminContext:
        client_ip = get_client_ip(request)

        limiter = get_rate_limiter(request)
        rl = limiter.check(f"admin:{scope}:{client_ip}", max_requests, window_seconds)
        if not rl.allowed:
            _debug(f"rate limit hit scope={scope} ip={client_ip}")
            raise ApiError(
                429,
                "RATE_LIMIT_EXCEEDED",
                "Too many requests. Please try again later.",
                headers={"Retry-After": str(limiter.retry_after(rl))},
            )

        cfg = get_config(request)
        validation = validate_admin_request(request, get_db(request), cfg)
        if not validation.is_valid:
            status_code = validation.status_code or 401
            code = "FORBIDDEN" if status_code == 403 else ("SERVER_ERROR" if status_code >= 500 else "UNAUTHORIZED")
            raise ApiError(status_code, code, validation.error or "Unauthorized")

        admin = validation.admin or {}
        if not has_admin_permission(admin, permission):
            raise ApiError(403, "INSUFFICIENT_PERMISSIONS", PERMISSION_DENIED_MESSAGES[permission])

        return AdminContext(
            admin_id=str(admin["_id"]),
            admin=admin,
            client_ip=client_ip,
            user_agent=request.headers.get("user-agent"),
        )

    return dependency
