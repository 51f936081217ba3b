from __future__ import annotations

from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, BackgroundTasks, Body, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, StrictBool, ValidationError
from pymongo.database import Database
from starlette.exceptions import HTTPException as StarletteHTTPException

from qr_portal.admin.audit import create_audit_log, get_audit_logs
from qr_portal.admin.crud import (
    DEFAULT_PAGE_SIZE,
    clamp_pagination,
    demote_from_admin,
    get_all_users,
    get_user_count,
    promote_to_admin,
    update_user_verification_status,
)
from qr_portal.auth.crud import (
    UserExistsError,
    create_user,
    delete_user,
    delete_user_qr_codes,
    email_exists,
    find_user_by_email,
    find_user_by_id,
    public_user,
    session_user,
)
from qr_portal.auth.deps import AdminContext, get_config, get_current_user, get_db, require_admin
from qr_portal.auth.security import create_access_token, dummy_password_check, hash_password, verify_password
from qr_portal.config import Config, load_config
from qr_portal.db import close_clients, get_database, init_db
from qr_portal.errors import ApiError, error_code_for
from qr_portal.models import DEFAULT_ADMIN_PERMISSIONS, AdminPermission, AuditAction, is_admin_user
from qr_portal.ratelimit import RateLimiter
from qr_portal.util import log
from qr_portal.util.docs import public_doc
from qr_portal.util.net import get_client_ip
from qr_portal.util.validation import is_valid_email, is_valid_object_id, sanitize_input, validate_password


def _debug(msg: str) -> None:
    log.debug("api", msg)


def _error(msg: str) -> None:
    log.error("api", msg)


router = APIRouter()

SECURITY_HEADERS: Dict[str, str] = {
    "Content-Security-Policy": "; ".join(
        [
            "default-src 'self'",
            "script-src 'self'",
            "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com",
            "font-src 'self' https://fonts.gstatic.com",
            "img-src 'self' data: blob:",
            "connect-src 'self'",
            "frame-ancestors 'none'",
            "base-uri 'self'",
            "form-action 'self'",
        ]
    ),
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


def _ok(data: Any = None, message: str = "", status_code: int = 200) -> JSONResponse:
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


def _fail(status_code: int, error: str, message: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "message": message},
        # Set here too: 500s are rendered outside the http middleware.
        headers={**SECURITY_HEADERS, **(headers or {})},
    )


def _require_object_id(user_id: str) -> str:
    if not user_id or not is_valid_object_id(user_id):
        raise ApiError(400, "INVALID_USER_ID", "Invalid user ID format")
    return str(ObjectId(user_id))


def _parse_int_param(raw: Optional[str], default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ApiError(400, "INVALID_PARAMS", "Invalid page or limit parameter")


# -----------------------------
# Health
# -----------------------------


@router.get("/health")
def health() -> Dict[str, Any]:
    return {"success": True, "message": "ok"}


# -----------------------------
# Auth
# -----------------------------


def _set_auth_cookie(response: JSONResponse, *, token: str, cfg: Config) -> None:
    samesite = str(cfg.AUTH_COOKIE_SAMESITE or "strict").lower()
    # Browsers require Secure when SameSite=None
    secure = True if samesite == "none" else bool(cfg.AUTH_COOKIE_SECURE)
    response.set_cookie(
        key=cfg.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite=samesite,
        secure=secure,
        max_age=int(cfg.JWT_EXPIRES_MINUTES) * 60,
        path=cfg.AUTH_COOKIE_PATH or "/",
        domain=cfg.AUTH_COOKIE_DOMAIN,
    )


def _clear_auth_cookie(response: JSONResponse, cfg: Config) -> None:
    samesite = str(cfg.AUTH_COOKIE_SAMESITE or "strict").lower()
    response.delete_cookie(
        key=cfg.AUTH_COOKIE_NAME,
        path=cfg.AUTH_COOKIE_PATH or "/",
        domain=cfg.AUTH_COOKIE_DOMAIN,
        secure=True if samesite == "none" else bool(cfg.AUTH_COOKIE_SECURE),
        httponly=True,
        samesite=samesite,
    )


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


@router.post("/api/auth/register")
def auth_register(payload: RegisterRequest, db: Database = Depends(get_db)) -> JSONResponse:
    email = (payload.email or "").strip()
    password = payload.password or ""
    if not email or not password:
        raise ApiError(400, "VALIDATION_ERROR", "Email and password are required")

    if not is_valid_email(email):
        raise ApiError(400, "INVALID_EMAIL", "Please provide a valid email address")

    ok, reason = validate_password(password)
    if not ok:
        raise ApiError(400, "WEAK_PASSWORD", reason or "Password is too weak")

    if email_exists(db, email):
        raise ApiError(409, "EMAIL_EXISTS", "An account with this email already exists")

    name = sanitize_input(payload.name.strip()) if payload.name else None
    try:
        user = create_user(db, email=email, password_hash=hash_password(password), name=name or None)
    except UserExistsError:
        raise ApiError(409, "EMAIL_EXISTS", "An account with this email already exists")

    data = {"user": {**session_user(user), "createdAt": public_user(user).get("createdAt")}}
    return _ok(data, "Account created successfully", status_code=201)


@router.post("/api/auth/login")
def auth_login(
    payload: LoginRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    cfg: Config = Depends(get_config),
    db: Database = Depends(get_db),
) -> JSONResponse:
    email = (payload.email or "").strip()
    password = payload.password or ""
    if not email or not password:
        raise ApiError(400, "VALIDATION_ERROR", "Email and password are required")

    invalid = ApiError(401, "INVALID_CREDENTIALS", "Invalid email or password")

    if not is_valid_email(email):
        dummy_password_check(password)
        raise invalid

    user = find_user_by_email(db, email)
    if user is None:
        # Same hashing cost as a real check, so response time does not reveal the email exists.
        dummy_password_check(password)
        raise invalid
    if not verify_password(password, str(user.get("password") or "")):
        raise invalid

    token = create_access_token(
        secret=cfg.JWT_SECRET,
        user_id=str(user["_id"]),
        email=str(user["email"]),
        expires_minutes=int(cfg.JWT_EXPIRES_MINUTES),
    )

    if is_admin_user(user):
        background_tasks.add_task(
            create_audit_log,
            db,
            AuditAction.LOGIN,
            user["_id"],
            None,
            {"email": user.get("email")},
            get_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )

    # Token goes only into the httpOnly cookie, never the body.
    response = _ok({"user": session_user(user)}, "Login successful")
    _set_auth_cookie(response, token=token, cfg=cfg)
    return response


@router.post("/api/auth/logout")
def auth_logout(cfg: Config = Depends(get_config)) -> JSONResponse:
    """Clear the session cookie."""
    response = _ok(message="Logged out successfully")
    _clear_auth_cookie(response, cfg)
    return response


@router.get("/api/auth/me")
def auth_me(user: Dict[str, Any] = Depends(get_current_user)) -> JSONResponse:
    return _ok({"user": session_user(user)})


# -----------------------------
# Admin: users
# -----------------------------


@router.get("/api/admin/users")
def admin_list_users(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    _admin: AdminContext = Depends(require_admin("users", 30, AdminPermission.MANAGE_USERS)),
    db: Database = Depends(get_db),
) -> JSONResponse:
    page_n, limit_n = clamp_pagination(
        _parse_int_param(page, 1),
        _parse_int_param(limit, DEFAULT_PAGE_SIZE),
    )
    result = get_all_users(db, page_n, limit_n, search or None)
    data = {
        "users": [public_user(u) for u in result["users"]],
        "pagination": {
            "page": result["page"],
            "limit": limit_n,
            "total": result["total"],
            "pages": result["pages"],
        },
    }
    return _ok(data, f"Retrieved {len(result['users'])} users")


@router.delete("/api/admin/users/{user_id}")
def admin_delete_user(
    user_id: str,
    background_tasks: BackgroundTasks,
    ctx: AdminContext = Depends(require_admin("delete-user", 10, AdminPermission.DELETE_USERS)),
    db: Database = Depends(get_db),
) -> JSONResponse:
    target_id = _require_object_id(user_id)

    if target_id == ctx.admin_id:
        raise ApiError(400, "CANNOT_DELETE_SELF", "You cannot delete your own admin account")

    user = find_user_by_id(db, target_id)
    if user is None:
        raise ApiError(404, "USER_NOT_FOUND", "User not found")

    if not delete_user(db, target_id):
        raise ApiError(500, "DELETION_FAILED", "Failed to delete user")

    qr_deleted = delete_user_qr_codes(db, target_id)

    background_tasks.add_task(
        create_audit_log,
        db,
        AuditAction.DELETE_USER,
        ctx.admin_id,
        target_id,
        {"email": user.get("email"), "userName": user.get("name"), "qrCodesDeleted": qr_deleted},
        ctx.client_ip,
        user_agent=ctx.user_agent,
    )

    return _ok(message=f"User {user.get('email')} deleted successfully")


class VerifyRequest(BaseModel):
    isVerified: StrictBool


@router.patch("/api/admin/users/{user_id}/verify")
def admin_verify_user(
    user_id: str,
    background_tasks: BackgroundTasks,
    payload: Any = Body(None),
    ctx: AdminContext = Depends(require_admin("verify-user", 20, AdminPermission.VERIFY_EMAILS)),
    db: Database = Depends(get_db),
) -> JSONResponse:
    try:
        body = VerifyRequest.model_validate(payload if payload is not None else {})
    except ValidationError:
        raise ApiError(400, "INVALID_BODY", "isVerified field must be a boolean")

    target_id = _require_object_id(user_id)

    user = find_user_by_id(db, target_id)
    if user is None:
        raise ApiError(404, "USER_NOT_FOUND", "User not found")

    if not update_user_verification_status(db, target_id, body.isVerified):
        raise ApiError(500, "UPDATE_FAILED", "Failed to update verification status")

    verb = "verified" if body.isVerified else "unverified"
    background_tasks.add_task(
        create_audit_log,
        db,
        AuditAction.VERIFY_EMAIL,
        ctx.admin_id,
        target_id,
        {"email": user.get("email"), "isVerified": body.isVerified, "action": verb},
        ctx.client_ip,
        user_agent=ctx.user_agent,
    )

    updated = find_user_by_id(db, target_id)
    return _ok(
        {"user": public_user(updated) if updated else None},
        f"User email {verb} successfully",
    )


# -----------------------------
# Admin: admins
# -----------------------------


class PromoteRequest(BaseModel):
    permissions: Optional[List[AdminPermission]] = None


@router.post("/api/admin/users/{user_id}/promote")
def admin_promote_user(
    user_id: str,
    background_tasks: BackgroundTasks,
    payload: Any = Body(None),
    ctx: AdminContext = Depends(require_admin("promote-admin", 10, AdminPermission.MANAGE_ADMINS)),
    db: Database = Depends(get_db),
) -> JSONResponse:
    try:
        body = PromoteRequest.model_validate(payload if payload is not None else {})
    except ValidationError:
        raise ApiError(400, "INVALID_BODY", "permissions must be a list of known admin permissions")

    target_id = _require_object_id(user_id)

    user = find_user_by_id(db, target_id)
    if user is None:
        raise ApiError(404, "USER_NOT_FOUND", "User not found")

    permissions = body.permissions if body.permissions is not None else DEFAULT_ADMIN_PERMISSIONS
    if not promote_to_admin(db, target_id, permissions):
        raise ApiError(500, "UPDATE_FAILED", "Failed to promote user")

    background_tasks.add_task(
        create_audit_log,
        db,
        AuditAction.PROMOTE_ADMIN,
        ctx.admin_id,
        target_id,
        {"email": user.get("email"), "permissions": [p.value for p in permissions]},
        ctx.client_ip,
        user_agent=ctx.user_agent,
    )

    updated = find_user_by_id(db, target_id)
    return _ok({"user": public_user(updated) if updated else None}, f"User {user.get('email')} promoted to admin")


@router.post("/api/admin/users/{user_id}/demote")
def admin_demote_user(
    user_id: str,
    background_tasks: BackgroundTasks,
    ctx: AdminContext = Depends(require_admin("demote-admin", 10, AdminPermission.MANAGE_ADMINS)),
    db: Database = Depends(get_db),
) -> JSONResponse:
    target_id = _require_object_id(user_id)

    if target_id == ctx.admin_id:
        raise ApiError(400, "CANNOT_DEMOTE_SELF", "You cannot remove your own admin role")

    user = find_user_by_id(db, target_id)
    if user is None:
        raise ApiError(404, "USER_NOT_FOUND", "User not found")

    if not demote_from_admin(db, target_id):
        raise ApiError(500, "UPDATE_FAILED", "Failed to demote admin")

    background_tasks.add_task(
        create_audit_log,
        db,
        AuditAction.DEMOTE_ADMIN,
        ctx.admin_id,
        target_id,
        {"email": user.get("email")},
        ctx.client_ip,
        user_agent=ctx.user_agent,
    )

    updated = find_user_by_id(db, target_id)
    return _ok({"user": public_user(updated) if updated else None}, f"User {user.get('email')} is no longer an admin")


# -----------------------------
# Admin: audit + stats
# -----------------------------


@router.get("/api/admin/audit-logs")
def admin_audit_logs(
    adminId: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    _admin: AdminContext = Depends(require_admin("audit-logs", 30, AdminPermission.VIEW_ANALYTICS)),
    db: Database = Depends(get_db),
) -> JSONResponse:
    if adminId and not is_valid_object_id(adminId):
        raise ApiError(400, "INVALID_PARAMS", "Invalid adminId parameter")
    if action and action not in {a.value for a in AuditAction}:
        raise ApiError(400, "INVALID_PARAMS", "Invalid action parameter")
    n = _parse_int_param(limit, 100)

    entries = [public_doc(e) for e in get_audit_logs(db, admin_id=adminId, action=action, limit=n)]
    return _ok({"logs": entries}, f"Retrieved {len(entries)} audit log entries")


@router.get("/api/admin/stats")
def admin_stats(
    _admin: AdminContext = Depends(require_admin("stats", 30, AdminPermission.VIEW_ANALYTICS)),
    db: Database = Depends(get_db),
) -> JSONResponse:
    return _ok({"totalUsers": get_user_count(db)})


# -----------------------------
# App factory
# -----------------------------


def create_app(
    cfg: Optional[Config] = None,
    *,
    mongo_client: Any = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """Build the API.

    `mongo_client` replaces the MongoClient built from MONGODB_URI (tests pass a
    mongomock client). `rate_limiter` replaces the per-app limiter.
    """
    cfg = cfg or load_config()

    # Interactive docs only in development.
    docs = cfg.is_development
    app = FastAPI(
        title="QR Portal API",
        version="0.1.0",
        docs_url="/docs" if docs else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs else None,
    )
    app.state.cfg = cfg
    app.state.mongo_client = mongo_client
    app.state.db = None
    app.state.rate_limiter = rate_limiter or RateLimiter(
        max_entries=cfg.RATE_LIMIT_MAX_ENTRIES,
        cleanup_interval=cfg.RATE_LIMIT_CLEANUP_SECONDS,
    )

    # CORS is only needed when the frontend is served from another origin.
    cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def _security_headers(request: Request, call_next):
        response = await call_next(request)
        for key, value in SECURITY_HEADERS.items():
            response.headers.setdefault(key, value)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = getattr(exc, "message", None) or (exc.detail if isinstance(exc.detail, str) else "Request failed")
        return _fail(exc.status_code, error_code_for(exc), message, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _fail(400, "VALIDATION_ERROR", "Invalid request")

    @app.exception_handler(Exception)
    async def _server_error(request: Request, exc: Exception) -> JSONResponse:
        _error(f"Error in {request.method} {request.url.path}: {exc!r}")
        return _fail(500, "SERVER_ERROR", "An error occurred. Please try again.")

    @app.on_event("startup")
    def _on_startup() -> None:
        app.state.rate_limiter.start()
        if cfg.INIT_DB_ON_STARTUP:
            db = get_database(cfg, client=app.state.mongo_client)
            init_db(db)
            app.state.db = db

    @app.on_event("shutdown")
    def _on_shutdown() -> None:
        app.state.rate_limiter.stop()
        if app.state.mongo_client is None:
            close_clients()

    app.include_router(router)
    return app


app = create_app()
