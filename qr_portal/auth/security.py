from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext


_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
_JWT_ALG = "HS256"

# Compared against on the unknown-email path so login timing does not reveal
# whether an account exists.
_DUMMY_HASH = _pwd.hash(secrets.token_urlsafe(16))


class TokenConfigError(RuntimeError):
    """JWT_SECRET is missing; raised on first use, not at import."""


def _ensure_secret(secret: str) -> None:
    if not secret:
        raise TokenConfigError("FATAL: JWT_SECRET environment variable is not set. Application cannot start.")


@dataclass(frozen=True)
class DecodedToken:
    user_id: str
    email: str
    issued_at: datetime
    expires_at: datetime


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _pwd.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


def dummy_password_check(password: str) -> bool:
    """Burn the same hashing cost as a real check. Always False."""
    verify_password(password or "x", _DUMMY_HASH)
    return False


def create_access_token(
    *,
    secret: str,
    user_id: str,
    email: str,
    expires_minutes: int,
) -> str:
    _ensure_secret(secret)

    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=max(1, int(expires_minutes)))

    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=_JWT_ALG)


def decode_access_token(*, token: str, secret: str) -> Dict[str, Any]:
    if not token:
        raise ValueError("token_blank")
    _ensure_secret(secret)
    return jwt.decode(token, secret, algorithms=[_JWT_ALG], options={"require": ["sub", "exp"]})


def verify_token(token: Optional[str], secret: str) -> Optional[DecodedToken]:
    """Decode a session token, or None if it is missing, tampered with or expired.

    Fails closed: decode problems never propagate. A missing secret does, since
    that is a deployment error rather than a bad token.
    """
    _ensure_secret(secret)
    if not token:
        return None
    try:
        payload = decode_access_token(token=token, secret=secret)
        sub = str(payload.get("sub") or "")
        if not sub:
            return None
        return DecodedToken(
            user_id=sub,
            email=str(payload.get("email") or ""),
            issued_at=datetime.fromtimestamp(int(payload.get("iat") or 0), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )
    except Exception:
        return None
