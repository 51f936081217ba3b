import os
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import mongomock
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("JWT_SECRET", "tests-secret-key")

from qr_portal.admin.crud import promote_to_admin  # noqa: E402
from qr_portal.api.server import create_app  # noqa: E402
from qr_portal.auth.crud import create_user  # noqa: E402
from qr_portal.auth.security import create_access_token, hash_password  # noqa: E402
from qr_portal.config import Config  # noqa: E402
from qr_portal.db import get_database, init_db  # noqa: E402
from qr_portal.models import AdminPermission  # noqa: E402
from qr_portal.ratelimit import RateLimiter  # noqa: E402


SECRET = "tests-secret-key"
PASSWORD = "Password123"
ALL_PERMISSIONS = list(AdminPermission)


def make_config(**overrides: Any) -> Config:
    values: Dict[str, Any] = dict(
        APP_ENV="test",
        MONGODB_URI="mongodb://localhost:27017/qr_portal_test",
        MONGODB_DB="qr_portal_test",
        JWT_SECRET=SECRET,
        JWT_EXPIRES_MINUTES=60,
        AUTH_COOKIE_SECURE=False,
        CORS_ALLOW_ORIGINS="",
    )
    values.update(overrides)
    return Config(**values)


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def cfg() -> Config:
    return make_config()


@pytest.fixture
def mongo_client():
    client = mongomock.MongoClient()
    yield client
    client.close()


@pytest.fixture
def db(cfg, mongo_client):
    database = get_database(cfg, client=mongo_client)
    init_db(database)
    return database


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock) -> RateLimiter:
    return RateLimiter(clock=clock)


@pytest.fixture
def app(cfg, mongo_client, db, limiter):
    return create_app(cfg, mongo_client=mongo_client, rate_limiter=limiter)


def add_user(
    db,
    email: str,
    *,
    password: str = PASSWORD,
    name: Optional[str] = None,
    admin: bool = False,
    permissions: Optional[Iterable[AdminPermission]] = None,
) -> Dict[str, Any]:
    user = create_user(db, email=email, password_hash=hash_password(password), name=name)
    if admin:
        promote_to_admin(db, user["_id"], permissions if permissions is not None else ALL_PERMISSIONS)
    return user


def token_for(user: Dict[str, Any], secret: str = SECRET) -> str:
    return create_access_token(secret=secret, user_id=str(user["_id"]), email=user["email"], expires_minutes=60)


def auth_header(user: Dict[str, Any]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user)}"}
