from __future__ import annotations

import math
import re
from typing import Any, Dict, Iterable, Optional

from pymongo import DESCENDING
from pymongo.database import Database

from qr_portal.db import users
from qr_portal.models import DEFAULT_ADMIN_PERMISSIONS, AdminPermission, permission_values
from qr_portal.util import log
from qr_portal.util.time import utcnow
from qr_portal.util.validation import to_object_id


MAX_PAGE_SIZE = 100
# Keeps skip within BSON int64.
MAX_PAGE = 1_000_000_000
DEFAULT_PAGE_SIZE = 20


def _debug(msg: str) -> None:
    log.debug("admin", msg)


def find_admin_by_id(db: Database, user_id: Any) -> Optional[Dict[str, Any]]:
    """User document if it exists and carries the admin flag (password excluded)."""
    oid = to_object_id(user_id)
    if oid is None:
        return None
    return users(db).find_one({"_id": oid, "isAdmin": True}, {"password": 0})


def clamp_pagination(page: int, limit: int) -> tuple[int, int]:
    return max(1, min(int(page), MAX_PAGE)), max(1, min(int(limit), MAX_PAGE_SIZE))


def search_filter(search: Optional[str]) -> Dict[str, Any]:
    """Case-insensitive literal substring match on email or name."""
    if not search:
        return {}
    pattern = {"$regex": re.escape(search), "$options": "i"}
    return {"$or": [{"email": pattern}, {"name": pattern}]}


def get_all_users(
    db: Database,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    search: Optional[str] = None,
) -> Dict[str, Any]:
    """One page of users, newest first, without password hashes.

    Returns {users, total, page, pages}; total counts the filtered set.
    """
    valid_page, valid_limit = clamp_pagination(page, limit)
    skip = (valid_page - 1) * valid_limit
    query = search_filter(search)

    total = users(db).count_documents(query)
    docs = list(
        users(db)
        .find(query, {"password": 0})
        .sort("createdAt", DESCENDING)
        .skip(skip)
        .limit(valid_limit)
    )

    return {
        "users": docs,
        "total": int(total),
        "page": valid_page,
        "pages": int(math.ceil(total / valid_limit)),
    }


def get_user_count(db: Database) -> int:
    return int(users(db).count_documents({}))


def update_user_verification_status(db: Database, user_id: Any, is_verified: bool) -> bool:
    """Set emailVerified. True when the user matched, even if nothing changed."""
    oid = to_object_id(user_id)
    if oid is None:
        return False
    result = users(db).update_one(
        {"_id": oid},
        {"$set": {"emailVerified": bool(is_verified), "updatedAt": utcnow()}},
    )
    return result.matched_count > 0


def promote_to_admin(
    db: Database,
    user_id: Any,
    permissions: Iterable[AdminPermission] = DEFAULT_ADMIN_PERMISSIONS,
) -> bool:
    oid = to_object_id(user_id)
    if oid is None:
        return False
    now = utcnow()
    result = users(db).update_one(
        {"_id": oid},
        {
            "$set": {
                "isAdmin": True,
                "adminSince": now,
                "adminPermissions": permission_values(permissions),
                "updatedAt": now,
            }
        },
    )
    _debug(f"promote {oid}: matched={result.matched_count} modified={result.modified_count}")
    return result.matched_count > 0


def demote_from_admin(db: Database, user_id: Any) -> bool:
    oid = to_object_id(user_id)
    if oid is None:
        return False
    result = users(db).update_one(
        {"_id": oid},
        {
            "$set": {"isAdmin": False, "updatedAt": utcnow()},
            "$unset": {"adminSince": "", "adminPermissions": "", "lastAdminAction": ""},
        },
    )
    _debug(f"demote {oid}: matched={result.matched_count} modified={result.modified_count}")
    return result.matched_count > 0


def touch_last_admin_action(db: Database, admin_id: Any) -> None:
    oid = to_object_id(admin_id)
    if oid is None:
        return
    users(db).update_one({"_id": oid}, {"$set": {"lastAdminAction": utcnow()}})
