from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from qr_portal.db import qrcodes, users
from qr_portal.util import log
from qr_portal.util.docs import public_doc
from qr_portal.util.time import utcnow
from qr_portal.util.validation import normalize_email, to_object_id


def _debug(msg: str) -> None:
    log.debug("users", msg)


class UserExistsError(ValueError):
    """An account with this email is already registered."""


def public_user(doc: Mapping[str, Any]) -> Dict[str, Any]:
    """JSON-safe view of a user document. Never includes the password hash."""
    return public_doc(doc, exclude=("password",))


def session_user(doc: Mapping[str, Any]) -> Dict[str, Any]:
    """The minimal profile returned by the auth endpoints."""
    return {
        "id": str(doc["_id"]),
        "email": doc.get("email"),
        "name": doc.get("name"),
    }


def find_user_by_email(db: Database, email: str) -> Optional[Dict[str, Any]]:
    """Full document, including the password hash (used by login)."""
    e = normalize_email(email)
    if not e:
        return None
    return users(db).find_one({"email": e})


def find_user_by_id(db: Database, user_id: Any, *, include_password: bool = False) -> Optional[Dict[str, Any]]:
    oid = to_object_id(user_id)
    if oid is None:
        return None
    projection = None if include_password else {"password": 0}
    return users(db).find_one({"_id": oid}, projection)


def email_exists(db: Database, email: str) -> bool:
    return find_user_by_email(db, email) is not None


def create_user(
    db: Database,
    *,
    email: str,
    password_hash: str,
    name: Optional[str] = None,
) -> Dict[str, Any]:
    """Insert a new user and return it without the password.

    The pre-check is not atomic; the unique email index catches the race and
    reports it the same way.
    """
    e = normalize_email(email)
    if not e:
        raise ValueError("email_blank")
    if email_exists(db, e):
        raise UserExistsError("email_exists")

    now = utcnow()
    doc: Dict[str, Any] = {
        "email": e,
        "password": password_hash,
        "name": name,
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        result = users(db).insert_one(doc)
    except DuplicateKeyError as exc:
        raise UserExistsError("email_exists") from exc

    doc["_id"] = result.inserted_id
    doc.pop("password", None)
    _debug(f"created user {doc['_id']}")
    return doc


def update_user_qr_code(db: Database, user_id: Any, qr_code_id: ObjectId) -> bool:
    oid = to_object_id(user_id)
    if oid is None:
        return False
    result = users(db).update_one(
        {"_id": oid},
        {"$set": {"qrCodeId": qr_code_id, "updatedAt": utcnow()}},
    )
    return result.modified_count > 0


def delete_user(db: Database, user_id: Any) -> bool:
    """Hard delete. False if the id is malformed or nothing matched."""
    oid = to_object_id(user_id)
    if oid is None:
        return False
    result = users(db).delete_one({"_id": oid})
    return result.deleted_count > 0


def delete_user_qr_codes(db: Database, user_id: Any) -> int:
    oid = to_object_id(user_id)
    if oid is None:
        return 0
    return int(qrcodes(db).delete_many({"userId": oid}).deleted_count)
