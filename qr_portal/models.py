"""Domain vocabulary shared by the auth and admin layers.

User documents stay plain dicts (as returned by pymongo); this module only
holds the closed sets that gate admin behaviour and helpers to check them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional


class AdminPermission(str, Enum):
    MANAGE_USERS = "manage_users"
    DELETE_USERS = "delete_users"
    VERIFY_EMAILS = "verify_emails"
    VIEW_ANALYTICS = "view_analytics"
    MANAGE_ADMINS = "manage_admins"


class AuditAction(str, Enum):
    DELETE_USER = "delete_user"
    VERIFY_EMAIL = "verify_email"
    PROMOTE_ADMIN = "promote_admin"
    DEMOTE_ADMIN = "demote_admin"
    LOGIN = "login"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


# Granted on promotion.
DEFAULT_ADMIN_PERMISSIONS: List[AdminPermission] = [
    AdminPermission.MANAGE_USERS,
    AdminPermission.DELETE_USERS,
    AdminPermission.VERIFY_EMAILS,
]

# Shown when an admin lacks the permission an operation needs.
PERMISSION_DENIED_MESSAGES: Dict[AdminPermission, str] = {
    AdminPermission.MANAGE_USERS: "You do not have permission to manage users",
    AdminPermission.DELETE_USERS: "You do not have permission to delete users",
    AdminPermission.VERIFY_EMAILS: "You do not have permission to verify emails",
    AdminPermission.VIEW_ANALYTICS: "You do not have permission to view analytics",
    AdminPermission.MANAGE_ADMINS: "You do not have permission to manage admins",
}


def permission_values(permissions: Iterable[AdminPermission]) -> List[str]:
    """Serialized form stored on the user document."""
    return [AdminPermission(p).value for p in permissions]


def parse_permissions(raw: Optional[Iterable[Any]]) -> set[AdminPermission]:
    """Known permissions on a stored document; unknown tags are ignored."""
    out: set[AdminPermission] = set()
    for item in raw or ():
        try:
            out.add(AdminPermission(item))
        except ValueError:
            continue
    return out


def is_admin_user(user: Any) -> bool:
    return isinstance(user, Mapping) and user.get("isAdmin") is True


def has_admin_permission(user: Mapping[str, Any], permission: AdminPermission) -> bool:
    if not is_admin_user(user):
        return False
    return AdminPermission(permission) in parse_permissions(user.get("adminPermissions"))
