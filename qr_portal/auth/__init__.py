"""Authentication / authorization helpers.

This project keeps auth lightweight:

- Users collection (email/password hash, optional admin flag + permissions)
- JWT session tokens, signed with JWT_SECRET

Browsers get the token in an httpOnly, SameSite=strict cookie set by
`/api/auth/login`. API clients may send `Authorization: Bearer <token>`
instead; when both are present the header wins.
"""

from .crud import create_user, find_user_by_email, find_user_by_id
from .deps import get_current_user, require_admin, validate_admin_request

__all__ = [
    "create_user",
    "find_user_by_email",
    "find_user_by_id",
    "get_current_user",
    "require_admin",
    "validate_admin_request",
]
