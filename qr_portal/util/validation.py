from __future__ import annotations

import html
import re
from typing import Any, Optional, Tuple

from bson import ObjectId


_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_TAG_RE = re.compile(r"<[^>]*>")
_BLOCK_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)

PASSWORD_MIN_LENGTH = 8


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def validate_password(password: str) -> Tuple[bool, Optional[str]]:
    """Password strength: at least 8 characters, one lowercase, one uppercase, one digit.

    Returns (is_valid, error_message).
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        return False, f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
    if not re.search(r"[a-z]", password):
        return False, "Password must contain at least one lowercase letter"
    if not re.search(r"[A-Z]", password):
        return False, "Password must contain at least one uppercase letter"
    if not re.search(r"[0-9]", password):
        return False, "Password must contain at least one number"
    return True, None


def sanitize_input(value: str) -> str:
    """Strip all markup from user-supplied text, keeping the text content."""
    cleaned = _BLOCK_RE.sub("", value or "")
    cleaned = _TAG_RE.sub("", cleaned)
    # Entities are decoded once, then anything that became a tag is dropped again.
    return _TAG_RE.sub("", html.unescape(cleaned)).strip()


def is_valid_object_id(value: Any) -> bool:
    return isinstance(value, (str, ObjectId)) and ObjectId.is_valid(value)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """ObjectId for a path/claim value, or None when malformed."""
    if isinstance(value, ObjectId):
        return value
    if not is_valid_object_id(value):
        return None
    return ObjectId(value)
