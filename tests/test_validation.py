from bson import ObjectId

from qr_portal.util.validation import (
    is_valid_email,
    is_valid_object_id,
    normalize_email,
    sanitize_input,
    to_object_id,
    validate_password,
)


def test_email_format() -> None:
    assert is_valid_email("alice@example.com")
    assert is_valid_email("a.b+tag@sub.example.org")
    assert not is_valid_email("alice@example")
    assert not is_valid_email("alice example@x.com")
    assert not is_valid_email("@example.com")
    assert not is_valid_email("")


def test_normalize_email_trims_and_lowercases() -> None:
    assert normalize_email("  Alice@Example.COM ") == "alice@example.com"


def test_password_rules_report_first_failure() -> None:
    assert validate_password("Short1") == (False, "Password must be at least 8 characters long")
    assert validate_password("PASSWORD123") == (False, "Password must contain at least one lowercase letter")
    assert validate_password("password123") == (False, "Password must contain at least one uppercase letter")
    assert validate_password("Passwordabc") == (False, "Password must contain at least one number")
    assert validate_password("Password123") == (True, None)


def test_sanitize_input_strips_markup() -> None:
    assert sanitize_input("<b>Alice</b>") == "Alice"
    assert sanitize_input("Bob<script>alert(1)</script>") == "Bob"
    assert sanitize_input("&lt;img src=x onerror=alert(1)&gt;Carol") == "Carol"
    assert sanitize_input("  plain  ") == "plain"


def test_object_id_checks() -> None:
    oid = ObjectId()

    assert is_valid_object_id(str(oid))
    assert is_valid_object_id(oid)
    assert not is_valid_object_id("not-an-id")
    assert not is_valid_object_id(123)
    assert not is_valid_object_id(None)

    assert to_object_id(str(oid)) == oid
    assert to_object_id(oid) is oid
    assert to_object_id("zzz") is None
