import pytest
from bson import ObjectId

from conftest import add_user

from qr_portal.auth.crud import (
    UserExistsError,
    create_user,
    delete_user,
    delete_user_qr_codes,
    email_exists,
    find_user_by_email,
    find_user_by_id,
    public_user,
    update_user_qr_code,
)
from qr_portal.auth.security import verify_password
from qr_portal.db import qrcodes


def test_create_user_normalizes_email_and_hides_password(db) -> None:
    user = create_user(db, email="  Alice@Example.com ", password_hash="hash", name="Alice")

    assert user["email"] == "alice@example.com"
    assert "password" not in user
    assert isinstance(user["_id"], ObjectId)
    assert user["createdAt"] == user["updatedAt"]


def test_create_user_rejects_duplicate_email_case_insensitively(db) -> None:
    create_user(db, email="alice@example.com", password_hash="hash")

    with pytest.raises(UserExistsError):
        create_user(db, email="ALICE@example.com", password_hash="hash")


def test_find_by_email_includes_hash_but_by_id_does_not(db) -> None:
    created = add_user(db, "bob@example.com", password="Password123")

    by_email = find_user_by_email(db, "BOB@example.com")
    by_id = find_user_by_id(db, str(created["_id"]))

    assert by_email is not None and verify_password("Password123", by_email["password"])
    assert by_id is not None and "password" not in by_id
    assert find_user_by_id(db, created["_id"], include_password=True)["password"] == by_email["password"]


def test_lookups_with_malformed_or_unknown_ids(db) -> None:
    assert find_user_by_id(db, "not-an-id") is None
    assert find_user_by_id(db, str(ObjectId())) is None
    assert find_user_by_email(db, "") is None
    assert email_exists(db, "nobody@example.com") is False


def test_public_user_shape(db) -> None:
    user = add_user(db, "carol@example.com", name="Carol")

    view = public_user(find_user_by_id(db, user["_id"], include_password=True))

    assert view["id"] == str(user["_id"])
    assert "password" not in view and "_id" not in view
    assert view["createdAt"].endswith("Z")


def test_delete_user_and_qr_codes(db) -> None:
    user = add_user(db, "dave@example.com")
    qr_id = qrcodes(db).insert_one({"userId": user["_id"], "isPremium": False}).inserted_id
    assert update_user_qr_code(db, user["_id"], qr_id) is True

    assert delete_user(db, user["_id"]) is True
    assert delete_user_qr_codes(db, user["_id"]) == 1

    assert find_user_by_id(db, user["_id"]) is None
    assert delete_user(db, user["_id"]) is False
    assert delete_user(db, "bad-id") is False
