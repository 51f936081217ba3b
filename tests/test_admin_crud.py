from bson import ObjectId

from conftest import add_user

from qr_portal.admin.crud import (
    MAX_PAGE,
    clamp_pagination,
    demote_from_admin,
    find_admin_by_id,
    get_all_users,
    get_user_count,
    promote_to_admin,
    update_user_verification_status,
)
from qr_portal.auth.crud import find_user_by_id
from qr_portal.models import DEFAULT_ADMIN_PERMISSIONS, AdminPermission, has_admin_permission


def test_clamp_pagination() -> None:
    assert clamp_pagination(0, 0) == (1, 1)
    assert clamp_pagination(-3, 500) == (1, 100)
    assert clamp_pagination(2, 20) == (2, 20)
    assert clamp_pagination(10**22, 20) == (MAX_PAGE, 20)


def test_get_all_users_pages_and_totals(db) -> None:
    for i in range(25):
        add_user(db, f"user{i:02d}@example.com")

    first = get_all_users(db, page=1, limit=10)
    last = get_all_users(db, page=3, limit=10)

    assert first["total"] == 25
    assert first["pages"] == 3
    assert len(first["users"]) == 10
    assert len(last["users"]) == 5
    assert all("password" not in u for u in first["users"])


def test_get_all_users_beyond_last_page_is_empty(db) -> None:
    add_user(db, "solo@example.com")

    result = get_all_users(db, page=5, limit=10)

    assert result["users"] == []
    assert result["total"] == 1
    assert result["pages"] == 1


def test_search_matches_email_or_name_case_insensitively(db) -> None:
    add_user(db, "alice@example.com", name="Alice")
    add_user(db, "bob@example.com", name="Robert ALICESON")
    add_user(db, "carol@example.com", name="Carol")

    result = get_all_users(db, search="alice")

    assert {u["email"] for u in result["users"]} == {"alice@example.com", "bob@example.com"}
    assert result["total"] == 2


def test_search_is_literal(db) -> None:
    add_user(db, "abc@example.com")
    add_user(db, "a.c@example.com")

    assert {u["email"] for u in get_all_users(db, search="a.c")["users"]} == {"a.c@example.com"}
    assert get_all_users(db, search=".*")["total"] == 0


def test_user_count(db) -> None:
    assert get_user_count(db) == 0
    add_user(db, "one@example.com")
    add_user(db, "two@example.com")
    assert get_user_count(db) == 2


def test_verification_is_idempotent(db) -> None:
    user = add_user(db, "v@example.com")

    assert update_user_verification_status(db, user["_id"], True) is True
    assert update_user_verification_status(db, user["_id"], True) is True
    assert find_user_by_id(db, user["_id"])["emailVerified"] is True

    assert update_user_verification_status(db, ObjectId(), True) is False


def test_promote_and_demote(db) -> None:
    user = add_user(db, "p@example.com")
    assert find_admin_by_id(db, user["_id"]) is None

    assert promote_to_admin(db, user["_id"]) is True
    admin = find_admin_by_id(db, user["_id"])
    assert admin is not None
    assert admin["adminPermissions"] == [p.value for p in DEFAULT_ADMIN_PERMISSIONS]
    assert "adminSince" in admin
    assert has_admin_permission(admin, AdminPermission.DELETE_USERS)
    assert not has_admin_permission(admin, AdminPermission.MANAGE_ADMINS)

    assert demote_from_admin(db, user["_id"]) is True
    demoted = find_user_by_id(db, user["_id"])
    assert demoted["isAdmin"] is False
    assert "adminSince" not in demoted
    assert "adminPermissions" not in demoted
    assert find_admin_by_id(db, user["_id"]) is None

    # Repeating either call still reports success.
    assert demote_from_admin(db, user["_id"]) is True


def test_admin_flag_must_be_true_boolean(db) -> None:
    user = add_user(db, "truthy@example.com")
    db["users"].update_one({"_id": user["_id"]}, {"$set": {"isAdmin": "yes"}})

    assert find_admin_by_id(db, user["_id"]) is None
