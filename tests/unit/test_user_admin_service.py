import pytest
from fastapi import HTTPException

from app.modules.profiles.service import ProfileService
from app.modules.users.service import UserAdminService
from tests.conftest import FakeAuth, FakeSupabase, add_profile


@pytest.fixture
def admin_db():
    db = FakeSupabase(auth=FakeAuth())
    db.auth.add_user("u1", "old@example.com", "Secret123", "tok1")
    db.auth.add_user("u2", "taken@example.com", "Secret123", "tok2")
    add_profile(db, "u1")
    return db


@pytest.fixture
def users(admin_db):
    return UserAdminService(admin_db, ProfileService(admin_db))


def test_list_users(users):
    assert sorted(u.id for u in users.list_users()) == ["u1", "u2"]


def test_get_user(users):
    assert users.get_user("u1").email == "old@example.com"


def test_get_unknown_user(users):
    with pytest.raises(HTTPException) as excinfo:
        users.get_user("missing")
    assert excinfo.value.status_code == 404


def test_update_email_changes_auth_user_and_profile(admin_db, users):
    assert users.update_email("u1", "new@example.com").email == "new@example.com"
    assert "new@example.com" in admin_db.auth.users
    assert admin_db.rows("user_profiles", user_id="u1")[0]["email"] == "new@example.com"


def test_update_email_without_profile_still_succeeds(admin_db, users):
    assert users.update_email("u2", "second@example.com").email == "second@example.com"


def test_update_email_to_taken_address(admin_db, users):
    with pytest.raises(HTTPException) as excinfo:
        users.update_email("u1", "taken@example.com")
    assert excinfo.value.status_code == 400
    assert admin_db.rows("user_profiles", user_id="u1")[0]["email"] == "u1@example.com"
