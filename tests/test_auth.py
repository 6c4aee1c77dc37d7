import pytest

from medcrm.auth import AuthService
from medcrm.errors import AccessDeniedError, ValidationError
from medcrm.models import RoleType


@pytest.fixture()
def auth(fake_client, keeper, db):
    fake_client.auth.session = None
    fake_client.auth.users["amy@medcrm.test"] = ("secret", "amy")
    fake_client.tables["profiles"] = [
        {"id": "amy", "full_name": "Amy", "email": "amy@medcrm.test", "role_type": "manager"},
    ]
    return AuthService(fake_client, keeper, db)


def test_sign_in_loads_profile(auth):
    assert auth.sign_in("amy@medcrm.test", "secret") is None
    assert auth.is_authenticated
    assert auth.user_id == "amy"
    assert auth.profile.role_type == RoleType.MANAGER
    assert auth.is_manager_or_admin


def test_bad_password_returns_message(auth):
    assert auth.sign_in("amy@medcrm.test", "wrong") == "Invalid login credentials"
    assert not auth.is_authenticated
    assert auth.profile is None


def test_missing_credentials(auth, fake_client):
    assert auth.sign_in("", "secret") == "Email and password are required"
    assert fake_client.auth.session is None


def test_sign_up_sets_non_default_role(auth, fake_client):
    # the profile row itself is created by a database trigger
    fake_client.tables["profiles"].append({"id": "user-101", "full_name": "Bob", "role_type": "sales"})
    assert auth.sign_up("bob@medcrm.test", "hunter22", "Bob", "Admin") is None
    assert fake_client.rows("profiles")[1]["role_type"] == "admin"


def test_sign_up_sales_leaves_profile_alone(auth, fake_client):
    assert auth.sign_up("cat@medcrm.test", "hunter22", "Cat") is None
    assert fake_client.count("profiles", "update") == 0


def test_sign_out_clears_session_and_profile(auth, fake_client, preferences):
    auth.sign_in("amy@medcrm.test", "secret")
    preferences.set("hospital_sort", {"key": "name", "direction": "asc"})
    auth.sign_out()
    assert not auth.is_authenticated
    assert auth.profile is None
    assert preferences.keys() == []
    assert fake_client.auth.sign_out_calls == 1


def test_update_profile_reloads(auth, fake_client):
    auth.sign_in("amy@medcrm.test", "secret")
    assert auth.update_profile(full_name="Amy Lin") is True
    assert auth.profile.full_name == "Amy Lin"


def test_short_password_is_rejected_before_sign_up(auth, fake_client):
    assert auth.sign_up("dan@medcrm.test", "12345", "Dan") == "Password must be at least 6 characters"
    assert "dan@medcrm.test" not in fake_client.auth.users


@pytest.fixture()
def admin(auth, fake_client):
    fake_client.auth.users["ann@medcrm.test"] = ("secret", "ann")
    fake_client.tables["profiles"].append(
        {"id": "ann", "full_name": "Ann", "email": "ann@medcrm.test", "role_type": "admin", "role": "Director"})
    auth.sign_in("ann@medcrm.test", "secret")
    return auth


def test_user_management_is_admin_only(auth):
    auth.sign_in("amy@medcrm.test", "secret")
    with pytest.raises(AccessDeniedError):
        auth.list_users()
    with pytest.raises(AccessDeniedError):
        auth.update_user("amy", role_type="admin")
    with pytest.raises(AccessDeniedError):
        auth.delete_user("ann")


def test_admin_lists_users_by_name(admin):
    users = admin.list_users()
    assert [u.full_name for u in users] == ["Amy", "Ann"]
    assert users[1].role == "Director"


def test_admin_changes_role_and_title(admin, fake_client):
    assert admin.update_user("amy", role_type="Sales", role="Account Manager", region="South") is True
    amy = fake_client.rows("profiles")[0]
    assert (amy["role_type"], amy["role"], amy["region"]) == ("sales", "Account Manager", "South")


def test_admin_editing_self_reloads_own_profile(admin):
    admin.update_user("ann", full_name="Ann Wu")
    assert admin.profile.full_name == "Ann Wu"
    assert admin.is_admin


def test_update_user_rejects_bad_values(admin, fake_client):
    with pytest.raises(ValidationError):
        admin.update_user("amy", full_name="  ")
    with pytest.raises(ValidationError):
        admin.update_user("amy", role_type="owner")
    assert fake_client.count("profiles", "update") == 0


def test_delete_user_removes_profile_but_not_self(admin, fake_client):
    with pytest.raises(ValidationError):
        admin.delete_user("ann")
    assert admin.delete_user("amy") is True
    assert [r["id"] for r in fake_client.rows("profiles")] == ["ann"]
