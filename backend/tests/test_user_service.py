import bcrypt
import pytest

from motocare.domain.entities import Branch, StoreSettings
from motocare.domain.permissions import Department, Leveled, Toggle
from motocare.services import settings_service, user_service
from motocare.services.settings_service import SettingsError
from motocare.services.user_service import UserConflictError, UserError, UserNotFoundError

from conftest import make_state


@pytest.fixture
def shop():
    return make_state(departments=(
        Department("dept_sales", "Bán hàng", permissions={
            "sales": Leveled("restricted", {"create": True, "delete": False}),
            "userManager": Toggle(False),
        }),
        Department("dept_admin", "Quản trị", permissions={"userManager": Toggle(True)}),
    ))


def add_user(state, ids, **overrides):
    data = {"name": "Trần Thu", "login_phone": "0901", "department_ids": ["dept_sales"]}
    data.update(overrides)
    return user_service.create_user(state, data, "secret123", bcrypt_rounds=4, id_factory=ids)


def test_create_user_hashes_password(shop, ids):
    result = add_user(shop, ids)
    user = result.value
    assert user.password_hash != "secret123"
    assert bcrypt.checkpw(b"secret123", user.password_hash.encode("utf-8"))
    assert not bcrypt.checkpw(b"wrong", user.password_hash.encode("utf-8"))
    assert "passwordHash" not in user.to_dict()
    assert "passwordHash" in user.to_dict(include_secret=True)


def test_login_phone_is_unique(shop, ids):
    state = add_user(shop, ids).state
    with pytest.raises(UserConflictError):
        add_user(state, ids, name="Người khác")
    with pytest.raises(UserError):
        add_user(state, ids, login_phone="0902", department_ids=["dept_ghost"])
    with pytest.raises(UserError):
        add_user(state, ids, login_phone="   ")


def test_update_status_and_password(shop, ids):
    created = add_user(shop, ids)
    user_id = created.value.id
    updated = user_service.update_user(created.state, user_id, {"status": "inactive"}, "newpass", bcrypt_rounds=4)
    assert updated.value.status == "inactive"
    assert bcrypt.checkpw(b"newpass", updated.value.password_hash.encode("utf-8"))
    assert updated.value.login_phone == "0901"
    with pytest.raises(UserNotFoundError):
        user_service.update_user(created.state, "U404", {})


def test_permissions_follow_departments(shop, ids):
    state = add_user(shop, ids).state
    user = state.users[0]
    assert user_service.has_permission(state, user, "sales", "create")
    assert not user_service.has_permission(state, user, "sales", "delete")
    assert not user_service.has_permission(state, user, "userManager")

    state = user_service.delete_department(state, "dept_sales").state
    assert state.users[0].department_ids == ()
    assert not user_service.has_permission(state, state.users[0], "sales", "create")


def test_save_department_parses_permissions(shop, ids):
    created = user_service.save_department(
        shop, {"name": "Kho", "permissions": {"inventory": {"level": "all", "details": {}}}}, id_factory=ids,
    )
    assert created.value.allows("inventory", "delete")
    replaced = user_service.save_department(created.state, {"name": "Kho chính", "permissions": {}}, created.value.id)
    assert replaced.value.name == "Kho chính"
    assert not replaced.value.allows("inventory")
    with pytest.raises(UserError):
        user_service.save_department(shop, {"name": "Hỏng", "permissions": {"sales": "yes"}}, id_factory=ids)
    with pytest.raises(UserNotFoundError):
        user_service.save_department(shop, {"name": "X"}, "dept_ghost")


def test_search_users(shop, ids):
    state = add_user(shop, ids, email="thu@example.com").state
    state = add_user(state, ids, name="Lê Hải", login_phone="0902").state
    assert [u.name for u in user_service.search_users(state, "example")] == ["Trần Thu"]
    assert len(user_service.search_users(state, "")) == 2


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def test_update_settings_and_branch_fallback():
    state = make_state(current_branch_id="q2")
    result = settings_service.update_settings(state, {
        "name": "MotoCare Thủ Đức",
        "branches": [{"id": "main", "name": "Chi nhánh Chính"}, {"id": "td", "name": "Thủ Đức"}],
        "unknown": "ignored",
    })
    assert result.state.store_settings.name == "MotoCare Thủ Đức"
    assert result.state.store_settings.branch_ids() == ["main", "td"]
    # The selected branch was removed
    assert result.state.current_branch_id == "main"


@pytest.mark.parametrize("branches", [
    [],
    [{"id": "a", "name": "A"}, {"id": "a", "name": "B"}],
    [{"id": "", "name": "A"}],
])
def test_update_settings_rejects_bad_branch_lists(branches):
    with pytest.raises(SettingsError):
        settings_service.update_settings(make_state(), {"branches": branches})


def test_select_and_resolve_branch():
    state = make_state()
    assert settings_service.select_branch(state, "q2").state.current_branch_id == "q2"
    with pytest.raises(SettingsError):
        settings_service.select_branch(state, "q9")
    assert settings_service.resolve_branch(state, None) == "main"
    assert settings_service.resolve_branch(state, "q2") == "q2"
    with pytest.raises(SettingsError):
        settings_service.resolve_branch(state, "q9")


def test_settings_round_trip():
    settings = StoreSettings(name="A", bank_name="VCB", branches=(Branch("main", "Chính"),))
    assert StoreSettings.from_dict(settings.to_dict()) == settings
