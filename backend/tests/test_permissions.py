"""
Role -> action mapping tests.
"""

from types import SimpleNamespace

import pytest

from cofitearia.errors import PermissionDeniedError
from cofitearia.permissions import (
    ALL_ACTIONS,
    Role,
    STAFF_ACTIONS,
    has_permission,
    permissions_for,
    require_permission,
)


def _user(role, active=True):
    return SimpleNamespace(username=f"{role.lower()}_user", role=role, is_active=active)


class TestRoleMapping:

    @pytest.mark.parametrize("action", sorted(ALL_ACTIONS))
    def test_owner_has_everything(self, action):
        assert has_permission(_user(Role.OWNER), action)

    @pytest.mark.parametrize("action", sorted(ALL_ACTIONS))
    def test_manager_has_everything_but_user_deletion_and_settings(self, action):
        expected = action not in ("DELETE_USER", "SYSTEM_SETTINGS")
        assert has_permission(_user(Role.MANAGER), action) is expected

    @pytest.mark.parametrize("role", [Role.STAFF, Role.PWD_STAFF])
    @pytest.mark.parametrize("action", sorted(ALL_ACTIONS))
    def test_staff_roles_share_the_basic_set(self, role, action):
        assert has_permission(_user(role), action) is (action in STAFF_ACTIONS)

    def test_staff_basic_set(self):
        assert STAFF_ACTIONS == {"VIEW_INVENTORY", "PROCESS_SALE", "VIEW_SALES", "UPDATE_STOCK"}

    @pytest.mark.parametrize("role", [Role.OWNER, Role.MANAGER, Role.STAFF, Role.PWD_STAFF])
    def test_inactive_users_have_nothing(self, role):
        assert permissions_for(_user(role, active=False)) == []

    def test_no_user_has_nothing(self):
        assert has_permission(None, "VIEW_SALES") is False

    def test_unknown_role_has_nothing(self):
        assert has_permission(_user("JANITOR"), "VIEW_SALES") is False


class TestRequirePermission:

    def test_passes_silently(self):
        require_permission(_user(Role.STAFF), "PROCESS_SALE")

    def test_raises_with_required_action(self):
        with pytest.raises(PermissionDeniedError) as exc_info:
            require_permission(_user(Role.STAFF), "DELETE_USER")
        assert exc_info.value.details == {"required_permission": "DELETE_USER"}
