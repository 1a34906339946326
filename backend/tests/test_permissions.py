"""
Role and capability table tests.

Verifies:
- Each role's default capabilities
- The sidebar menu derived from them
- Per-user grants only add grantable capabilities
"""

import pytest

from eno.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    GRANTABLE_PERMISSIONS,
    PERMISSION_DEFINITIONS,
    PermissionCategory,
    Role,
    capabilities_for,
    get_all_permission_codes,
    get_permission_definition,
    get_permissions_by_category,
    menu_for,
    validate_permission_code,
)


def menu_keys(role, extra=()):
    return [item.key for item in menu_for(role, extra)]


class TestRoles:

    @pytest.mark.parametrize("value,expected", [
        ("ceo", Role.CEO), (" Partner ", Role.PARTNER), (Role.SECRETARY, Role.SECRETARY),
    ])
    def test_parse(self, value, expected):
        assert Role.parse(value) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Role.parse("admin")

    def test_every_role_has_defaults(self):
        assert set(DEFAULT_ROLE_PERMISSIONS) == set(Role)

    def test_ceo_has_everything_but_partner_space_and_alerts(self):
        caps = capabilities_for("ceo")
        assert "MANAGE_SETTINGS" in caps
        assert "VIEW_PARTNER_SPACE" not in caps
        assert "RECEIVE_LOW_STOCK_ALERTS" not in caps

    def test_partner_is_narrow(self):
        caps = capabilities_for("partner")
        assert "VIEW_PARTNER_SPACE" in caps
        assert not {"VIEW_ACCOUNTING", "VIEW_SALARIES", "MANAGE_PARTNERS"} & caps

    def test_grants_only_add_grantable(self):
        caps = capabilities_for("secretary", ["EXPORT_DATA", "MANAGE_SETTINGS"])
        assert "EXPORT_DATA" in caps
        assert "MANAGE_SETTINGS" not in caps


class TestMenu:

    def test_menus_per_role(self):
        assert menu_keys("ceo") == [
            "home", "statistics", "accounting", "documents", "salaries", "users",
            "partners", "stock", "notifications", "activity-log", "export", "settings",
        ]
        assert menu_keys("accountant") == [
            "home", "accounting", "documents", "salaries", "stock", "notifications",
        ]
        assert menu_keys("secretary") == ["home", "partners", "notifications"]
        assert menu_keys("partner") == ["home", "partner-view", "notifications"]

    def test_granted_export_shows_in_menu(self):
        assert "export" in menu_keys("accountant", ["EXPORT_DATA"])


class TestDefinitions:

    def test_codes_are_unique(self):
        codes = get_all_permission_codes()
        assert len(codes) == len(set(codes)) == len(PERMISSION_DEFINITIONS)

    def test_grantable_are_defined(self):
        assert all(validate_permission_code(code) for code in GRANTABLE_PERMISSIONS)
        assert not validate_permission_code("FLY")

    def test_lookup(self):
        assert get_permission_definition("EXPORT_DATA")["category"] == PermissionCategory.ACCOUNTING
        assert get_permission_definition("NOPE") is None
        stock_codes = [perm[0] for perm in get_permissions_by_category(PermissionCategory.STOCK)]
        assert "MANAGE_STOCK" in stock_codes
