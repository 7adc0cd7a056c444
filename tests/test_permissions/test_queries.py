"""Tests for role hierarchy and permission decisions."""

import itertools

import pytest

from workorder_access.permissions.config import normalize_role_name


def test_higher_priority_meets_lower_minimum(policy_config):
    priorities = policy_config.role_hierarchy()
    for low, high in itertools.permutations(priorities, 2):
        if priorities[low] < priorities[high]:
            assert policy_config.has_minimum_role(high, low) is True
            assert policy_config.has_minimum_role(low, high) is False


def test_role_meets_its_own_minimum(policy_config):
    for role in policy_config.roles:
        assert policy_config.has_minimum_role(role, role) is True


def test_minimum_role_false_for_unknown_roles(policy_config):
    assert policy_config.has_minimum_role("ghost", "customer") is False
    assert policy_config.has_minimum_role("admin", "ghost") is False
    assert policy_config.has_minimum_role(None, "customer") is False


@pytest.mark.parametrize(
    "resource, operation",
    [("payroll", "read"), ("work_orders", "archive"), ("", ""), ("work_orders", "READ")],
)
def test_absent_resource_or_operation_is_denied_for_every_role(policy_config, resource, operation):
    for role in policy_config.roles:
        assert policy_config.has_permission(role, resource, operation) is False


def test_permission_is_a_single_priority_inequality(policy_config):
    for resource, ops in policy_config.resources.items():
        for op, perm in ops.items():
            for role in policy_config.roles.values():
                expected = not perm.disabled and role.priority >= perm.minimum_priority
                assert policy_config.has_permission(role.name, resource, op) is expected


def test_disabled_operation_denied_even_to_admin(policy_config):
    assert policy_config.permission("roles", "delete").disabled is True
    assert policy_config.has_permission("admin", "roles", "delete") is False
    assert policy_config.minimum_role("roles", "delete") is None


def test_role_lookup_is_case_insensitive(policy_config):
    assert policy_config.role_priority("Admin") == 5
    assert policy_config.role_priority("  DISPATCHER ") == 3
    assert policy_config.has_permission("MANAGER", "work_orders", "delete") is True


def test_unknown_role_priority_is_none_not_zero(policy_config):
    assert policy_config.role_priority("ghost") is None
    assert policy_config.role_priority("") is None
    assert policy_config.role_priority(5) is None


@pytest.mark.parametrize(
    "role",
    ["admin; DROP TABLE users;--", "admin'--", "admin\x00", ["admin"], {"admin": 1}, None, 5, "adm in"],
)
def test_hostile_role_values_never_match(policy_config, role):
    assert normalize_role_name(role) is None
    assert policy_config.role_priority(role) is None
    assert policy_config.has_permission(role, "work_orders", "read") is False
    assert policy_config.has_minimum_role(role, "customer") is False


def test_customer_cannot_delete_work_orders(policy_config):
    assert policy_config.has_permission("customer", "work_orders", "read") is True
    assert policy_config.has_permission("customer", "work_orders", "delete") is False
    assert policy_config.minimum_role("work_orders", "delete") == "manager"


def test_row_level_security_lookup(policy_config):
    assert policy_config.row_level_security("technician", "work_orders") == "assigned_work_orders_only"
    assert policy_config.row_level_security("CUSTOMER", "invoices") == "own_invoices_only"
    assert policy_config.row_level_security("customer", "inventory") is None
    assert policy_config.row_level_security("ghost", "work_orders") is None
