"""Tests for resolving row-level security policies per caller and resource."""

import pytest

from workorder_access.errors import PolicyResolutionError
from workorder_access.identity.context import Caller, Provider
from workorder_access.permissions.loader import policy_config_from_dict
from workorder_access.rls.policies import RLSContext, RLSPolicy, RLSPolicyResolver, coerce_policy

from tests.conftest import minimal_source


def _caller(role: str, id: int | None = 10) -> Caller:
    return Caller(id=id, role=role, provider=Provider.EXTERNAL)


def test_parse_is_strict():
    assert RLSPolicy.parse("deny_all") is RLSPolicy.DENY_ALL
    assert RLSPolicy.parse(RLSPolicy.ALL_RECORDS) is RLSPolicy.ALL_RECORDS
    for value in ("", "nope", None, 1):
        with pytest.raises(PolicyResolutionError):
            RLSPolicy.parse(value)


def test_coerce_maps_unknown_to_deny_all(caplog):
    assert coerce_policy("own_record_only") is RLSPolicy.OWN_RECORD_ONLY
    assert coerce_policy("whatever") is RLSPolicy.DENY_ALL
    assert coerce_policy("") is RLSPolicy.DENY_ALL
    assert "Unknown row-level security policy" in caplog.text


def test_resolve_from_bundled_config(policy_config):
    resolver = RLSPolicyResolver(policy_config)
    assert resolver.resolve(_caller("customer", 3), "work_orders") == RLSContext(RLSPolicy.OWN_WORK_ORDERS_ONLY, 3)
    assert resolver.resolve(_caller("technician", 4), "work_orders") == RLSContext(
        RLSPolicy.ASSIGNED_WORK_ORDERS_ONLY, 4
    )
    assert resolver.resolve(_caller("admin"), "work_orders").policy is RLSPolicy.ALL_RECORDS
    assert resolver.resolve(_caller("technician"), "invoices").policy is RLSPolicy.DENY_ALL


def test_resource_without_rls_section_resolves_to_none(policy_config):
    resolver = RLSPolicyResolver(policy_config)
    assert resolver.get_row_level_security_policy("customer", "inventory") is None
    assert resolver.resolve(_caller("customer"), "inventory") is None


def test_role_missing_from_rls_section_is_denied():
    source = minimal_source()
    source["roles"]["technician"] = {"priority": 2}
    resolver = RLSPolicyResolver(policy_config_from_dict(source))
    assert resolver.get_row_level_security_policy("technician", "work_orders") is RLSPolicy.DENY_ALL


@pytest.mark.parametrize("role", ["", "ghost", "admin; DROP TABLE users;--"])
def test_unknown_or_hostile_roles_are_denied(policy_config, role):
    resolver = RLSPolicyResolver(policy_config)
    assert resolver.get_row_level_security_policy(role, "work_orders") is RLSPolicy.DENY_ALL


def test_unrecognized_configured_policy_is_denied():
    source = minimal_source()
    source["resources"]["work_orders"]["rowLevelSecurity"]["customer"] = "see_everything"
    resolver = RLSPolicyResolver(policy_config_from_dict(source))
    assert resolver.get_row_level_security_policy("customer", "work_orders") is RLSPolicy.DENY_ALL


def test_configured_policies_resolve_from_a_built_config():
    config = policy_config_from_dict(minimal_source())
    resolver = RLSPolicyResolver(config)
    assert callable(config.row_level_security)
    assert config.row_level_security("Customer", "work_orders") == "own_work_orders_only"
    assert resolver.get_row_level_security_policy("customer", "work_orders") is RLSPolicy.OWN_WORK_ORDERS_ONLY
    assert resolver.get_row_level_security_policy("admin", "work_orders") is RLSPolicy.ALL_RECORDS
