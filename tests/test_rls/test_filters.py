"""Tests for the RLS filter builder."""

import pytest

from workorder_access.rls.filters import (
    RLSFilterResult,
    build_row_filter,
    build_row_filter_for_find_by_id,
    policy_allows_access,
    supported_policies,
)
from workorder_access.rls.metadata import TABLES, TableMetadata
from workorder_access.rls.policies import RLSContext, RLSPolicy

WORK_ORDERS = TABLES["work_orders"]


def test_own_record_only_with_offset():
    result = build_row_filter(RLSContext("own_record_only", 42), TableMetadata(id_field="id"), 2)
    assert result == RLSFilterResult(clause="id = $3", params=(42,), applied=True)


@pytest.mark.parametrize("user_id", [None, 1, 99])
@pytest.mark.parametrize("policy", ["all_records", "public_resource", RLSPolicy.ALL_RECORDS])
def test_unfiltered_policies_are_unapplied(policy, user_id):
    result = build_row_filter(RLSContext(policy, user_id), WORK_ORDERS)
    assert result == RLSFilterResult(clause="", params=(), applied=False)


def test_deny_all():
    assert build_row_filter(RLSContext("deny_all", 7), WORK_ORDERS) == RLSFilterResult("1=0", (), True)


@pytest.mark.parametrize("policy", ["totally-unknown", "", "ALL_RECORDS", "all_records ", 3, ["all_records"]])
def test_unrecognized_policies_fail_closed(policy):
    assert build_row_filter(RLSContext(policy, 7), WORK_ORDERS) == RLSFilterResult("1=0", (), True)


def test_no_context_is_a_no_op():
    assert build_row_filter(None, WORK_ORDERS) == RLSFilterResult("", (), False)
    assert build_row_filter(RLSContext(None, 7), WORK_ORDERS) == RLSFilterResult("", (), False)


@pytest.mark.parametrize(
    "policy, clause",
    [
        ("own_work_orders_only", "customer_id = $1"),
        ("assigned_work_orders_only", "assigned_technician_id = $1"),
        ("own_invoices_only", "customer_id = $1"),
        ("own_contracts_only", "customer_id = $1"),
        ("own_record_only", "id = $1"),
    ],
)
def test_ownership_policies_use_default_fields(policy, clause):
    result = build_row_filter(RLSContext(policy, 5), TableMetadata())
    assert result.clause == clause
    assert result.params == (5,)
    assert result.applied is True


def test_field_names_come_from_metadata():
    metadata = TableMetadata(
        table_name="jobs",
        id_field="job_owner",
        customer_field="client_id",
        assigned_field="tech_id",
    )
    assert build_row_filter(RLSContext("own_record_only", 1), metadata).clause == "job_owner = $1"
    assert build_row_filter(RLSContext("own_work_orders_only", 1), metadata).clause == "client_id = $1"
    assert build_row_filter(RLSContext("assigned_work_orders_only", 1), metadata, 4).clause == "tech_id = $5"


def test_user_id_never_interpolated():
    hostile = "1 OR 1=1"
    result = build_row_filter(RLSContext("own_work_orders_only", hostile), WORK_ORDERS)
    assert result.clause == "customer_id = $1"
    assert result.params == (hostile,)


def test_ownership_policy_without_user_id_denies():
    assert build_row_filter(RLSContext("own_record_only", None), WORK_ORDERS) == RLSFilterResult("1=0", (), True)


@pytest.mark.parametrize("field", ["id; DROP TABLE users", "customer id", "", "1col", "customer_id\n"])
def test_metadata_rejects_unsafe_identifiers(field):
    with pytest.raises(ValueError):
        TableMetadata(customer_field=field)


@pytest.mark.parametrize("offset", [-1, 1.5, "2", True])
def test_invalid_param_offset_rejected(offset):
    with pytest.raises(ValueError):
        build_row_filter(RLSContext("own_record_only", 1), WORK_ORDERS, offset)


def test_find_by_id_reserves_primary_key_slot():
    context = RLSContext("own_work_orders_only", 42)
    assert build_row_filter_for_find_by_id(context, WORK_ORDERS).clause == "customer_id = $2"
    assert build_row_filter_for_find_by_id(context, WORK_ORDERS, 2).clause == "customer_id = $4"
    assert build_row_filter_for_find_by_id(RLSContext("deny_all", 42), WORK_ORDERS).clause == "1=0"


def test_policy_allows_access():
    assert policy_allows_access("all_records") is True
    assert policy_allows_access("own_record_only") is True
    assert policy_allows_access("deny_all") is False
    assert policy_allows_access("nope") is False
    assert policy_allows_access("") is False


def test_supported_policies_lists_every_member():
    assert supported_policies() == [p.value for p in RLSPolicy]
    assert len(supported_policies()) == 8
