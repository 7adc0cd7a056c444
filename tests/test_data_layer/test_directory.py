"""
Tests for the SQLAlchemy-backed user directory and role sync.

Uses db_session fixture: in-memory SQLite, rolled back after each test.
"""
from __future__ import annotations

import pytest
from sqlalchemy import select

from workorder_access.db.directory import SqlAlchemyUserDirectory, load_user_by_subject
from workorder_access.db.init_db import sync_roles
from workorder_access.errors import AuthenticationError
from workorder_access.models.security import Role, User
from workorder_access.permissions.loader import policy_config_from_dict

from tests.conftest import minimal_source


def test_sync_roles_creates_roles_from_config(db_session, policy_config):
    sync_roles(db_session, policy_config)
    db_session.commit()

    roles = {r.name: r.priority for r in db_session.scalars(select(Role)).all()}
    assert roles == policy_config.role_hierarchy()


def test_sync_roles_follows_reordered_priorities(db_session):
    source = minimal_source()
    sync_roles(db_session, policy_config_from_dict(source))

    source["roles"]["customer"]["priority"] = 5
    source["roles"]["admin"]["priority"] = 1
    for op in ("update", "delete"):
        source["resources"]["work_orders"]["permissions"][op]["minimumPriority"] = 1
    for op in ("create", "read"):
        source["resources"]["work_orders"]["permissions"][op]["minimumPriority"] = 5
    sync_roles(db_session, policy_config_from_dict(source))
    db_session.commit()

    roles = {r.name: r.priority for r in db_session.scalars(select(Role)).all()}
    assert roles == {"customer": 5, "admin": 1}


def test_existing_user_is_returned(db_session, policy_config):
    sync_roles(db_session, policy_config)
    tech = db_session.scalars(select(Role).where(Role.name == "technician")).one()
    user = User(external_subject="external|42", email="tina@example.com", role=tech, is_active=True)
    db_session.add(user)
    db_session.commit()

    found = SqlAlchemyUserDirectory(db_session).find_or_create({"sub": "external|42"})
    assert found.id == user.id
    assert found.role == "technician"
    assert found.is_active is True
    assert found.email == "tina@example.com"


def test_first_login_creates_user_with_default_role(db_session, policy_config):
    sync_roles(db_session, policy_config)

    created = SqlAlchemyUserDirectory(db_session).find_or_create(
        {"sub": "external|new", "email": "new@example.com", "given_name": "Nia"}
    )
    assert created.role == "customer"

    user = load_user_by_subject(db_session, "external|new")
    assert user is not None
    assert user.id == created.id
    assert user.first_name == "Nia"


def test_first_login_uses_role_claim_when_role_exists(db_session, policy_config):
    sync_roles(db_session, policy_config)
    directory = SqlAlchemyUserDirectory(db_session)

    assert directory.find_or_create({"sub": "external|d", "role": "Dispatcher"}).role == "dispatcher"
    assert directory.find_or_create({"sub": "external|g", "role": "ghost"}).role == "customer"


def test_inactive_user_reported_inactive(db_session, policy_config):
    sync_roles(db_session, policy_config)
    db_session.add(User(external_subject="external|gone", is_active=False))
    db_session.commit()

    found = SqlAlchemyUserDirectory(db_session).find_or_create({"sub": "external|gone"})
    assert found.is_active is False
    assert found.role is None


def test_load_user_by_subject_missing(db_session):
    assert load_user_by_subject(db_session, "external|missing") is None


def test_first_login_with_email_of_another_user_is_refused(db_session, policy_config):
    sync_roles(db_session, policy_config)
    db_session.add(User(external_subject="external|owner", email="shared@example.com", is_active=True))
    db_session.commit()

    with pytest.raises(AuthenticationError) as exc_info:
        SqlAlchemyUserDirectory(db_session).find_or_create({"sub": "external|other", "email": "shared@example.com"})
    assert exc_info.value.event_kind == "AUTH_IDENTITY_CONFLICT"
    assert exc_info.value.status_code == 403
    assert load_user_by_subject(db_session, "external|other") is None
