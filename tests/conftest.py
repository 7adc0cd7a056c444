"""
Pytest fixtures for the test suite.

Data-layer tests use an in-memory SQLite engine and a session that rolls back
after each test, so tests do not affect each other. Permission tests load the
bundled ``config/permissions.yaml`` or write their own source to ``tmp_path``.
"""
from __future__ import annotations

import time
from pathlib import Path

import jwt
import pytest
import yaml
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from workorder_access.permissions.loader import PolicyConfigLoader

TEST_DB_URL = "sqlite:///:memory:"
PERMISSIONS_PATH = Path(__file__).resolve().parents[1] / "config" / "permissions.yaml"
JWT_SECRET = "test-secret-0123456789-abcdefghijklmnop"


class RecordingSink:
    """SecurityEventSink that keeps events in memory."""

    def __init__(self) -> None:
        self.events = []

    def emit(self, event) -> None:
        self.events.append(event)

    @property
    def kinds(self) -> list[str]:
        return [e.kind for e in self.events]


def minimal_source() -> dict:
    """Smallest valid permission source: two roles, one resource."""
    return {
        "roles": {
            "customer": {"priority": 1},
            "admin": {"priority": 5},
        },
        "resources": {
            "work_orders": {
                "permissions": {
                    "create": {"minimumRole": "customer", "minimumPriority": 1},
                    "read": {"minimumRole": "customer", "minimumPriority": 1},
                    "update": {"minimumRole": "admin", "minimumPriority": 5},
                    "delete": {"minimumRole": "admin", "minimumPriority": 5},
                },
                "rowLevelSecurity": {
                    "customer": "own_work_orders_only",
                    "admin": "all_records",
                },
            }
        },
    }


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from workorder_access.db.base import Base
    from workorder_access.models import security, work_orders  # noqa: F401

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def policy_config():
    """PolicyConfig loaded from the bundled permission source."""
    return PolicyConfigLoader(PERMISSIONS_PATH).load()


@pytest.fixture
def write_source(tmp_path):
    """Write a permission source dict to a YAML file and return its path."""

    def _write(source: dict, name: str = "permissions.yaml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(source, sort_keys=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def events():
    return RecordingSink()


@pytest.fixture
def make_token():
    """Sign a token with the test secret. ``exp`` defaults to 5 minutes from now."""

    def _make(secret: str = JWT_SECRET, **claims) -> str:
        payload = {"exp": int(time.time()) + 300}
        payload.update(claims)
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make
