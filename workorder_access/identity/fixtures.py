"""
In-memory identities for the internal-test provider.

These never touch durable storage. Ids are negative so a synthetic identity
can never match a real row's foreign key.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class InternalTestUser:
    id: int
    subject: str
    email: str
    role: str
    first_name: str
    last_name: str
    is_active: bool = True


INTERNAL_TEST_USERS: tuple[InternalTestUser, ...] = (
    InternalTestUser(
        id=-1,
        subject="internal-test|admin",
        email="admin@internal.test",
        role="admin",
        first_name="Ada",
        last_name="Admin",
    ),
    InternalTestUser(
        id=-2,
        subject="internal-test|manager",
        email="manager@internal.test",
        role="manager",
        first_name="Max",
        last_name="Manager",
    ),
    InternalTestUser(
        id=-3,
        subject="internal-test|dispatcher",
        email="dispatcher@internal.test",
        role="dispatcher",
        first_name="Dana",
        last_name="Dispatcher",
    ),
    InternalTestUser(
        id=-4,
        subject="internal-test|technician",
        email="technician@internal.test",
        role="technician",
        first_name="Tom",
        last_name="Technician",
    ),
    InternalTestUser(
        id=-5,
        subject="internal-test|customer",
        email="customer@internal.test",
        role="customer",
        first_name="Cora",
        last_name="Customer",
    ),
    InternalTestUser(
        id=-6,
        subject="internal-test|inactive",
        email="inactive@internal.test",
        role="customer",
        first_name="Ian",
        last_name="Inactive",
        is_active=False,
    ),
)
