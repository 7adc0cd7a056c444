from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from workorder_access.db.base import Base
from workorder_access.models.security import Role, User
from workorder_access.models.work_orders import Contract, Invoice, WorkOrder
from workorder_access.permissions.config import PolicyConfig

logger = logging.getLogger(__name__)


def init_db(engine: Engine, session_factory: sessionmaker[Session], config: PolicyConfig, *, seed_demo: bool = True) -> None:
    """
    Create tables, sync roles from the permission config, optionally seed demo rows.

    Role priorities in the database follow the loaded PolicyConfig; the
    permission source stays the single source of truth.
    """

    Base.metadata.create_all(bind=engine)

    with session_factory() as db:
        sync_roles(db, config)
        if seed_demo and not _has_seed_data(db):
            _seed(db)
        db.commit()


def sync_roles(db: Session, config: PolicyConfig) -> None:
    existing = {role.name: role for role in db.scalars(select(Role)).all()}

    # Clear priorities first so a reordering never trips the unique constraint.
    changed = [existing[name] for name, cfg in config.roles.items() if name in existing and existing[name].priority != cfg.priority]
    for offset, role in enumerate(changed, start=1):
        role.priority = -offset
    db.flush()

    for name, cfg in config.roles.items():
        role = existing.get(name)
        if role is None:
            db.add(Role(name=name, priority=cfg.priority, description=cfg.description))
        else:
            role.priority = cfg.priority
            role.description = cfg.description
    db.flush()
    logger.debug("Roles synced from permission config count=%d", len(config.roles))


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(User.id).limit(1)).first() is not None


def _seed(db: Session) -> None:
    roles = {role.name: role for role in db.scalars(select(Role)).all()}

    def user(subject: str, email: str, first: str, last: str, role: str) -> User:
        return User(
            external_subject=subject,
            email=email,
            first_name=first,
            last_name=last,
            role=roles.get(role),
            is_active=True,
        )

    admin = user("external|1001", "olga.owner@example.com", "Olga", "Owner", "admin")
    dispatcher = user("external|1002", "dave.dispatch@example.com", "Dave", "Dispatch", "dispatcher")
    tech = user("external|1003", "tina.tech@example.com", "Tina", "Tech", "technician")
    customer_a = user("external|1004", "carl.customer@example.com", "Carl", "Customer", "customer")
    customer_b = user("external|1005", "cleo.client@example.com", "Cleo", "Client", "customer")
    db.add_all([admin, dispatcher, tech, customer_a, customer_b])
    db.flush()

    wo1 = WorkOrder(
        work_order_number="WO-2026-0001",
        summary="Replace water heater",
        customer_id=customer_a.id,
        assigned_technician_id=tech.id,
    )
    wo2 = WorkOrder(
        work_order_number="WO-2026-0002",
        summary="Annual HVAC inspection",
        customer_id=customer_b.id,
        assigned_technician_id=tech.id,
    )
    wo3 = WorkOrder(
        work_order_number="WO-2026-0003",
        summary="Leaking faucet",
        customer_id=customer_a.id,
        assigned_technician_id=None,
    )
    db.add_all([wo1, wo2, wo3])
    db.flush()

    db.add_all(
        [
            Invoice(invoice_number="INV-2026-0001", customer_id=customer_a.id, work_order_id=wo1.id, total=1250.00),
            Invoice(invoice_number="INV-2026-0002", customer_id=customer_b.id, work_order_id=wo2.id, total=180.00),
            Contract(contract_number="CT-2026-0001", customer_id=customer_b.id),
        ]
    )
