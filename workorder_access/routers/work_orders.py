from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from workorder_access.db.session import get_db
from workorder_access.models.work_orders import Invoice, WorkOrder
from workorder_access.schemas.work_orders import InvoiceOut, WorkOrderOut
from workorder_access.security.dependencies import require_permission

router = APIRouter(tags=["work_orders"])


@router.get(
    "/work-orders",
    response_model=list[WorkOrderOut],
    dependencies=[Depends(require_permission("work_orders", "read"))],
)
def list_work_orders(db: Session = Depends(get_db)) -> list[WorkOrder]:
    # Row-level security is applied transparently via workorder_access/db/filters.py.
    return list(db.scalars(select(WorkOrder).order_by(WorkOrder.id)).all())


@router.get(
    "/work-orders/{id}",
    response_model=WorkOrderOut,
    dependencies=[Depends(require_permission("work_orders", "read"))],
)
def get_work_order(id: int, db: Session = Depends(get_db)) -> WorkOrder:
    work_order = db.scalars(select(WorkOrder).where(WorkOrder.id == id)).first()
    if work_order is None:
        # Rows hidden by row-level security look exactly like missing rows.
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Work order not found")
    return work_order


@router.get(
    "/invoices",
    response_model=list[InvoiceOut],
    dependencies=[Depends(require_permission("invoices", "read"))],
)
def list_invoices(db: Session = Depends(get_db)) -> list[Invoice]:
    return list(db.scalars(select(Invoice).order_by(Invoice.id)).all())
