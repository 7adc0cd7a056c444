from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class WorkOrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    work_order_number: str
    summary: str
    status: str
    customer_id: int
    assigned_technician_id: int | None


class InvoiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    customer_id: int
    work_order_id: int | None
    total: float
    status: str
