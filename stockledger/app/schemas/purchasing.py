from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from stockledger.app.db.models.core_types import POStatus, RequestPriority, RequestStatus


# ---------- Purchase records (supply) ----------
class PurchaseItemCreate(BaseModel):
    product_category: str = Field(min_length=1, max_length=200)
    item_name: str = Field(min_length=1, max_length=255)
    product_version: str = Field(min_length=1, max_length=100)
    quantity: int = Field(gt=0)
    unit: str = "pcs"
    price_per_unit: Decimal = Field(default=Decimal("0"), ge=0)


class PurchaseCreate(BaseModel):
    purchase_date: datetime | None = None
    supplier_name: str | None = None
    items: list[PurchaseItemCreate] = Field(min_length=1)


class PurchaseRecordRead(BaseModel):
    id: int
    company_id: str
    product_category: str | None = None
    item_name: str | None = None
    product_version: str | None = None
    quantity: int | None = None
    unit: str
    price_per_unit: Decimal
    supplier_name: str | None = None
    purchase_date: datetime | None = None
    stocked_at: datetime | None = None
    reconciled_at: datetime | None = None

    class Config:
        from_attributes = True


# ---------- Purchase requests (demand) ----------
class PurchaseRequestCreate(BaseModel):
    product_category: str = Field(min_length=1, max_length=200)
    item_name: str = Field(min_length=1, max_length=255)
    product_version: str = Field(min_length=1, max_length=100)
    quantity_required: int = Field(gt=0)
    unit: str = "pcs"
    priority: RequestPriority = RequestPriority.medium
    employee_name: str | None = None
    employee_email: str | None = None
    reason: str | None = None
    stock_status: str | None = None
    requested_date: date | None = None


class RequestStatusUpdate(BaseModel):
    status: RequestStatus


class RequestQuantityUpdate(BaseModel):
    quantity_required: int = Field(gt=0)


class PurchaseRequestRead(BaseModel):
    id: int
    company_id: str
    product_category: str | None = None
    item_name: str | None = None
    product_version: str | None = None
    quantity_required: int
    unit: str
    status: RequestStatus
    priority: RequestPriority
    employee_name: str | None = None
    employee_email: str | None = None
    reason: str | None = None
    requested_date: date | None = None
    purchase_order_id: int | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ---------- Purchase orders ----------
class POLineCreate(BaseModel):
    product_category: str = Field(min_length=1, max_length=200)
    item_name: str = Field(min_length=1, max_length=255)
    product_version: str = Field(min_length=1, max_length=100)
    quantity: int = Field(gt=0)
    unit: str = "pcs"
    unit_cost: Decimal = Field(default=Decimal("0"), ge=0)


class POCreate(BaseModel):
    po_number: str = Field(min_length=1, max_length=64)
    supplier_name: str | None = None
    status: POStatus = POStatus.completed
    request_ids: list[int] = Field(default_factory=list)
    lines: list[POLineCreate] = Field(default_factory=list)
