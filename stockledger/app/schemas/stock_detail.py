from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from stockledger.app.db.models.core_types import DisplayStatus, StockStatus


class StockDetailRead(BaseModel):
    id: int
    company_id: str
    product_category: str
    item_name: str
    product_version: str

    current_stock: int
    unit: str
    min_required: int
    safe_quantity_limit: int
    display_status: DisplayStatus
    stock_status: StockStatus  # READ ONLY, dérivé des seuils

    pending_quantity: int
    approved_quantity: int
    po_created_quantity: int
    rejected_quantity: int
    last_request_status: str | None = None
    last_recorded_order_quantity: int | None = None

    last_purchase_date: datetime | None = None
    price_per_unit: Decimal | None = None
    updated_at: datetime

    class Config:
        from_attributes = True


class ThresholdsUpdate(BaseModel):
    min_required: int | None = Field(default=None, ge=0)
    safe_quantity_limit: int | None = Field(default=None, ge=0)


class DisplayStatusUpdate(BaseModel):
    display_status: DisplayStatus


class StockSyncResult(BaseModel):
    success: bool
    message: str
    processed_products: int
    errors: list[str] | None = None
