from pydantic import BaseModel, Field


class StockLineItem(BaseModel):
    """Invoice line as seen by the stock gate; only source_type 'stock' is checked."""

    product_category: str | None = None
    item_name: str | None = None
    product_version: str | None = None
    quantity: int = Field(default=0, ge=0)
    unit: str = "pcs"
    source_type: str = "stock"


class InsufficientStockItem(BaseModel):
    item_name: str
    product_category: str
    product_version: str
    required_quantity: int
    available_stock: int
    unit: str


class StockValidationResult(BaseModel):
    is_valid: bool
    insufficient_stock_items: list[InsufficientStockItem] = Field(default_factory=list)
    message: str | None = None


class StockConsumeRequest(BaseModel):
    invoice_ref: str = Field(min_length=1, max_length=64)
    items: list[StockLineItem] = Field(default_factory=list)


class StockRestoreRequest(BaseModel):
    invoice_ref: str = Field(min_length=1, max_length=64)
