from __future__ import annotations

from datetime import datetime, date
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Date,
    ForeignKey,
    Numeric,
    Text,
    Enum,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockledger.app.db.base import Base, BigIntPK
from stockledger.app.db.models.core_types import (
    RequestStatus,
    RequestPriority,
    DisplayStatus,
    StockStatus,
    POStatus,
)
from stockledger.app.time_utils import utcnow


# ---------- STOCK LEDGER ----------
class StockDetail(Base):
    __tablename__ = "stock_details"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)

    product_category: Mapped[str] = mapped_column(String(200), nullable=False)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_version: Mapped[str] = mapped_column(String(100), nullable=False)

    current_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), default="pcs", nullable=False)

    min_required: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    safe_quantity_limit: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    display_status: Mapped[DisplayStatus] = mapped_column(
        Enum(DisplayStatus, name="display_status"),
        default=DisplayStatus.suspended,
        nullable=False,
    )

    # purchase-request pipeline
    pending_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    approved_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    po_created_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rejected_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_request_status: Mapped[str | None] = mapped_column(String(32))
    last_recorded_order_quantity: Mapped[int | None] = mapped_column(Integer)

    last_purchase_date: Mapped[datetime | None] = mapped_column(DateTime)
    price_per_unit: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "company_id",
            "product_category",
            "item_name",
            "product_version",
            name="uq_stock_detail_product",
        ),
        CheckConstraint("current_stock >= 0", name="ck_stock_current_nonneg"),
        CheckConstraint("min_required >= 0", name="ck_stock_min_required_nonneg"),
        CheckConstraint("safe_quantity_limit >= 0", name="ck_stock_safe_limit_nonneg"),
        CheckConstraint("pending_quantity >= 0", name="ck_stock_pending_nonneg"),
        CheckConstraint("approved_quantity >= 0", name="ck_stock_approved_nonneg"),
        CheckConstraint("po_created_quantity >= 0", name="ck_stock_po_created_nonneg"),
        CheckConstraint("rejected_quantity >= 0", name="ck_stock_rejected_nonneg"),
    )

    @property
    def product_key(self) -> tuple[str, str, str]:
        return (self.product_category, self.item_name, self.product_version)

    @property
    def stock_status(self) -> StockStatus:
        current = self.current_stock or 0
        if current < (self.safe_quantity_limit or 0):
            return StockStatus.critical
        if current < (self.min_required or 0):
            return StockStatus.low
        return StockStatus.normal


# ---------- SUPPLY ----------
class PurchaseRecord(Base):
    __tablename__ = "purchase_records"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # nullable: legacy rows migrated from expenses may lack product details
    product_category: Mapped[str | None] = mapped_column(String(200))
    item_name: Mapped[str | None] = mapped_column(String(255))
    product_version: Mapped[str | None] = mapped_column(String(100))

    quantity: Mapped[int | None] = mapped_column(Integer)
    unit: Mapped[str] = mapped_column(String(32), default="pcs", nullable=False)
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    supplier_name: Mapped[str | None] = mapped_column(String(255))
    purchase_date: Mapped[datetime | None] = mapped_column(DateTime)

    # quantité intégrée dans stock_details.current_stock
    stocked_at: Mapped[datetime | None] = mapped_column(DateTime)
    # cycle d'achat clos par le Bulk Reconciler (compteurs pipeline remis à 0)
    reconciled_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index(
            "ix_purchase_records_product",
            "company_id",
            "product_category",
            "item_name",
            "product_version",
        ),
    )


# ---------- DEMAND ----------
class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    po_number: Mapped[str] = mapped_column(String(64), nullable=False)
    supplier_name: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[POStatus] = mapped_column(Enum(POStatus, name="po_status"), default=POStatus.draft, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    lines: Mapped[list["PurchaseOrderLine"]] = relationship(back_populates="po", cascade="all, delete-orphan")

    __table_args__ = (UniqueConstraint("company_id", "po_number", name="uq_po_company_number"),)


class PurchaseOrderLine(Base):
    __tablename__ = "purchase_order_lines"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    po_id: Mapped[int] = mapped_column(
        ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_category: Mapped[str] = mapped_column(String(200), nullable=False)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_version: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), default="pcs", nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)

    po: Mapped[PurchaseOrder] = relationship(back_populates="lines")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_po_line_qty_pos"),
        CheckConstraint("unit_cost >= 0", name="ck_po_line_unit_cost_nonneg"),
    )


class PurchaseRequest(Base):
    __tablename__ = "purchase_requests"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    product_category: Mapped[str | None] = mapped_column(String(200))
    item_name: Mapped[str | None] = mapped_column(String(255))
    product_version: Mapped[str | None] = mapped_column(String(100))

    quantity_required: Mapped[int] = mapped_column(Integer, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), default="pcs", nullable=False)
    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus, name="request_status"),
        default=RequestStatus.pending,
        nullable=False,
    )
    priority: Mapped[RequestPriority] = mapped_column(
        Enum(RequestPriority, name="request_priority"),
        default=RequestPriority.medium,
        nullable=False,
    )

    employee_name: Mapped[str | None] = mapped_column(String(200))
    employee_email: Mapped[str | None] = mapped_column(String(255))
    reason: Mapped[str | None] = mapped_column(Text)
    stock_status: Mapped[str | None] = mapped_column(String(32))
    requested_date: Mapped[date | None] = mapped_column(Date)

    purchase_order_id: Mapped[int | None] = mapped_column(ForeignKey("purchase_orders.id", ondelete="SET NULL"))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity_required > 0", name="ck_purchase_request_qty_pos"),
        Index(
            "ix_purchase_requests_product",
            "company_id",
            "product_category",
            "item_name",
            "product_version",
        ),
    )


# ---------- CONSUMPTION ----------
class StockIssue(Base):
    __tablename__ = "stock_issues"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)

    product_category: Mapped[str] = mapped_column(String(200), nullable=False)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_version: Mapped[str] = mapped_column(String(100), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    invoice_ref: Mapped[str] = mapped_column(String(64), nullable=False)
    happened_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_issue_qty_pos"),
        Index("ix_stock_issues_invoice", "company_id", "invoice_ref"),
    )
