"""create stock ledger tables

Revision ID: 3f1a9c2b7d10
Revises:
Create Date: 2026-10-19 09:12:41.508311
"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f1a9c2b7d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PRODUCT_COLUMNS = ("company_id", "product_category", "item_name", "product_version")

display_status = sa.Enum("displayed", "suspended", name="display_status")
po_status = sa.Enum("draft", "completed", name="po_status")
request_status = sa.Enum("pending", "approved", "rejected", "po_created", name="request_status")
request_priority = sa.Enum("low", "medium", "high", name="request_priority")


def upgrade() -> None:
    op.create_table(
        "stock_details",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("company_id", sa.String(64), nullable=False),
        sa.Column("product_category", sa.String(200), nullable=False),
        sa.Column("item_name", sa.String(255), nullable=False),
        sa.Column("product_version", sa.String(100), nullable=False),
        sa.Column("current_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit", sa.String(32), nullable=False, server_default="pcs"),
        sa.Column("min_required", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("safe_quantity_limit", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("display_status", display_status, nullable=False, server_default="suspended"),
        sa.Column("pending_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("approved_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("po_created_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rejected_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_request_status", sa.String(32)),
        sa.Column("last_recorded_order_quantity", sa.Integer()),
        sa.Column("last_purchase_date", sa.DateTime()),
        sa.Column("price_per_unit", sa.Numeric(14, 2)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(*PRODUCT_COLUMNS, name="uq_stock_detail_product"),
        sa.CheckConstraint("current_stock >= 0", name="ck_stock_current_nonneg"),
        sa.CheckConstraint("min_required >= 0", name="ck_stock_min_required_nonneg"),
        sa.CheckConstraint("safe_quantity_limit >= 0", name="ck_stock_safe_limit_nonneg"),
        sa.CheckConstraint("pending_quantity >= 0", name="ck_stock_pending_nonneg"),
        sa.CheckConstraint("approved_quantity >= 0", name="ck_stock_approved_nonneg"),
        sa.CheckConstraint("po_created_quantity >= 0", name="ck_stock_po_created_nonneg"),
        sa.CheckConstraint("rejected_quantity >= 0", name="ck_stock_rejected_nonneg"),
    )

    op.create_table(
        "purchase_records",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("company_id", sa.String(64), nullable=False),
        sa.Column("product_category", sa.String(200)),
        sa.Column("item_name", sa.String(255)),
        sa.Column("product_version", sa.String(100)),
        sa.Column("quantity", sa.Integer()),
        sa.Column("unit", sa.String(32), nullable=False, server_default="pcs"),
        sa.Column("price_per_unit", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("supplier_name", sa.String(255)),
        sa.Column("purchase_date", sa.DateTime()),
        sa.Column("reconciled_at", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_purchase_records_company_id", "purchase_records", ["company_id"])
    op.create_index("ix_purchase_records_product", "purchase_records", list(PRODUCT_COLUMNS))

    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("company_id", sa.String(64), nullable=False),
        sa.Column("po_number", sa.String(64), nullable=False),
        sa.Column("supplier_name", sa.String(255)),
        sa.Column("status", po_status, nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("company_id", "po_number", name="uq_po_company_number"),
    )
    op.create_index("ix_purchase_orders_company_id", "purchase_orders", ["company_id"])

    op.create_table(
        "purchase_order_lines",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column(
            "po_id",
            sa.BigInteger(),
            sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("product_category", sa.String(200), nullable=False),
        sa.Column("item_name", sa.String(255), nullable=False),
        sa.Column("product_version", sa.String(100), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit", sa.String(32), nullable=False, server_default="pcs"),
        sa.Column("unit_cost", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.CheckConstraint("quantity > 0", name="ck_po_line_qty_pos"),
        sa.CheckConstraint("unit_cost >= 0", name="ck_po_line_unit_cost_nonneg"),
    )
    op.create_index("ix_purchase_order_lines_po_id", "purchase_order_lines", ["po_id"])

    op.create_table(
        "purchase_requests",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("company_id", sa.String(64), nullable=False),
        sa.Column("product_category", sa.String(200)),
        sa.Column("item_name", sa.String(255)),
        sa.Column("product_version", sa.String(100)),
        sa.Column("quantity_required", sa.Integer(), nullable=False),
        sa.Column("unit", sa.String(32), nullable=False, server_default="pcs"),
        sa.Column("status", request_status, nullable=False, server_default="pending"),
        sa.Column("priority", request_priority, nullable=False, server_default="medium"),
        sa.Column("employee_name", sa.String(200)),
        sa.Column("employee_email", sa.String(255)),
        sa.Column("reason", sa.Text()),
        sa.Column("stock_status", sa.String(32)),
        sa.Column("requested_date", sa.Date()),
        sa.Column(
            "purchase_order_id",
            sa.BigInteger(),
            sa.ForeignKey("purchase_orders.id", ondelete="SET NULL"),
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity_required > 0", name="ck_purchase_request_qty_pos"),
    )
    op.create_index("ix_purchase_requests_company_id", "purchase_requests", ["company_id"])
    op.create_index("ix_purchase_requests_product", "purchase_requests", list(PRODUCT_COLUMNS))

    op.create_table(
        "stock_issues",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("company_id", sa.String(64), nullable=False),
        sa.Column("product_category", sa.String(200), nullable=False),
        sa.Column("item_name", sa.String(255), nullable=False),
        sa.Column("product_version", sa.String(100), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("invoice_ref", sa.String(64), nullable=False),
        sa.Column("happened_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_stock_issue_qty_pos"),
    )
    op.create_index("ix_stock_issues_invoice", "stock_issues", ["company_id", "invoice_ref"])


def downgrade() -> None:
    op.drop_index("ix_stock_issues_invoice", table_name="stock_issues")
    op.drop_table("stock_issues")

    op.drop_index("ix_purchase_requests_product", table_name="purchase_requests")
    op.drop_index("ix_purchase_requests_company_id", table_name="purchase_requests")
    op.drop_table("purchase_requests")

    op.drop_index("ix_purchase_order_lines_po_id", table_name="purchase_order_lines")
    op.drop_table("purchase_order_lines")

    op.drop_index("ix_purchase_orders_company_id", table_name="purchase_orders")
    op.drop_table("purchase_orders")

    op.drop_index("ix_purchase_records_product", table_name="purchase_records")
    op.drop_index("ix_purchase_records_company_id", table_name="purchase_records")
    op.drop_table("purchase_records")

    op.drop_table("stock_details")

    bind = op.get_bind()
    for enum_type in (request_priority, request_status, po_status, display_status):
        enum_type.drop(bind, checkfirst=True)
