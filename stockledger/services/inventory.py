from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from stockledger.app.db.models.models_v1 import (
    StockDetail,
    PurchaseRecord,
    PurchaseRequest,
    StockIssue,
)
from stockledger.app.db.models.core_types import (
    DisplayStatus,
    RequestStatus,
    ORDER_RECORDED,
)
from stockledger.app.schemas.purchasing import PurchaseCreate
from stockledger.app.time_utils import utcnow, as_utc_naive
from stockledger.services.errors import NotFoundError, ThresholdValidationError

logger = logging.getLogger(__name__)


class ProductKey(NamedTuple):
    product_category: str
    item_name: str
    product_version: str


def key_of(row) -> ProductKey | None:
    """Clé produit composite, ou None si un des trois champs manque."""
    category = row.product_category
    name = row.item_name
    version = row.product_version
    if not category or not name or not version:
        return None
    return ProductKey(category, name, version)


def _event_time(row) -> datetime:
    return as_utc_naive(getattr(row, "purchase_date", None)) or as_utc_naive(row.created_at) or datetime.min


def _latest_first_key(row) -> tuple:
    # explicit timestamps, then id: never collection order
    return (_event_time(row), as_utc_naive(row.created_at) or datetime.min, row.id or 0)


def _request_order_key(req: PurchaseRequest) -> tuple:
    return (
        as_utc_naive(req.updated_at) or datetime.min,
        as_utc_naive(req.created_at) or datetime.min,
        req.id or 0,
    )


def get_stock_detail_for_update(db: Session, company_id: str, key: ProductKey) -> StockDetail | None:
    """
    Ligne stock_details pour (tenant, produit), verrouillée (FOR UPDATE).
    SQLite ignore le verrou ; PostgreSQL le respecte.
    """
    return (
        db.execute(
            select(StockDetail)
            .where(StockDetail.company_id == company_id)
            .where(StockDetail.product_category == key.product_category)
            .where(StockDetail.item_name == key.item_name)
            .where(StockDetail.product_version == key.product_version)
            .with_for_update()
        )
        .scalar_one_or_none()
    )


def get_stock_detail(db: Session, company_id: str, stock_id: int) -> StockDetail:
    sl = db.get(StockDetail, stock_id)
    if not sl or sl.company_id != company_id:
        raise NotFoundError(f"Stock detail {stock_id} not found")
    return sl


def list_stock_details(db: Session, company_id: str, *, displayed_only: bool = False) -> list[StockDetail]:
    stmt = (
        select(StockDetail)
        .where(StockDetail.company_id == company_id)
        .order_by(StockDetail.product_category, StockDetail.item_name, StockDetail.product_version)
    )
    if displayed_only:
        stmt = stmt.where(StockDetail.display_status == DisplayStatus.displayed)
    return list(db.execute(stmt).scalars().all())


def _new_stock_detail(company_id: str, key: ProductKey, unit: str | None) -> StockDetail:
    now = utcnow()
    return StockDetail(
        company_id=company_id,
        product_category=key.product_category,
        item_name=key.item_name,
        product_version=key.product_version,
        current_stock=0,
        unit=unit or "pcs",
        min_required=0,
        safe_quantity_limit=0,
        display_status=DisplayStatus.suspended,
        pending_quantity=0,
        approved_quantity=0,
        po_created_quantity=0,
        rejected_quantity=0,
        created_at=now,
        updated_at=now,
    )


def _enforce_default_suspension(sl: StockDetail) -> None:
    # rien à alerter sans seuils configurés
    if not sl.min_required and not sl.safe_quantity_limit:
        sl.display_status = DisplayStatus.suspended


def _issued_by_key(db: Session, company_id: str, key: ProductKey | None = None) -> dict[ProductKey, int]:
    stmt = (
        select(
            StockIssue.product_category,
            StockIssue.item_name,
            StockIssue.product_version,
            func.coalesce(func.sum(StockIssue.quantity), 0).label("issued_qty"),
        )
        .where(StockIssue.company_id == company_id)
        .group_by(StockIssue.product_category, StockIssue.item_name, StockIssue.product_version)
    )
    if key is not None:
        stmt = (
            stmt.where(StockIssue.product_category == key.product_category)
            .where(StockIssue.item_name == key.item_name)
            .where(StockIssue.product_version == key.product_version)
        )
    rows = db.execute(stmt).all()
    return {ProductKey(cat, name, ver): int(qty) for cat, name, ver, qty in rows}


# ---------- LEDGER GENERATOR ----------
@dataclass
class _SupplyTotals:
    quantity: int = 0
    unit: str | None = None
    latest: PurchaseRecord | None = None
    records: list[PurchaseRecord] = field(default_factory=list)


@dataclass
class _DemandTotals:
    pending: int = 0
    approved: int = 0
    po_created: int = 0
    rejected: int = 0
    latest: PurchaseRequest | None = None

    def add(self, req: PurchaseRequest) -> None:
        qty = req.quantity_required or 0
        if req.status == RequestStatus.pending:
            self.pending += qty
        elif req.status == RequestStatus.approved:
            self.approved += qty
        elif req.status == RequestStatus.po_created:
            self.po_created += qty
        elif req.status == RequestStatus.rejected:
            self.rejected += qty
        if self.latest is None or _request_order_key(req) > _request_order_key(self.latest):
            self.latest = req


def generate_stock_details(db: Session, company_id: str) -> list[StockDetail]:
    """
    Reconstruit stock_details à partir des sources de vérité.

    Règle métier :
        current_stock = SUM(purchase_records.quantity) - SUM(stock_issues.quantity)
        compteurs pipeline = SUM(quantity_required) par statut de demande

    Propriétés :
    - déterministe (timestamps explicites, jamais l'ordre de lecture)
    - idempotent : relancer ne double jamais le stock
    - une transaction par produit (commit par clé)
    - seuils opérateur préservés ; 0/0 => suspended

    Les lignes malformées (clé incomplète, quantité <= 0) sont ignorées.
    """
    supply: dict[ProductKey, _SupplyTotals] = {}
    skipped = 0

    records = (
        db.execute(
            select(PurchaseRecord)
            .where(PurchaseRecord.company_id == company_id)
            .order_by(PurchaseRecord.id.asc())
        )
        .scalars()
        .all()
    )
    for rec in records:
        key = key_of(rec)
        if key is None or not rec.quantity or rec.quantity <= 0:
            skipped += 1
            logger.debug("Skipping malformed purchase record id=%s", rec.id)
            continue
        totals = supply.setdefault(key, _SupplyTotals(unit=rec.unit))
        totals.quantity += rec.quantity
        totals.records.append(rec)
        if totals.latest is None or _latest_first_key(rec) > _latest_first_key(totals.latest):
            totals.latest = rec

    demand: dict[ProductKey, _DemandTotals] = {}
    requests = (
        db.execute(select(PurchaseRequest).where(PurchaseRequest.company_id == company_id))
        .scalars()
        .all()
    )
    for req in requests:
        key = key_of(req)
        if key is None or not req.quantity_required or req.quantity_required <= 0:
            skipped += 1
            continue
        if key not in supply:
            continue
        demand.setdefault(key, _DemandTotals()).add(req)

    issued = _issued_by_key(db, company_id)

    # ---------- UPSERT STOCK DETAILS ----------
    entries: list[StockDetail] = []
    for key in sorted(supply):
        totals = supply[key]
        pipeline = demand.get(key, _DemandTotals())
        now = utcnow()

        sl = get_stock_detail_for_update(db, company_id, key)
        if not sl:
            sl = _new_stock_detail(company_id, key, totals.unit)
            db.add(sl)

        sl.current_stock = max(0, totals.quantity - issued.get(key, 0))
        sl.last_purchase_date = _event_time(totals.latest)
        sl.price_per_unit = totals.latest.price_per_unit or Decimal("0")
        sl.pending_quantity = pipeline.pending
        sl.approved_quantity = pipeline.approved
        sl.po_created_quantity = pipeline.po_created
        sl.rejected_quantity = pipeline.rejected
        sl.last_request_status = pipeline.latest.status.value if pipeline.latest else None
        sl.updated_at = now
        _enforce_default_suspension(sl)

        for rec in totals.records:
            if rec.stocked_at is None:
                rec.stocked_at = now

        db.commit()
        entries.append(sl)

    logger.info(
        "Generated %d stock details for company=%s (skipped %d malformed rows)",
        len(entries),
        company_id,
        skipped,
    )
    return entries


def recalculate_stock(db: Session, company_id: str, key: ProductKey) -> StockDetail:
    """Re-dérive current_stock pour un seul produit. Le commit reste à l'appelant."""
    records = (
        db.execute(
            select(PurchaseRecord)
            .where(PurchaseRecord.company_id == company_id)
            .where(PurchaseRecord.product_category == key.product_category)
            .where(PurchaseRecord.item_name == key.item_name)
            .where(PurchaseRecord.product_version == key.product_version)
            .where(PurchaseRecord.quantity > 0)
        )
        .scalars()
        .all()
    )
    total = sum(rec.quantity for rec in records)
    issued = _issued_by_key(db, company_id, key).get(key, 0)

    sl = get_stock_detail_for_update(db, company_id, key)
    if not sl:
        sl = _new_stock_detail(company_id, key, records[0].unit if records else None)
        db.add(sl)

    now = utcnow()
    sl.current_stock = max(0, total - issued)
    sl.updated_at = now
    for rec in records:
        if rec.stocked_at is None:
            rec.stocked_at = now
    db.flush()
    return sl


# ---------- SUPPLY EVENTS ----------
def record_purchase(db: Session, company_id: str, payload: PurchaseCreate) -> list[PurchaseRecord]:
    """
    Enregistre un achat (un PurchaseRecord par article) et l'ajoute au stock.

    Chaque enregistrement est marqué stocked_at : le Bulk Reconciler ne le
    recomptera pas, il clôt seulement le cycle d'achat. Le commit reste à
    l'appelant.
    """
    purchase_date = as_utc_naive(payload.purchase_date) or utcnow()
    created: list[PurchaseRecord] = []

    for item in payload.items:
        now = utcnow()
        key = ProductKey(item.product_category, item.item_name, item.product_version)
        rec = PurchaseRecord(
            company_id=company_id,
            product_category=key.product_category,
            item_name=key.item_name,
            product_version=key.product_version,
            quantity=item.quantity,
            unit=item.unit,
            price_per_unit=item.price_per_unit,
            supplier_name=payload.supplier_name,
            purchase_date=purchase_date,
            stocked_at=now,
            created_at=now,
        )
        db.add(rec)

        sl = get_stock_detail_for_update(db, company_id, key)
        if not sl:
            sl = _new_stock_detail(company_id, key, item.unit)
            db.add(sl)

        sl.current_stock = (sl.current_stock or 0) + item.quantity
        last = as_utc_naive(sl.last_purchase_date)
        if last is None or purchase_date >= last:
            sl.last_purchase_date = purchase_date
            sl.price_per_unit = item.price_per_unit
        sl.last_request_status = ORDER_RECORDED
        sl.last_recorded_order_quantity = item.quantity
        sl.updated_at = now
        db.flush()

        logger.info(
            "Recorded purchase of %d %s for %s/%s/%s (company=%s, stock=%d)",
            item.quantity,
            item.unit,
            *key,
            company_id,
            sl.current_stock,
        )
        created.append(rec)

    return created


def delete_purchase_record(db: Session, company_id: str, record_id: int) -> StockDetail | None:
    """
    Supprime un achat. Si sa quantité était déjà dans current_stock, elle en
    est retirée (plancher 0). La ligne est supprimée : une régénération
    complète reste cohérente. Le commit reste à l'appelant.
    """
    rec = db.get(PurchaseRecord, record_id)
    if not rec or rec.company_id != company_id:
        raise NotFoundError(f"Purchase record {record_id} not found")

    sl = None
    key = key_of(rec)
    if key is not None and rec.stocked_at is not None and rec.quantity and rec.quantity > 0:
        sl = get_stock_detail_for_update(db, company_id, key)
        if sl is not None:
            sl.current_stock = max(0, (sl.current_stock or 0) - rec.quantity)
            sl.updated_at = utcnow()

    db.delete(rec)
    db.flush()
    logger.info("Deleted purchase record id=%s (company=%s)", record_id, company_id)
    return sl


# ---------- OPERATOR EDITS ----------
def update_thresholds(
    db: Session,
    company_id: str,
    stock_id: int,
    *,
    min_required: int | None = None,
    safe_quantity_limit: int | None = None,
) -> StockDetail:
    sl = get_stock_detail(db, company_id, stock_id)

    new_min = sl.min_required if min_required is None else min_required
    new_safe = sl.safe_quantity_limit if safe_quantity_limit is None else safe_quantity_limit

    if new_min < 0 or new_safe < 0:
        raise ThresholdValidationError("Thresholds must be non-negative")
    if new_safe > new_min:
        raise ThresholdValidationError("Safe Quantity Limit should be less than or equal to Min Required")

    sl.min_required = new_min
    sl.safe_quantity_limit = new_safe
    sl.updated_at = utcnow()
    _enforce_default_suspension(sl)
    db.flush()
    return sl


def set_display_status(db: Session, company_id: str, stock_id: int, status: DisplayStatus) -> StockDetail:
    sl = get_stock_detail(db, company_id, stock_id)
    if status == DisplayStatus.displayed and not (sl.min_required and sl.min_required > 0):
        raise ThresholdValidationError("Set Min Required before displaying this item")
    sl.display_status = status
    sl.updated_at = utcnow()
    db.flush()
    return sl
