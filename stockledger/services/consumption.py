"""
Stock consumption gate (factures).

- validate_stock_availability : lecture seule, required vs current_stock
- consume_stock : re-valide sous verrou puis décrémente (pas de check-then-deduct
  hors transaction) et trace un StockIssue par ligne
- restore_stock : annule les sorties d'une facture supprimée

Seules les lignes source_type == "stock" sont concernées.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockledger.app.db.models.models_v1 import StockDetail, StockIssue
from stockledger.app.schemas.consumption import (
    InsufficientStockItem,
    StockLineItem,
    StockValidationResult,
)
from stockledger.app.time_utils import utcnow
from stockledger.services.errors import InsufficientStockError
from stockledger.services.inventory import (
    ProductKey,
    key_of,
    get_stock_detail_for_update,
    list_stock_details,
)

logger = logging.getLogger(__name__)

STOCK_SOURCE = "stock"


def _stock_lines(items: Iterable[StockLineItem]) -> list[StockLineItem]:
    return [item for item in items if item.source_type == STOCK_SOURCE]


def _shortfall(item: StockLineItem, sl: StockDetail | None) -> InsufficientStockItem | None:
    available = (sl.current_stock or 0) if sl is not None else 0
    required = item.quantity or 0
    if required == 0:
        return None
    if sl is not None and available >= required:
        return None
    return InsufficientStockItem(
        item_name=item.item_name or "",
        product_category=item.product_category or "",
        product_version=item.product_version or "",
        required_quantity=required,
        available_stock=available,
        unit=(sl.unit if sl is not None else None) or item.unit or "pcs",
    )


def _result(insufficient: list[InsufficientStockItem]) -> StockValidationResult:
    is_valid = not insufficient
    return StockValidationResult(
        is_valid=is_valid,
        insufficient_stock_items=insufficient,
        message="All stock items have sufficient quantity" if is_valid else "Some items have insufficient stock",
    )


def validate_stock_availability(db: Session, company_id: str, items: Iterable[StockLineItem]) -> StockValidationResult:
    lines = _stock_lines(items)
    if not lines:
        return StockValidationResult(is_valid=True, insufficient_stock_items=[])

    by_key = {sl.product_key: sl for sl in list_stock_details(db, company_id)}

    insufficient = []
    for item in lines:
        key = key_of(item)
        short = _shortfall(item, by_key.get(key) if key else None)
        if short is not None:
            insufficient.append(short)
    return _result(insufficient)


def _existing_issues(db: Session, company_id: str, invoice_ref: str) -> list[StockIssue]:
    return list(
        db.execute(
            select(StockIssue)
            .where(StockIssue.company_id == company_id)
            .where(StockIssue.invoice_ref == invoice_ref)
        )
        .scalars()
        .all()
    )


def consume_stock(
    db: Session,
    company_id: str,
    items: Iterable[StockLineItem],
    invoice_ref: str,
) -> list[StockIssue]:
    """
    Décrémente current_stock pour chaque ligne stock de la facture.

    Rejoue idempotent : si la facture a déjà des sorties, on les renvoie sans
    rien décrémenter. Lève InsufficientStockError si une ligne manque de stock
    (rien n'est écrit). Le commit reste à l'appelant.
    """
    existing = _existing_issues(db, company_id, invoice_ref)
    if existing:
        return existing

    lines = _stock_lines(items)

    # quantités cumulées par produit (une facture peut répéter un article)
    required: dict[ProductKey, int] = {}
    merged: dict[ProductKey, StockLineItem] = {}
    insufficient: list[InsufficientStockItem] = []
    for item in lines:
        key = key_of(item)
        if key is None:
            short = _shortfall(item, None)
            if short is not None:
                insufficient.append(short)
            continue
        required[key] = required.get(key, 0) + (item.quantity or 0)
        merged[key] = item

    # verrouillage dans un ordre stable (évite les deadlocks)
    locked: dict[ProductKey, StockDetail | None] = {}
    for key in sorted(required):
        locked[key] = get_stock_detail_for_update(db, company_id, key)
        item = merged[key].model_copy(update={"quantity": required[key]})
        short = _shortfall(item, locked[key])
        if short is not None:
            insufficient.append(short)

    if insufficient:
        raise InsufficientStockError(_result(insufficient))

    now = utcnow()
    issues: list[StockIssue] = []
    for key in sorted(required):
        qty = required[key]
        if qty <= 0:
            continue
        sl = locked[key]
        sl.current_stock -= qty
        sl.updated_at = now
        issue = StockIssue(
            company_id=company_id,
            product_category=key.product_category,
            item_name=key.item_name,
            product_version=key.product_version,
            quantity=qty,
            invoice_ref=invoice_ref,
            happened_at=now,
            created_at=now,
        )
        db.add(issue)
        issues.append(issue)

    db.flush()
    logger.info("Consumed stock for invoice %s (company=%s, %d lines)", invoice_ref, company_id, len(issues))
    return issues


def restore_stock(db: Session, company_id: str, invoice_ref: str) -> int:
    """Remet en stock les sorties d'une facture supprimée. Retourne le nombre de lignes restaurées."""
    issues = _existing_issues(db, company_id, invoice_ref)
    now = utcnow()

    for issue in issues:
        sl = get_stock_detail_for_update(db, company_id, key_of(issue))
        if sl is not None:
            sl.current_stock = (sl.current_stock or 0) + issue.quantity
            sl.updated_at = now
        db.delete(issue)

    db.flush()
    if issues:
        logger.info("Restored stock for invoice %s (company=%s, %d lines)", invoice_ref, company_id, len(issues))
    return len(issues)
