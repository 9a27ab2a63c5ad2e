"""
Bulk reconciler.

Clôt le cycle d'achat de chaque purchase_record pas encore réconcilié :
compteurs pipeline à 0, last_request_status à None. Si la quantité n'est pas
encore dans current_stock (stocked_at vide), elle y est ajoutée.

Deux marqueurs par record :
- stocked_at : quantité comptée (record_purchase, generate_stock_details, ici)
- reconciled_at : cycle clos (ici seulement)

Idempotent : une deuxième passe ne trouve plus rien.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockledger.app.db.models.models_v1 import PurchaseRecord, StockDetail
from stockledger.app.schemas.stock_detail import StockSyncResult
from stockledger.app.time_utils import utcnow, as_utc_naive
from stockledger.services.inventory import key_of, get_stock_detail_for_update

logger = logging.getLogger(__name__)


def _fold_record(sl: StockDetail, rec: PurchaseRecord, now: datetime) -> None:
    if rec.stocked_at is None:
        sl.current_stock = (sl.current_stock or 0) + rec.quantity

        purchase_date = as_utc_naive(rec.purchase_date) or now
        last = as_utc_naive(sl.last_purchase_date)
        if last is None or purchase_date >= last:
            sl.last_purchase_date = purchase_date
            if rec.price_per_unit:
                sl.price_per_unit = rec.price_per_unit
        rec.stocked_at = now

    sl.pending_quantity = 0
    sl.approved_quantity = 0
    sl.po_created_quantity = 0
    sl.rejected_quantity = 0
    sl.last_request_status = None
    sl.updated_at = now

    rec.reconciled_at = now


def sync_stock_details(db: Session, company_id: str) -> StockSyncResult:
    """
    Une seule transaction par passe. En cas d'erreur store : rollback et
    résultat success=False (l'appelant affiche le message).
    """
    try:
        records = (
            db.execute(
                select(PurchaseRecord)
                .where(PurchaseRecord.company_id == company_id)
                .where(PurchaseRecord.reconciled_at.is_(None))
                .order_by(
                    PurchaseRecord.purchase_date.asc(),
                    PurchaseRecord.created_at.asc(),
                    PurchaseRecord.id.asc(),
                )
            )
            .scalars()
            .all()
        )

        now = utcnow()
        touched: set[int] = set()
        deferred = 0

        for rec in records:
            key = key_of(rec)
            if key is None or not rec.quantity or rec.quantity <= 0:
                continue

            sl = get_stock_detail_for_update(db, company_id, key)
            if sl is None:
                # sera créé au prochain generate_stock_details
                deferred += 1
                continue

            _fold_record(sl, rec, now)
            db.flush()
            touched.add(sl.id)

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error syncing stock details for company=%s", company_id)
        return StockSyncResult(
            success=False,
            message="Failed to sync stock details",
            processed_products=0,
            errors=[str(e)],
        )

    logger.info(
        "Reconciled %d products for company=%s (%d records deferred)",
        len(touched),
        company_id,
        deferred,
    )
    return StockSyncResult(
        success=True,
        message=f"Successfully synced {len(touched)} products with stock details",
        processed_products=len(touched),
    )
