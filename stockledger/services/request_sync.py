"""
Synchronisation demande d'achat -> stock_details.

Applique le delta impliqué par UN changement de statut (ou d'une quantité
encore "pending") sans reconstruire tout le ledger.

La ligne est verrouillée (FOR UPDATE) dans la transaction de l'appelant :
la transition de la demande et la mise à jour du ledger sont commit (ou
rollback) ensemble.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from stockledger.app.db.models.models_v1 import StockDetail
from stockledger.app.db.models.core_types import RequestStatus
from stockledger.app.time_utils import utcnow
from stockledger.services.inventory import ProductKey, get_stock_detail_for_update

logger = logging.getLogger(__name__)


def sync_purchase_request_status(
    db: Session,
    company_id: str,
    product_category: str,
    item_name: str,
    product_version: str,
    status: RequestStatus | str,
    quantity_required: int,
    old_quantity_required: int | None = None,
) -> StockDetail | None:
    """
    Règles :
    - pas de ligne stock_details -> no-op (aucune création)
    - quantité éditée : pending += new - old (plancher 0)
    - approved : pending -= Q (plancher 0), approved += Q
    - rejected : pending -= Q (plancher 0), rejected += Q
    - PO Created : po_created = approved (snapshot, pas cumul)
    - pending : rien de plus que le delta
    - last_request_status = status, updated_at = now

    Ne re-valide PAS l'état de la demande (garde côté procurement).
    """
    status = RequestStatus(status)
    key = ProductKey(product_category, item_name, product_version)

    sl = get_stock_detail_for_update(db, company_id, key)
    if sl is None:
        logger.debug("No stock detail for %s/%s/%s (company=%s), sync skipped", *key, company_id)
        return None

    pending = sl.pending_quantity or 0
    if old_quantity_required is not None and old_quantity_required != quantity_required:
        pending = max(0, pending + quantity_required - old_quantity_required)

    if status == RequestStatus.approved:
        pending = max(0, pending - quantity_required)
        sl.approved_quantity = (sl.approved_quantity or 0) + quantity_required
    elif status == RequestStatus.rejected:
        pending = max(0, pending - quantity_required)
        sl.rejected_quantity = (sl.rejected_quantity or 0) + quantity_required
    elif status == RequestStatus.po_created:
        # instantané de approved, pas de cumul par PO
        sl.po_created_quantity = sl.approved_quantity or 0

    sl.pending_quantity = pending
    sl.last_request_status = status.value
    sl.updated_at = utcnow()
    db.flush()

    logger.info(
        "Synced request status %s (qty=%d) into stock detail id=%s: pending=%d approved=%d po_created=%d rejected=%d",
        status.value,
        quantity_required,
        sl.id,
        sl.pending_quantity,
        sl.approved_quantity,
        sl.po_created_quantity,
        sl.rejected_quantity,
    )
    return sl
