"""
Procurement service.

Ce module orchestre les flux d'achat (demandes, PO, enregistrement d'achats)
mais ne contient AUCUNE logique de calcul de stock.

Toute la logique stock est centralisée dans :
    stockledger.services.inventory
    stockledger.services.request_sync

Aucune fonction ne commit : la transition de la demande et la synchro du
ledger partent dans la même transaction, commit par l'appelant.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockledger.app.db.models.models_v1 import (
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseRequest,
)
from stockledger.app.db.models.core_types import (
    POStatus,
    RequestStatus,
    REQUEST_TRANSITIONS,
)
from stockledger.app.schemas.purchasing import POCreate, PurchaseRequestCreate
from stockledger.app.time_utils import utcnow
from stockledger.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    QuantityEditNotAllowed,
    StockLedgerError,
)
from stockledger.services.inventory import (
    ProductKey,
    key_of,
    get_stock_detail_for_update,
    record_purchase,
)
from stockledger.services.request_sync import sync_purchase_request_status

logger = logging.getLogger(__name__)

__all__ = [
    "create_purchase_request",
    "update_request_status",
    "update_request_quantity",
    "create_purchase_order",
    "delete_purchase_order_with_rollback",
    "record_purchase",
]


def get_purchase_request(db: Session, company_id: str, request_id: int) -> PurchaseRequest:
    req = db.get(PurchaseRequest, request_id)
    if not req or req.company_id != company_id:
        raise NotFoundError(f"Purchase request {request_id} not found")
    return req


def list_purchase_requests(db: Session, company_id: str, status: RequestStatus | None = None) -> list[PurchaseRequest]:
    stmt = (
        select(PurchaseRequest)
        .where(PurchaseRequest.company_id == company_id)
        .order_by(PurchaseRequest.created_at.desc(), PurchaseRequest.id.desc())
    )
    if status is not None:
        stmt = stmt.where(PurchaseRequest.status == status)
    return list(db.execute(stmt).scalars().all())


def _sync(db: Session, req: PurchaseRequest, old_quantity: int | None = None) -> None:
    sync_purchase_request_status(
        db,
        req.company_id,
        req.product_category,
        req.item_name,
        req.product_version,
        req.status,
        req.quantity_required,
        old_quantity,
    )


# ---------- PURCHASE REQUESTS ----------
def create_purchase_request(db: Session, company_id: str, payload: PurchaseRequestCreate) -> PurchaseRequest:
    now = utcnow()
    req = PurchaseRequest(
        company_id=company_id,
        **payload.model_dump(),
        status=RequestStatus.pending,
        created_at=now,
        updated_at=now,
    )
    db.add(req)
    db.flush()  # get req.id

    # nouvelle demande : pending += Q (delta depuis 0)
    _sync(db, req, old_quantity=0)
    logger.info("Created purchase request id=%s (company=%s)", req.id, company_id)
    return req


def update_request_status(
    db: Session,
    company_id: str,
    request_id: int,
    new_status: RequestStatus,
) -> PurchaseRequest:
    req = get_purchase_request(db, company_id, request_id)
    new_status = RequestStatus(new_status)

    if new_status not in REQUEST_TRANSITIONS[req.status]:
        raise InvalidTransitionError(
            f"Cannot move purchase request {request_id} from {req.status.value} to {new_status.value}"
        )

    req.status = new_status
    req.updated_at = utcnow()
    _sync(db, req)
    logger.info("Purchase request id=%s -> %s", req.id, new_status.value)
    return req


def update_request_quantity(
    db: Session,
    company_id: str,
    request_id: int,
    new_quantity: int,
) -> PurchaseRequest:
    req = get_purchase_request(db, company_id, request_id)
    if req.status != RequestStatus.pending:
        raise QuantityEditNotAllowed("Cannot edit quantity for approved, rejected, or PO created requests")
    if new_quantity <= 0:
        raise StockLedgerError("quantity_required must be > 0")

    old_quantity = req.quantity_required
    if old_quantity == new_quantity:
        return req

    req.quantity_required = new_quantity
    req.updated_at = utcnow()
    _sync(db, req, old_quantity=old_quantity)
    return req


# ---------- PURCHASE ORDERS ----------
def create_purchase_order(db: Session, company_id: str, payload: POCreate) -> PurchaseOrder:
    """
    Crée un PO. S'il est "completed", chaque demande sélectionnée (approved)
    passe en "PO Created", est liée au PO, et le ledger est synchronisé.
    Sans lignes explicites, les lignes sont dérivées des demandes.
    """
    exists = db.execute(
        select(PurchaseOrder)
        .where(PurchaseOrder.company_id == company_id)
        .where(PurchaseOrder.po_number == payload.po_number)
    ).scalar_one_or_none()
    if exists:
        raise InvalidTransitionError("PO number already exists")

    requests = [get_purchase_request(db, company_id, rid) for rid in payload.request_ids]
    for req in requests:
        if req.status != RequestStatus.approved:
            raise InvalidTransitionError(f"Purchase request {req.id} is not approved ({req.status.value})")

    po = PurchaseOrder(
        company_id=company_id,
        po_number=payload.po_number,
        supplier_name=payload.supplier_name,
        status=payload.status,
        created_at=utcnow(),
    )
    db.add(po)
    db.flush()  # get po.id

    if payload.lines:
        for ln in payload.lines:
            po.lines.append(PurchaseOrderLine(**ln.model_dump()))
    else:
        for req in requests:
            po.lines.append(
                PurchaseOrderLine(
                    product_category=req.product_category,
                    item_name=req.item_name,
                    product_version=req.product_version,
                    quantity=req.quantity_required,
                    unit=req.unit,
                )
            )

    if payload.status == POStatus.completed:
        now = utcnow()
        for req in requests:
            req.status = RequestStatus.po_created
            req.purchase_order_id = po.id
            req.updated_at = now
            _sync(db, req)

    db.flush()
    logger.info("Created purchase order %s (company=%s, %d requests)", po.po_number, company_id, len(requests))
    return po


def delete_purchase_order_with_rollback(db: Session, company_id: str, po_id: int) -> None:
    """
    Supprime un PO et remet ses demandes en "approved" ;
    stock_details : last_request_status = approved, po_created_quantity = 0.
    """
    po = db.get(PurchaseOrder, po_id)
    if not po or po.company_id != company_id:
        raise NotFoundError("Purchase order not found")

    linked = (
        db.execute(select(PurchaseRequest).where(PurchaseRequest.purchase_order_id == po.id))
        .scalars()
        .all()
    )

    keys: set[ProductKey] = {
        ProductKey(ln.product_category, ln.item_name, ln.product_version) for ln in po.lines
    }
    now = utcnow()
    for req in linked:
        req.status = RequestStatus.approved
        req.purchase_order_id = None
        req.updated_at = now
        key = key_of(req)
        if key is not None:
            keys.add(key)

    for key in sorted(keys):
        sl = get_stock_detail_for_update(db, company_id, key)
        if sl is None:
            continue
        sl.last_request_status = RequestStatus.approved.value
        sl.po_created_quantity = 0
        sl.updated_at = now

    db.delete(po)
    db.flush()
    logger.info("Deleted purchase order id=%s with rollback of %d requests", po_id, len(linked))
