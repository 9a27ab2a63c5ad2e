from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db, to_http_error
from stockledger.app.db.models.core_types import RequestStatus
from stockledger.app.schemas.purchasing import (
    PurchaseRequestCreate,
    PurchaseRequestRead,
    RequestQuantityUpdate,
    RequestStatusUpdate,
)
from stockledger.services import procurement
from stockledger.services.errors import StockLedgerError

router = APIRouter(prefix="/purchase-requests")


@router.get("", response_model=list[PurchaseRequestRead])
def list_requests(
    company_id: str,
    status: RequestStatus | None = None,
    db: Session = Depends(get_db),
):
    return procurement.list_purchase_requests(db, company_id, status)


@router.post("", response_model=PurchaseRequestRead)
def create_request(company_id: str, payload: PurchaseRequestCreate, db: Session = Depends(get_db)):
    try:
        req = procurement.create_purchase_request(db, company_id, payload)
        db.commit()
        db.refresh(req)
        return req
    except StockLedgerError as e:
        db.rollback()
        raise to_http_error(e)
    except Exception:
        db.rollback()
        raise


@router.post("/{request_id}/status", response_model=PurchaseRequestRead)
def change_status(
    request_id: int,
    company_id: str,
    payload: RequestStatusUpdate,
    db: Session = Depends(get_db),
):
    # demande + ledger : même transaction, jamais l'un sans l'autre
    try:
        req = procurement.update_request_status(db, company_id, request_id, payload.status)
        db.commit()
        db.refresh(req)
        return req
    except StockLedgerError as e:
        db.rollback()
        raise to_http_error(e)
    except Exception:
        db.rollback()
        raise


@router.patch("/{request_id}/quantity", response_model=PurchaseRequestRead)
def change_quantity(
    request_id: int,
    company_id: str,
    payload: RequestQuantityUpdate,
    db: Session = Depends(get_db),
):
    try:
        req = procurement.update_request_quantity(db, company_id, request_id, payload.quantity_required)
        db.commit()
        db.refresh(req)
        return req
    except StockLedgerError as e:
        db.rollback()
        raise to_http_error(e)
    except Exception:
        db.rollback()
        raise
