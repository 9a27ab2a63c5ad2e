from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db, to_http_error
from stockledger.app.schemas.consumption import (
    StockConsumeRequest,
    StockLineItem,
    StockRestoreRequest,
    StockValidationResult,
)
from stockledger.app.schemas.stock_detail import (
    DisplayStatusUpdate,
    StockDetailRead,
    StockSyncResult,
    ThresholdsUpdate,
)
from stockledger.services import consumption, inventory
from stockledger.services.errors import StockLedgerError
from stockledger.services.reconciler import sync_stock_details

router = APIRouter(prefix="/stock")


@router.get("", response_model=list[StockDetailRead])
def get_stock(
    company_id: str,
    displayed_only: bool = False,
    db: Session = Depends(get_db),
):
    """
    Stock (READ ONLY)
    - stock_status est calculé depuis les seuils
    - displayed_only : vue employé
    """
    return inventory.list_stock_details(db, company_id, displayed_only=displayed_only)


@router.post("/generate", response_model=list[StockDetailRead])
def generate_stock(company_id: str, db: Session = Depends(get_db)):
    # commit par produit dans le service
    try:
        return inventory.generate_stock_details(db, company_id)
    except Exception:
        db.rollback()
        raise


@router.post("/sync", response_model=StockSyncResult)
def sync_stock(company_id: str, db: Session = Depends(get_db)):
    return sync_stock_details(db, company_id)


@router.patch("/{stock_id}/thresholds", response_model=StockDetailRead)
def update_thresholds(
    stock_id: int,
    company_id: str,
    payload: ThresholdsUpdate,
    db: Session = Depends(get_db),
):
    try:
        sl = inventory.update_thresholds(
            db,
            company_id,
            stock_id,
            min_required=payload.min_required,
            safe_quantity_limit=payload.safe_quantity_limit,
        )
        db.commit()
        db.refresh(sl)
        return sl
    except StockLedgerError as e:
        db.rollback()
        raise to_http_error(e)
    except Exception:
        db.rollback()
        raise


@router.patch("/{stock_id}/display-status", response_model=StockDetailRead)
def update_display_status(
    stock_id: int,
    company_id: str,
    payload: DisplayStatusUpdate,
    db: Session = Depends(get_db),
):
    try:
        sl = inventory.set_display_status(db, company_id, stock_id, payload.display_status)
        db.commit()
        db.refresh(sl)
        return sl
    except StockLedgerError as e:
        db.rollback()
        raise to_http_error(e)
    except Exception:
        db.rollback()
        raise


# ---------- Consumption gate ----------
@router.post("/validate", response_model=StockValidationResult)
def validate_stock(company_id: str, items: list[StockLineItem], db: Session = Depends(get_db)):
    return consumption.validate_stock_availability(db, company_id, items)


@router.post("/consume")
def consume_stock(company_id: str, payload: StockConsumeRequest, db: Session = Depends(get_db)):
    try:
        issues = consumption.consume_stock(db, company_id, payload.items, payload.invoice_ref)
        db.commit()
        return {"invoice_ref": payload.invoice_ref, "lines": len(issues)}
    except StockLedgerError as e:
        db.rollback()
        raise to_http_error(e)
    except Exception:
        db.rollback()
        raise


@router.post("/restore")
def restore_stock(company_id: str, payload: StockRestoreRequest, db: Session = Depends(get_db)):
    try:
        restored = consumption.restore_stock(db, company_id, payload.invoice_ref)
        db.commit()
        return {"invoice_ref": payload.invoice_ref, "restored": restored}
    except Exception:
        db.rollback()
        raise
