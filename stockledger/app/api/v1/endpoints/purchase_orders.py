from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db, to_http_error
from stockledger.app.schemas.purchasing import POCreate
from stockledger.services import procurement
from stockledger.services.errors import StockLedgerError

router = APIRouter(prefix="/purchase-orders")


@router.post("")
def create_po(company_id: str, payload: POCreate, db: Session = Depends(get_db)):
    try:
        po = procurement.create_purchase_order(db, company_id, payload)
        db.commit()
        db.refresh(po)
        return {
            "id": po.id,
            "po_number": po.po_number,
            "status": po.status,
            "lines": [
                {
                    "product_category": l.product_category,
                    "item_name": l.item_name,
                    "product_version": l.product_version,
                    "quantity": l.quantity,
                    "unit_cost": float(l.unit_cost),
                }
                for l in po.lines
            ],
        }
    except StockLedgerError as e:
        db.rollback()
        raise to_http_error(e)
    except Exception:
        db.rollback()
        raise


@router.delete("/{po_id}")
def delete_po(po_id: int, company_id: str, db: Session = Depends(get_db)):
    try:
        procurement.delete_purchase_order_with_rollback(db, company_id, po_id)
        db.commit()
        return {"id": po_id, "deleted": True}
    except StockLedgerError as e:
        db.rollback()
        raise to_http_error(e)
    except Exception:
        db.rollback()
        raise
