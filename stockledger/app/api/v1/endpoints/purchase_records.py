from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db, to_http_error
from stockledger.app.db.models.models_v1 import PurchaseRecord
from stockledger.app.schemas.purchasing import PurchaseCreate, PurchaseRecordRead
from stockledger.services.errors import StockLedgerError
from stockledger.services.inventory import delete_purchase_record
from stockledger.services.procurement import record_purchase

router = APIRouter(prefix="/purchase-records")


@router.get("", response_model=list[PurchaseRecordRead])
def list_purchase_records(company_id: str, db: Session = Depends(get_db)):
    rows = db.execute(
        select(PurchaseRecord)
        .where(PurchaseRecord.company_id == company_id)
        .order_by(PurchaseRecord.id.desc())
    ).scalars().all()
    return rows


@router.post("", response_model=list[PurchaseRecordRead])
def create_purchase_record(company_id: str, payload: PurchaseCreate, db: Session = Depends(get_db)):
    try:
        records = record_purchase(db, company_id, payload)
        db.commit()
        for rec in records:
            db.refresh(rec)
        return records
    except StockLedgerError as e:
        db.rollback()
        raise to_http_error(e)
    except Exception:
        db.rollback()
        raise


@router.delete("/{record_id}")
def remove_purchase_record(record_id: int, company_id: str, db: Session = Depends(get_db)):
    # retrait du stock + suppression : même transaction
    try:
        sl = delete_purchase_record(db, company_id, record_id)
        db.commit()
        return {
            "id": record_id,
            "deleted": True,
            "current_stock": sl.current_stock if sl is not None else None,
        }
    except StockLedgerError as e:
        db.rollback()
        raise to_http_error(e)
    except Exception:
        db.rollback()
        raise
