from __future__ import annotations

from typing import Generator

from fastapi import HTTPException

from stockledger.app.db.session import SessionLocal
from stockledger.services.errors import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    QuantityEditNotAllowed,
    StockLedgerError,
)

def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def to_http_error(exc: StockLedgerError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (InvalidTransitionError, QuantityEditNotAllowed)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, InsufficientStockError):
        return HTTPException(status_code=409, detail=exc.result.model_dump())
    return HTTPException(status_code=400, detail=str(exc))
