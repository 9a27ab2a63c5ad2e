from fastapi import APIRouter

from stockledger.app.api.v1.endpoints.stock import router as stock_router
from stockledger.app.api.v1.endpoints.purchase_records import router as purchase_records_router
from stockledger.app.api.v1.endpoints.purchase_requests import router as purchase_requests_router
from stockledger.app.api.v1.endpoints.purchase_orders import router as purchase_orders_router

router = APIRouter()
router.include_router(stock_router, tags=["stock"])
router.include_router(purchase_records_router, tags=["purchase_records"])
router.include_router(purchase_requests_router, tags=["purchase_requests"])
router.include_router(purchase_orders_router, tags=["purchase_orders"])
