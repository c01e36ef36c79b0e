from fastapi import APIRouter
from app.api.v1.endpoints import payments, webhooks, products, transactions

router = APIRouter()

router.include_router(payments.router, prefix="/payments", tags=["payments"])
router.include_router(webhooks.router, tags=["webhooks"])
router.include_router(products.router, prefix="/products", tags=["products"])
router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
