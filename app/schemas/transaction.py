from pydantic import BaseModel
from decimal import Decimal
from datetime import datetime
from typing import Any, Optional


class TransactionOut(BaseModel):
    tx_ref: str
    user_id: str
    category: str
    amount: int
    provider: Optional[str] = None
    payment_method: str
    status: str
    details: dict[str, Any]
    paystack_reference: Optional[str] = None
    paystack_amount: Optional[Decimal] = None
    verification_method: Optional[str] = None
    token: Optional[str] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    vended_at: Optional[datetime] = None

    class Config:
        orm_mode = True
