from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.errors import NotFoundError
from app.schemas.transaction import TransactionOut
from app.services.transactions import get_transaction

router = APIRouter()


@router.get("/{tx_ref}", response_model=TransactionOut)
def get_transaction_status(tx_ref: str, db: Session = Depends(get_db)):
    # Polled by the app while the checkout webview is open and after it closes.
    tx = get_transaction(db, tx_ref)
    if tx is None:
        raise NotFoundError("Transaction not found")
    return tx
