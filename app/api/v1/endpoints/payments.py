from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.dependencies import Caller, get_caller
from app.middlewares.rate_limit import limiter
from app.schemas.payments import InitPaymentOut, InitPaymentRequest, MockPaymentOut, PaymentStatusOut, TxRefRequest
from app.services.payments import confirm_mock_payment, init_payment, verify_payment
from app.services.triggers import publish_status_change

router = APIRouter()


@router.post("/init", response_model=InitPaymentOut)
@limiter.limit("10/minute")
def init_payment_endpoint(
    request: Request,
    payload: InitPaymentRequest,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return init_payment(db, payload, caller)


@router.post("/verify", response_model=PaymentStatusOut)
def verify_payment_endpoint(payload: TxRefRequest, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    result, change = verify_payment(db, payload.tx_ref)
    publish_status_change(background_tasks, change)
    return result


@router.post("/mock/confirm", response_model=MockPaymentOut)
def confirm_mock_payment_endpoint(payload: TxRefRequest, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    result, change = confirm_mock_payment(db, payload.tx_ref)
    publish_status_change(background_tasks, change)
    return result
