import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.services.paystack import verify_paystack_signature
from app.services.triggers import publish_status_change
from app.services.webhooks import handle_paystack_event

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/webhook")
async def paystack_webhook(request: Request, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    signature = request.headers.get("x-paystack-signature") or request.headers.get("x-signature")
    if not signature:
        raise HTTPException(status_code=401, detail="Missing signature")

    body = await request.body()
    if not verify_paystack_signature(body, signature):
        raise HTTPException(status_code=401, detail="Invalid signature")

    # Past this point Paystack always gets a 200, otherwise it keeps redelivering.
    try:
        payload = json.loads(body)
        change = handle_paystack_event(db, payload)
        publish_status_change(background_tasks, change)
    except Exception:
        logger.exception("[paystackWebhook] Failed to apply event")
    return {"status": "ok"}
