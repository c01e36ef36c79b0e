import logging

from sqlalchemy.orm import Session
from app.models import TransactionStatus, VerificationMethod
from app.services.paystack import from_kobo
from app.services.transactions import StatusChange, get_transaction, mark_paid


logger = logging.getLogger(__name__)

CHARGE_SUCCESS = "charge.success"


def handle_paystack_event(db: Session, payload: dict) -> StatusChange | None:
    """Apply a verified Paystack event. Returns the status change it caused, if any."""
    if not isinstance(payload, dict):
        logger.warning("[paystackWebhook] Ignoring non-object payload.")
        return None

    event = payload.get("event")
    data = payload.get("data") or {}
    reference = data.get("reference") if isinstance(data, dict) else None
    logger.info("[paystackWebhook] Event: %s, ref: %s", event, reference)

    if event != CHARGE_SUCCESS or not reference:
        return None

    tx = get_transaction(db, reference)
    if tx is None:
        logger.warning("[paystackWebhook] No transaction for ref: %s", reference)
        return None
    if tx.status != TransactionStatus.UNPAID:
        logger.info("[paystackWebhook] Ref %s already %s; nothing to do.", reference, tx.status)
        return None

    return mark_paid(
        db,
        reference,
        verification_method=VerificationMethod.WEBHOOK,
        paystack_amount=from_kobo(data.get("amount")),
        paystack_status=data.get("status"),
    )
