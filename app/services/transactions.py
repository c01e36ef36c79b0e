import enum
import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy.orm import Session
from app.models import Transaction, TransactionStatus, TransactionCategory, PaymentMethod, VerificationMethod
from app.services.vending import VendingEngine, VendResult


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusChange:
    """A committed status write, as seen by the change trigger."""

    tx_ref: str
    before: str | None
    after: str


class VendOutcome(str, enum.Enum):
    NOT_FOUND = "not_found"
    ALREADY_VENDED = "already_vended"
    ALREADY_CLAIMED = "already_claimed"
    UNKNOWN_CATEGORY = "unknown_category"
    VENDED = "vended"
    VENDING_FAILED = "vending_failed"
    VENDING_ERROR = "vending_error"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_tx_ref(prefix: str = "SWFT") -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.randbelow(1000)}"


def get_transaction(db: Session, tx_ref: str) -> Transaction | None:
    return db.query(Transaction).filter(Transaction.tx_ref == tx_ref).first()


def create_transaction(
    db: Session,
    *,
    category: TransactionCategory,
    amount: int,
    details: dict,
    provider: str | None,
    payment_method: PaymentMethod,
    user_id: str,
    prefix: str = "SWFT",
) -> Transaction:
    tx = Transaction(
        tx_ref=generate_tx_ref(prefix),
        user_id=user_id or "anonymous",
        category=category.value,
        amount=int(amount),
        details=details,
        provider=provider,
        payment_method=payment_method.value,
        status=TransactionStatus.UNPAID.value,
    )
    db.add(tx)
    db.commit()
    db.refresh(tx)
    return tx


def _compare_and_set(db: Session, tx_ref: str, expected: Iterable[TransactionStatus], values: dict) -> bool:
    """Conditional UPDATE; True only for the single writer that saw an expected status."""
    allowed = [status.value for status in expected]
    updated = (
        db.query(Transaction)
        .filter(Transaction.tx_ref == tx_ref, Transaction.status.in_(allowed))
        .update(values, synchronize_session=False)
    )
    db.commit()
    return updated == 1


def attach_checkout_session(db: Session, tx_ref: str, *, access_code: str | None, reference: str | None) -> bool:
    updated = (
        db.query(Transaction)
        .filter(Transaction.tx_ref == tx_ref, Transaction.paystack_access_code.is_(None))
        .update(
            {"paystack_access_code": access_code, "paystack_reference": reference},
            synchronize_session=False,
        )
    )
    db.commit()
    return updated == 1


def mark_paid(
    db: Session,
    tx_ref: str,
    *,
    verification_method: VerificationMethod,
    paystack_amount=None,
    paystack_status: str | None = None,
    payment_method: str | None = None,
) -> StatusChange | None:
    """
    UNPAID -> PAID. The webhook, the poll and the mock bypass all race on this
    write; only the winner gets a ``StatusChange`` back and fires the trigger.
    """
    values = {
        "status": TransactionStatus.PAID.value,
        "paid_at": utcnow(),
        "verification_method": verification_method.value,
    }
    if paystack_amount is not None:
        values["paystack_amount"] = paystack_amount
    if paystack_status is not None:
        values["paystack_status"] = str(paystack_status)
    if payment_method is not None:
        values["payment_method"] = payment_method

    if _compare_and_set(db, tx_ref, (TransactionStatus.UNPAID,), values):
        logger.info("Transaction %s marked PAID via %s", tx_ref, verification_method.value)
        return StatusChange(tx_ref, TransactionStatus.UNPAID.value, TransactionStatus.PAID.value)
    return None


def claim_for_dispatch(db: Session, tx_ref: str) -> bool:
    return _compare_and_set(
        db,
        tx_ref,
        (TransactionStatus.PAID,),
        {"status": TransactionStatus.DISPATCHING.value},
    )


def record_vended(db: Session, tx_ref: str, result: VendResult) -> bool:
    return _compare_and_set(
        db,
        tx_ref,
        (TransactionStatus.DISPATCHING,),
        {
            "status": TransactionStatus.VENDED.value,
            "vended_at": utcnow(),
            "token": result.token,
            "vendor_response": result.raw,
            "error": None,
        },
    )


def record_vending_failed(db: Session, tx_ref: str, result: VendResult) -> bool:
    return _compare_and_set(
        db,
        tx_ref,
        (TransactionStatus.DISPATCHING,),
        {
            "status": TransactionStatus.VENDING_FAILED.value,
            "error": (result.error or "Vending failed")[:255],
            "vendor_response": result.raw,
        },
    )


def mark_vending_error(db: Session, tx_ref: str) -> bool:
    return _compare_and_set(
        db,
        tx_ref,
        (TransactionStatus.PAID, TransactionStatus.DISPATCHING),
        {"status": TransactionStatus.VENDING_ERROR.value},
    )


def handle_vending(db: Session, tx_ref: str, engine: VendingEngine) -> VendOutcome:
    """
    Fulfil a PAID transaction once.

    Returns the outcome for every expected path. Unexpected exceptions are
    left to the caller, which owns the ``VENDING_ERROR`` fallback.
    """
    tx = get_transaction(db, tx_ref)
    if tx is None:
        logger.error("Transaction %s not found for vending.", tx_ref)
        return VendOutcome.NOT_FOUND

    if tx.status == TransactionStatus.VENDED:
        return VendOutcome.ALREADY_VENDED

    adapter = engine.adapter_for(tx.category)
    if adapter is None:
        logger.error("Unknown category %r for transaction %s; not vending.", tx.category, tx_ref)
        return VendOutcome.UNKNOWN_CATEGORY

    if not claim_for_dispatch(db, tx_ref):
        logger.warning("Transaction %s is no longer PAID; another run owns the dispatch.", tx_ref)
        return VendOutcome.ALREADY_CLAIMED

    result = adapter.vend(tx)
    if result.success:
        record_vended(db, tx_ref, result)
        logger.info("Successfully vended %s for ref: %s", tx.category, tx_ref)
        return VendOutcome.VENDED

    record_vending_failed(db, tx_ref, result)
    logger.error("Vending failed for ref: %s: %s", tx_ref, result.error)
    return VendOutcome.VENDING_FAILED
