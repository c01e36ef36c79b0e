import logging
from typing import Callable

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session
from app.core.database import SessionLocal
from app.models import TransactionStatus
from app.services.transactions import StatusChange, VendOutcome, handle_vending, mark_vending_error
from app.services.vending import VendingEngine


logger = logging.getLogger(__name__)


def is_paid_edge(change: StatusChange) -> bool:
    # Edge, not level: later writes to an already-PAID record must not re-dispatch.
    return change.before != TransactionStatus.PAID.value and change.after == TransactionStatus.PAID.value


def on_transaction_updated(
    change: StatusChange,
    *,
    session_factory: Callable[[], Session] | None = None,
    engine_factory: Callable[[], VendingEngine] | None = None,
) -> VendOutcome | None:
    logger.info("[onTransactionPaid] Triggered for %s. Status: %s -> %s", change.tx_ref, change.before, change.after)
    if not is_paid_edge(change):
        logger.info("[onTransactionPaid] Skipping vending for %s; not a PAID edge.", change.tx_ref)
        return None

    db = (session_factory or SessionLocal)()
    try:
        try:
            engine = (engine_factory or VendingEngine)()
            outcome = handle_vending(db, change.tx_ref, engine)
        except Exception:
            logger.exception("[onTransactionPaid] Critical error in vending engine for ref: %s", change.tx_ref)
            db.rollback()
            try:
                mark_vending_error(db, change.tx_ref)
            except Exception:
                logger.exception("[onTransactionPaid] Could not record VENDING_ERROR for ref: %s", change.tx_ref)
            return VendOutcome.VENDING_ERROR
        logger.info("[onTransactionPaid] Vending handler completed for %s: %s", change.tx_ref, outcome.value)
        return outcome
    finally:
        db.close()


def publish_status_change(background_tasks: BackgroundTasks, change: StatusChange | None) -> None:
    """Queue the trigger to run after the response, in its own session."""
    if change is None:
        return
    background_tasks.add_task(on_transaction_updated, change)
