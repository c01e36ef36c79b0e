import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.database import Base, SessionLocal
from app.models import PaymentMethod, TransactionCategory, TransactionStatus, VerificationMethod
from app.services import triggers
from app.services.transactions import (
    StatusChange,
    VendOutcome,
    claim_for_dispatch,
    create_transaction,
    generate_tx_ref,
    get_transaction,
    handle_vending,
    mark_paid,
    record_vended,
)
from app.services.vending import VendResult, VendingEngine


def _create(db, category=TransactionCategory.AIRTIME, details=None):
    return create_transaction(
        db,
        category=category,
        amount=500,
        details=details or {"phone": "08030000000", "network": "MTN"},
        provider="MTN",
        payment_method=PaymentMethod.CARD,
        user_id="user-1",
    )


def _reload(db, tx_ref):
    db.expire_all()
    return get_transaction(db, tx_ref)


def test_generate_tx_ref_format():
    prefix, millis, suffix = generate_tx_ref("SWFT").split("-")
    assert prefix == "SWFT"
    assert millis.isdigit() and len(millis) >= 13
    assert 0 <= int(suffix) < 1000


def test_create_transaction_starts_unpaid(db):
    tx = _create(db)
    assert tx.status == TransactionStatus.UNPAID
    assert tx.paid_at is None
    assert tx.details["phone"] == "08030000000"


def test_mark_paid_only_wins_once(db):
    tx = _create(db)

    first = mark_paid(db, tx.tx_ref, verification_method=VerificationMethod.WEBHOOK, paystack_amount=5.0)
    paid_at = _reload(db, tx.tx_ref).paid_at
    second = mark_paid(db, tx.tx_ref, verification_method=VerificationMethod.GATEWAY_POLL)

    assert first == StatusChange(tx.tx_ref, "UNPAID", "PAID")
    assert second is None
    stored = _reload(db, tx.tx_ref)
    assert stored.paid_at == paid_at
    assert stored.verification_method == "webhook"


def test_handle_vending_records_success(db, fake_vtpass):
    tx = _create(db)
    mark_paid(db, tx.tx_ref, verification_method=VerificationMethod.WEBHOOK)

    assert handle_vending(db, tx.tx_ref, VendingEngine()) == VendOutcome.VENDED
    stored = _reload(db, tx.tx_ref)
    assert stored.status == TransactionStatus.VENDED
    assert stored.vended_at is not None
    assert stored.vendor_response["code"] == "000"


def test_handle_vending_records_failure(db, fake_vtpass):
    fake_vtpass.pay_response = {"code": "014", "response_description": "REQUEST ID ALREADY EXIST"}
    tx = _create(db)
    mark_paid(db, tx.tx_ref, verification_method=VerificationMethod.WEBHOOK)

    assert handle_vending(db, tx.tx_ref, VendingEngine()) == VendOutcome.VENDING_FAILED
    stored = _reload(db, tx.tx_ref)
    assert stored.status == TransactionStatus.VENDING_FAILED
    assert stored.error == "REQUEST ID ALREADY EXIST"


def test_handle_vending_is_noop_for_missing_and_vended(db, fake_vtpass):
    tx = _create(db)
    mark_paid(db, tx.tx_ref, verification_method=VerificationMethod.WEBHOOK)

    assert handle_vending(db, "SWFT-0-0", VendingEngine()) == VendOutcome.NOT_FOUND
    assert handle_vending(db, tx.tx_ref, VendingEngine()) == VendOutcome.VENDED
    assert handle_vending(db, tx.tx_ref, VendingEngine()) == VendOutcome.ALREADY_VENDED
    assert len(fake_vtpass.pay_calls) == 1


def test_handle_vending_skips_unpaid_transactions(db, fake_vtpass):
    tx = _create(db)
    assert handle_vending(db, tx.tx_ref, VendingEngine()) == VendOutcome.ALREADY_CLAIMED
    assert _reload(db, tx.tx_ref).status == TransactionStatus.UNPAID
    assert fake_vtpass.pay_calls == []


def test_handle_vending_leaves_unknown_category_paid(db, fake_vtpass):
    tx = _create(db)
    db.query(type(tx)).filter_by(tx_ref=tx.tx_ref).update({"category": "gas", "status": "PAID"})
    db.commit()

    assert handle_vending(db, tx.tx_ref, VendingEngine()) == VendOutcome.UNKNOWN_CATEGORY
    assert _reload(db, tx.tx_ref).status == TransactionStatus.PAID
    assert fake_vtpass.pay_calls == []


@pytest.mark.parametrize(
    "before,after,expected",
    [
        ("UNPAID", "PAID", True),
        (None, "PAID", True),
        ("PAID", "PAID", False),
        ("PAID", "VENDED", False),
        ("UNPAID", "UNPAID", False),
    ],
)
def test_paid_edge_detection(before, after, expected):
    assert triggers.is_paid_edge(StatusChange("SWFT-1-1", before, after)) is expected


def test_duplicate_paid_edges_dispatch_once(db, fake_vtpass):
    tx = _create(db)
    change = mark_paid(db, tx.tx_ref, verification_method=VerificationMethod.WEBHOOK)

    outcomes = [triggers.on_transaction_updated(change) for _ in range(3)]

    assert outcomes[0] == VendOutcome.VENDED
    assert set(outcomes[1:]) == {VendOutcome.ALREADY_VENDED}
    assert len(fake_vtpass.pay_calls) == 1


def test_non_edge_updates_do_not_dispatch(db, fake_vtpass):
    tx = _create(db)
    mark_paid(db, tx.tx_ref, verification_method=VerificationMethod.WEBHOOK)

    assert triggers.on_transaction_updated(StatusChange(tx.tx_ref, "PAID", "PAID")) is None
    assert fake_vtpass.pay_calls == []
    assert _reload(db, tx.tx_ref).status == TransactionStatus.PAID


def test_unexpected_error_marks_vending_error(db):
    class ExplodingAdapter:
        def vend(self, tx):
            raise RuntimeError("adapter bug")

    class ExplodingEngine:
        def adapter_for(self, category):
            return ExplodingAdapter()

    tx = _create(db)
    change = mark_paid(db, tx.tx_ref, verification_method=VerificationMethod.WEBHOOK)

    outcome = triggers.on_transaction_updated(change, engine_factory=ExplodingEngine)

    assert outcome == VendOutcome.VENDING_ERROR
    assert _reload(db, tx.tx_ref).status == TransactionStatus.VENDING_ERROR


def test_vending_error_does_not_overwrite_terminal_state(db, fake_vtpass):
    tx = _create(db)
    change = mark_paid(db, tx.tx_ref, verification_method=VerificationMethod.WEBHOOK)
    triggers.on_transaction_updated(change)

    def broken_engine():
        raise RuntimeError("boom")

    assert triggers.on_transaction_updated(change, engine_factory=broken_engine) == VendOutcome.VENDING_ERROR
    assert _reload(db, tx.tx_ref).status == TransactionStatus.VENDED


def test_stale_reader_loses_dispatch_claim(db, fake_vtpass):
    tx = _create(db)
    mark_paid(db, tx.tx_ref, verification_method=VerificationMethod.WEBHOOK)

    # This session loads the record while it is still PAID.
    stale = SessionLocal()
    try:
        assert get_transaction(stale, tx.tx_ref).status == TransactionStatus.PAID

        winner = SessionLocal()
        try:
            assert claim_for_dispatch(winner, tx.tx_ref) is True
            assert claim_for_dispatch(winner, tx.tx_ref) is False
            record_vended(winner, tx.tx_ref, VendResult(True, raw={"code": "000"}))
        finally:
            winner.close()

        assert handle_vending(stale, tx.tx_ref, VendingEngine()) == VendOutcome.ALREADY_CLAIMED
    finally:
        stale.close()

    assert fake_vtpass.pay_calls == []
    assert _reload(db, tx.tx_ref).status == TransactionStatus.VENDED


@pytest.fixture
def file_sessions(tmp_path):
    """Sessions on a file-backed database, one connection per thread."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def _run_together(targets):
    barrier = threading.Barrier(len(targets))
    results = [None] * len(targets)
    errors = []

    def worker(index):
        try:
            barrier.wait()
            results[index] = targets[index]()
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(len(targets))]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    assert errors == []
    return results


def test_concurrent_paid_writes_produce_one_change(file_sessions):
    setup = file_sessions()
    try:
        tx_ref = _create(setup).tx_ref
    finally:
        setup.close()

    def pay(method):
        def attempt():
            session = file_sessions()
            try:
                return mark_paid(session, tx_ref, verification_method=method)
            finally:
                session.close()

        return attempt

    results = _run_together([pay(VerificationMethod.WEBHOOK), pay(VerificationMethod.GATEWAY_POLL)])

    changes = [result for result in results if result is not None]
    assert changes == [StatusChange(tx_ref, "UNPAID", "PAID")]


def test_concurrent_triggers_dispatch_once(file_sessions, fake_vtpass):
    setup = file_sessions()
    try:
        tx_ref = _create(setup).tx_ref
        change = mark_paid(setup, tx_ref, verification_method=VerificationMethod.WEBHOOK)
    finally:
        setup.close()

    def fire():
        return triggers.on_transaction_updated(change, session_factory=file_sessions)

    outcomes = _run_together([fire] * 4)

    assert outcomes.count(VendOutcome.VENDED) == 1
    assert set(outcomes) <= {VendOutcome.VENDED, VendOutcome.ALREADY_CLAIMED, VendOutcome.ALREADY_VENDED}
    assert len(fake_vtpass.pay_calls) == 1

    check = file_sessions()
    try:
        assert get_transaction(check, tx_ref).status == TransactionStatus.VENDED
    finally:
        check.close()
