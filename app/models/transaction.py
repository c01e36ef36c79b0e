import enum
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Index, JSON
from app.core.database import Base
from app.models.base import TimestampMixin


class TransactionStatus(str, enum.Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"
    # Claimed by a vending run; the vendor call is in flight.
    DISPATCHING = "DISPATCHING"
    VENDED = "VENDED"
    VENDING_FAILED = "VENDING_FAILED"
    VENDING_ERROR = "VENDING_ERROR"


class TransactionCategory(str, enum.Enum):
    DATA = "data"
    AIRTIME = "airtime"
    ELECTRICITY = "electricity"
    TV = "tv"

    @classmethod
    def parse(cls, value) -> "TransactionCategory | None":
        raw = str(value or "").strip().lower()
        for member in cls:
            if member.value == raw:
                return member
        return None


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    TRANSFER = "transfer"
    USSD = "ussd"
    MOCK = "mock"


class VerificationMethod(str, enum.Enum):
    GATEWAY_POLL = "gateway_poll"
    WEBHOOK = "webhook"
    MANUAL_BYPASS = "manual_bypass"


MOCK_BYPASS_PAYMENT_METHOD = "mock-test-bypass"


class Transaction(Base, TimestampMixin):
    """
    One purchase attempt, keyed by ``tx_ref`` (also the Paystack reference).

    Status and category are plain strings so new states do not need an ENUM
    migration. Only the status-related columns change after creation, and
    every status write goes through a conditional update in
    ``app.services.transactions``.
    """

    __tablename__ = "transactions"

    tx_ref = Column(String(64), primary_key=True)
    user_id = Column(String(128), nullable=False, default="anonymous")
    category = Column(String(16), nullable=False)
    amount = Column(Integer, nullable=False)
    details = Column(JSON, nullable=False)
    provider = Column(String(64), nullable=True)
    payment_method = Column(String(32), nullable=False, default=PaymentMethod.CARD.value)
    status = Column(String(24), nullable=False, default=TransactionStatus.UNPAID.value)

    paystack_access_code = Column(String(128), nullable=True)
    paystack_reference = Column(String(128), nullable=True)
    paystack_amount = Column(Numeric(12, 2), nullable=True)
    paystack_status = Column(String(32), nullable=True)
    verification_method = Column(String(32), nullable=True)

    paid_at = Column(DateTime(timezone=True), nullable=True)
    vended_at = Column(DateTime(timezone=True), nullable=True)
    token = Column(String(255), nullable=True)
    vendor_response = Column(JSON, nullable=True)
    error = Column(String(255), nullable=True)


Index("ix_transactions_user_status", Transaction.user_id, Transaction.status)
Index("ix_transactions_category_status", Transaction.category, Transaction.status)
