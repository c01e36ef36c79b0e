from app.models.transaction import (
    Transaction,
    TransactionStatus,
    TransactionCategory,
    PaymentMethod,
    VerificationMethod,
    MOCK_BYPASS_PAYMENT_METHOD,
)
from app.models.data_plan import DataPlanCache

__all__ = [
    "Transaction",
    "TransactionStatus",
    "TransactionCategory",
    "PaymentMethod",
    "VerificationMethod",
    "MOCK_BYPASS_PAYMENT_METHOD",
    "DataPlanCache",
]
