import logging

from sqlalchemy.orm import Session
from app.core.config import Settings, get_settings
from app.core.errors import InternalError, InvalidArgumentError, NotFoundError, PermissionDeniedError, ServiceError
from app.dependencies import Caller
from app.models import (
    MOCK_BYPASS_PAYMENT_METHOD,
    PaymentMethod,
    TransactionCategory,
    TransactionStatus,
    VerificationMethod,
)
from app.schemas.payments import InitPaymentRequest
from app.services.paystack import PaystackClient, from_kobo, to_kobo
from app.services.transactions import (
    StatusChange,
    attach_checkout_session,
    create_transaction,
    get_transaction,
    mark_paid,
)


logger = logging.getLogger(__name__)


def _parse_payment_method(value: str | None) -> PaymentMethod:
    raw = str(value or "").strip().lower()
    if not raw:
        return PaymentMethod.CARD
    for method in PaymentMethod:
        if method.value == raw:
            return method
    raise InvalidArgumentError(f"Unsupported payment method: {value}")


def _check_purchase_details(category: TransactionCategory, details: dict, provider: str | None) -> None:
    """Reject purchases the vendor is certain to refuse, before any money is collected."""

    def present(*keys) -> bool:
        return any(str(details.get(key) or "").strip() for key in keys)

    if category in (TransactionCategory.DATA, TransactionCategory.AIRTIME):
        if not present("phone"):
            raise InvalidArgumentError(f"A phone number is required for {category.value} purchases.")
        if not (present("network") or provider):
            raise InvalidArgumentError(f"A network is required for {category.value} purchases.")
    elif category == TransactionCategory.ELECTRICITY:
        if not present("meter"):
            raise InvalidArgumentError("A meter number is required for electricity purchases.")
    elif category == TransactionCategory.TV and not present("smartcard", "meter"):
        raise InvalidArgumentError("A smartcard number is required for TV subscriptions.")


def init_payment(
    db: Session,
    payload: InitPaymentRequest,
    caller: Caller,
    *,
    client: PaystackClient | None = None,
    settings: Settings | None = None,
) -> dict:
    settings = settings or get_settings()

    if not payload.category or not payload.amount or payload.details is None:
        raise InvalidArgumentError("Missing required payment details.")
    category = TransactionCategory.parse(payload.category)
    if category is None:
        raise InvalidArgumentError(f"Unsupported category: {payload.category}")
    if int(payload.amount) <= 0:
        raise InvalidArgumentError("Amount must be greater than zero.")
    payment_method = _parse_payment_method(payload.payment_method)

    details = payload.details.dict(exclude_none=True)
    provider = (payload.provider or "").strip() or None
    _check_purchase_details(category, details, provider)
    tx_ref = None
    try:
        # Persist before calling Paystack: a failed checkout still leaves an auditable UNPAID record.
        tx = create_transaction(
            db,
            category=category,
            amount=int(payload.amount),
            details=details,
            provider=provider,
            payment_method=payment_method,
            user_id=caller.user_id,
            prefix=settings.tx_ref_prefix,
        )
        tx_ref = tx.tx_ref
        logger.info("[initPayment] Initiating %s payment for ref: %s", category.value, tx_ref)

        client = client or PaystackClient(settings)
        response = client.initialize_transaction(
            email=caller.email or settings.paystack_default_email,
            amount_kobo=to_kobo(payload.amount),
            reference=tx_ref,
            metadata={
                "category": category.value,
                "provider": provider,
                "phone": details.get("phone") or details.get("meter"),
                "userId": caller.user_id,
            },
            callback_url=payload.callback_url,
        )
        data = response.get("data") if isinstance(response, dict) else None
        if not (isinstance(response, dict) and response.get("status") and isinstance(data, dict)):
            raise InternalError("Paystack initialization failed")

        attach_checkout_session(
            db,
            tx_ref,
            access_code=data.get("access_code"),
            reference=data.get("reference"),
        )
        return {
            "success": True,
            "txRef": tx_ref,
            "checkoutUrl": data.get("authorization_url") or "",
            "accessCode": data.get("access_code") or "",
            "isWebView": True,
        }
    except ServiceError as exc:
        logger.error("[initPayment] Failed for ref %s: %s", tx_ref, exc.message)
        raise InternalError("Payment initialization failed")
    except Exception as exc:
        logger.error("[initPayment] Failed for ref %s: %s", tx_ref, exc)
        raise InternalError("Payment initialization failed")


def verify_payment(
    db: Session,
    tx_ref: str | None,
    *,
    client: PaystackClient | None = None,
) -> tuple[dict, StatusChange | None]:
    if not tx_ref:
        raise InvalidArgumentError("Missing txRef")

    tx = get_transaction(db, tx_ref)
    if tx is None:
        raise NotFoundError("Transaction not found")
    if tx.status != TransactionStatus.UNPAID:
        return {"success": True, "status": tx.status}, None

    try:
        response = (client or PaystackClient()).verify_transaction(tx_ref)
        data = response.get("data") if isinstance(response, dict) else None
        data = data if isinstance(data, dict) else {}
        gateway_status = str(data.get("status") or "")

        if not (response.get("status") and gateway_status == "success"):
            return {"success": False, "status": gateway_status or "failed"}, None

        change = mark_paid(
            db,
            tx_ref,
            verification_method=VerificationMethod.GATEWAY_POLL,
            paystack_amount=from_kobo(data.get("amount")),
            paystack_status=gateway_status,
        )
        if change is not None:
            return {"success": True, "status": TransactionStatus.PAID.value}, change

        # Lost the race to the webhook (or another poll); report what it wrote.
        current = get_transaction(db, tx_ref)
        return {"success": True, "status": current.status if current else TransactionStatus.PAID.value}, None
    except Exception as exc:
        logger.error("[verifyPayment] Failed for ref %s: %s", tx_ref, exc)
        raise InternalError("Verification failed")


def confirm_mock_payment(
    db: Session,
    tx_ref: str | None,
    *,
    settings: Settings | None = None,
) -> tuple[dict, StatusChange | None]:
    settings = settings or get_settings()
    if not settings.mock_payments_enabled:
        raise PermissionDeniedError("Mock payments are disabled.")
    if not tx_ref:
        raise InvalidArgumentError("Missing txRef")

    logger.info("[confirmMockPayment] Triggering bypass for: %s", tx_ref)
    tx = get_transaction(db, tx_ref)
    if tx is None:
        logger.error("[confirmMockPayment] Transaction %s not found.", tx_ref)
        raise NotFoundError("Transaction ref does not exist.")

    change = mark_paid(
        db,
        tx_ref,
        verification_method=VerificationMethod.MANUAL_BYPASS,
        payment_method=MOCK_BYPASS_PAYMENT_METHOD,
    )
    if change is not None:
        logger.info("[confirmMockPayment] Ref %s is now marked as PAID.", tx_ref)
        return {"success": True, "message": "Mock payment confirmed."}, change

    current = get_transaction(db, tx_ref)
    status = current.status if current else TransactionStatus.PAID.value
    return {"success": True, "message": f"Transaction already {status}."}, None
