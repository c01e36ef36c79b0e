import hashlib
import hmac
import logging
import time
from urllib.parse import quote

import httpx
from app.core.config import Settings, get_settings
from app.utils.retry import retry_with_backoff


logger = logging.getLogger(__name__)

PAYSTACK_CHANNELS = ["card", "bank_transfer", "ussd"]


def to_kobo(amount: int) -> int:
    return int(amount) * 100


def from_kobo(amount_kobo) -> float | None:
    if amount_kobo in (None, ""):
        return None
    try:
        return float(amount_kobo) / 100
    except (TypeError, ValueError):
        return None


class PaystackClient:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.base_url = str(self.settings.paystack_base_url).rstrip("/")
        self.secret_key = self.settings.paystack_secret_key
        self.timeout = self.settings.paystack_timeout_seconds
        self.max_retries = self.settings.retry_max_retries
        self.initial_delay = self.settings.retry_initial_delay_seconds

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.secret_key}", "Content-Type": "application/json"}

    def _send(self, method: str, path: str, payload: dict | None = None) -> dict:
        url = f"{self.base_url}{path}"
        start = time.time()
        with httpx.Client(timeout=self.timeout) as client:
            response = client.request(method, url, json=payload, headers=self._headers())
        duration_ms = round((time.time() - start) * 1000, 2)
        logger.info("Paystack API %s %s status=%s duration=%sms", method, path, response.status_code, duration_ms)
        response.raise_for_status()
        return response.json()

    def _request(self, method: str, path: str, payload: dict | None = None) -> dict:
        return retry_with_backoff(
            lambda: self._send(method, path, payload),
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
        )

    def initialize_transaction(
        self,
        *,
        email: str,
        amount_kobo: int,
        reference: str,
        metadata: dict,
        callback_url: str | None = None,
    ) -> dict:
        payload = {
            "email": email,
            "amount": amount_kobo,
            "reference": reference,
            "metadata": metadata,
            "channels": list(PAYSTACK_CHANNELS),
            "callback_url": callback_url or self.settings.paystack_callback_url,
        }
        return self._request("POST", "/transaction/initialize", payload)

    def verify_transaction(self, reference: str) -> dict:
        return self._request("GET", f"/transaction/verify/{quote(str(reference), safe='')}")


def compute_paystack_signature(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()


def verify_paystack_signature(body: bytes, signature: str, settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    sig = (signature or "").strip()
    if not sig:
        return False
    secret = settings.paystack_webhook_secret or settings.paystack_secret_key
    computed = compute_paystack_signature(body, secret)
    # Header values arrive latin-1 decoded and may hold non-ASCII bytes.
    return hmac.compare_digest(computed.encode(), sig.encode("utf-8", "replace"))
