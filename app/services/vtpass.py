import logging
import re
import time
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse, urlunparse

import httpx
from app.core.config import Settings, get_settings
from app.utils.retry import retry_with_backoff


logger = logging.getLogger(__name__)

SUCCESS_CODE = "000"

# West Africa Time has no DST; VTpass request ids are expected in Lagos time.
LAGOS_TZ = timezone(timedelta(hours=1), name="WAT")

# Ordered (needle, serviceID) pairs; the first needle found in the caller's
# network/provider string wins.
DATA_SERVICE_IDS = (
    ("mtn", "mtn-data"),
    ("airtel", "airtel-data"),
    ("glo", "glo-data"),
    ("etisalat", "etisalat-data"),
    ("9mobile", "etisalat-data"),
)
AIRTIME_SERVICE_IDS = (
    ("mtn", "mtn"),
    ("airtel", "airtel"),
    ("glo", "glo"),
    ("etisalat", "etisalat"),
    ("9mobile", "etisalat"),
)
TV_SERVICE_IDS = (
    ("dstv", "dstv"),
    ("gotv", "gotv"),
    ("startimes", "startimes"),
)
ELECTRICITY_SERVICE_IDS = (
    ("ikeja", "ikeja-electric"),
    ("eko", "eko-electric"),
    ("abuja", "abuja-electric"),
    ("kano", "kano-electric"),
    ("portharcourt", "portharcourt-electric"),
    ("port harcourt", "portharcourt-electric"),
    ("jos", "jos-electric"),
    ("kaduna", "kaduna-electric"),
    ("enugu", "enugu-electric"),
    ("ibadan", "ibadan-electric"),
    ("benin", "benin-electric"),
    ("aba", "aba-electric"),
    ("yola", "yola-electric"),
)
DEFAULT_TV_SERVICE_ID = "showmax"
DEFAULT_ELECTRICITY_SERVICE_ID = "eko-electric"


def match_service_id(value: str | None, table: tuple, default: str | None = None) -> str | None:
    text = str(value or "").strip().lower()
    for needle, service_id in table:
        if needle in text:
            return service_id
    return default


def resolve_data_service_id(network: str | None) -> str | None:
    text = str(network or "").strip().lower()
    if not text:
        return None
    return match_service_id(text, DATA_SERVICE_IDS, f"{text}-data")


def resolve_airtime_service_id(network: str | None) -> str | None:
    text = str(network or "").strip().lower()
    if not text:
        return None
    return match_service_id(text, AIRTIME_SERVICE_IDS, text)


def resolve_tv_service_id(provider: str | None) -> str:
    return match_service_id(provider, TV_SERVICE_IDS, DEFAULT_TV_SERVICE_ID)


def resolve_electricity_service_id(disco: str | None) -> str:
    return match_service_id(disco, ELECTRICITY_SERVICE_IDS, DEFAULT_ELECTRICITY_SERVICE_ID)


def generate_request_id(tx_ref: str, now: datetime | None = None) -> str:
    """VTpass request id: ``YYYYMMDDHHMM`` in Lagos time plus the last 8 alphanumerics of ``tx_ref``."""
    moment = (now or datetime.now(timezone.utc)).astimezone(LAGOS_TZ)
    suffix = re.sub(r"[^A-Za-z0-9]", "", str(tx_ref or ""))[-8:]
    return moment.strftime("%Y%m%d%H%M") + suffix


def normalize_vtpass_base_url(raw_url: str) -> str:
    url = str(raw_url or "").strip()
    if not url:
        return "https://sandbox.vtpass.com/api"

    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    path = (parsed.path or "").rstrip("/")
    if host.endswith("vtpass.com") and not path:
        path = "/api"

    scheme = parsed.scheme or "https"
    netloc = parsed.netloc or host
    normalized = urlunparse((scheme, netloc, path, "", "", ""))
    return normalized.rstrip("/")


class VTpassApiError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, raw: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.raw = raw


def describe_vendor_error(exc: Exception) -> str:
    """Prefer VTpass's own ``response_description`` over the transport error text."""
    response = getattr(exc, "response", None)
    if isinstance(exc, httpx.HTTPStatusError) and response is not None:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if isinstance(data, dict):
            description = data.get("response_description")
            if isinstance(description, str) and description.strip():
                return description.strip()
    if isinstance(exc, VTpassApiError):
        return exc.message
    return str(exc) or exc.__class__.__name__


class VTpassClient:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.base_url = normalize_vtpass_base_url(str(self.settings.vtpass_base_url))
        self.api_key = self.settings.vtpass_api_key
        self.secret_key = self.settings.vtpass_secret_key
        self.public_key = self.settings.vtpass_public_key
        self.purchase_timeout = self.settings.vtpass_purchase_timeout_seconds
        self.catalog_timeout = self.settings.vtpass_catalog_timeout_seconds
        self.max_retries = self.settings.retry_max_retries
        self.initial_delay = self.settings.retry_initial_delay_seconds
        self.placeholder_phone = self.settings.vtpass_placeholder_phone

    @property
    def sandbox_bypass_enabled(self) -> bool:
        return self.settings.sandbox_bypass_enabled

    def _headers(self, *, read_only: bool = False) -> dict:
        # GET endpoints authenticate with the public key, POST with the secret key.
        if read_only:
            return {"api-key": self.api_key, "public-key": self.public_key}
        return {
            "api-key": self.api_key,
            "secret-key": self.secret_key,
            "Content-Type": "application/json",
        }

    def _send(
        self,
        method: str,
        path: str,
        payload: dict | None = None,
        *,
        params: dict | None = None,
        timeout: float,
    ) -> dict:
        url = f"{self.base_url}{path}"
        start = time.time()
        with httpx.Client(timeout=timeout) as client:
            response = client.request(
                method,
                url,
                json=payload,
                params=params,
                headers=self._headers(read_only=method.upper() == "GET"),
            )
        duration_ms = round((time.time() - start) * 1000, 2)
        logger.info("VTpass API %s %s status=%s duration=%sms", method, path, response.status_code, duration_ms)
        response.raise_for_status()
        try:
            data = response.json()
        except ValueError as exc:
            raise VTpassApiError("VTpass returned invalid JSON response.", status_code=response.status_code, raw=response.text) from exc
        if not isinstance(data, dict):
            raise VTpassApiError("VTpass returned an unexpected response shape.", status_code=response.status_code, raw=response.text)
        return data

    def _request(
        self,
        method: str,
        path: str,
        payload: dict | None = None,
        *,
        params: dict | None = None,
        timeout: float,
    ) -> dict:
        return retry_with_backoff(
            lambda: self._send(method, path, payload, params=params, timeout=timeout),
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
        )

    def pay(self, payload: dict) -> dict:
        return self._request("POST", "/pay", payload, timeout=self.purchase_timeout)

    def service_variations(self, service_id: str) -> dict:
        return self._request(
            "GET",
            "/service-variations",
            params={"serviceID": service_id},
            timeout=self.catalog_timeout,
        )
