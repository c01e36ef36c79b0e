import logging
from dataclasses import dataclass

import httpx
from app.models import Transaction, TransactionCategory
from app.services.vtpass import (
    SUCCESS_CODE,
    VTpassApiError,
    VTpassClient,
    describe_vendor_error,
    generate_request_id,
    resolve_airtime_service_id,
    resolve_data_service_id,
    resolve_electricity_service_id,
    resolve_tv_service_id,
)


logger = logging.getLogger(__name__)

ELECTRICITY_FALLBACK_TOKEN = "TEST-TOKEN-SANDBOX"


@dataclass
class VendResult:
    success: bool
    token: str | None = None
    error: str | None = None
    raw: dict | None = None


def _details(tx: Transaction) -> dict:
    return dict(tx.details or {})


def _clean(value) -> str:
    return str(value or "").strip()


class VendorAdapter:
    """
    Shared purchase flow for one category: build the VTpass ``/pay`` payload,
    call the vendor and turn its response code into a ``VendResult``.

    Only transport and vendor errors are converted into failed results;
    anything else propagates so the trigger can record ``VENDING_ERROR``.
    """

    category: TransactionCategory
    bypass_codes: frozenset = frozenset({"028", "011"})
    mock_token: str = "MOCK-SUCCESS"
    bypass_label: str = "SANDBOX BYPASS ({code})"
    default_error: str | None = None

    def __init__(self, client: VTpassClient):
        self.client = client

    def build_payload(self, tx: Transaction) -> dict:
        raise NotImplementedError

    def extract_token(self, data: dict) -> str | None:
        return None

    def failure_message(self, data: dict) -> str:
        description = _clean(data.get("response_description"))
        if description:
            return description
        return self.default_error or f"Vendor Error {data.get('code')}"

    def interpret(self, tx: Transaction, data: dict) -> VendResult:
        code = _clean(data.get("code"))
        if code == SUCCESS_CODE:
            logger.info("[vend:%s] SUCCESS for %s", self.category.value, tx.tx_ref)
            return VendResult(True, token=self.extract_token(data), raw=data)

        if self.client.sandbox_bypass_enabled and code in self.bypass_codes:
            logger.warning("[vend:%s] Bypassing VTpass error %s for sandbox testing (%s).", self.category.value, code, tx.tx_ref)
            return VendResult(
                True,
                token=self.mock_token,
                raw={**data, "response_description": self.bypass_label.format(code=code)},
            )

        return VendResult(False, error=self.failure_message(data), raw=data)

    def vend(self, tx: Transaction) -> VendResult:
        try:
            payload = self.build_payload(tx)
        except ValueError as exc:
            logger.error("[vend:%s] Invalid purchase details for %s: %s", self.category.value, tx.tx_ref, exc)
            return VendResult(False, error=str(exc))

        logger.info(
            "[vend:%s] START %s serviceID=%s billersCode=%s amount=%s",
            self.category.value,
            tx.tx_ref,
            payload.get("serviceID"),
            payload.get("billersCode"),
            payload.get("amount"),
        )
        try:
            data = self.client.pay(payload)
        except (httpx.HTTPError, VTpassApiError) as exc:
            message = describe_vendor_error(exc)
            logger.error("[vend:%s] API error for %s: %s", self.category.value, tx.tx_ref, message)
            return VendResult(False, error=message)

        logger.info("[vend:%s] VTpass response code=%s for %s", self.category.value, data.get("code"), tx.tx_ref)
        return self.interpret(tx, data)


class DataAdapter(VendorAdapter):
    category = TransactionCategory.DATA
    bypass_codes = frozenset({"028", "011", "016"})
    mock_token = "MOCK-DATA-BYPASS"

    def build_payload(self, tx: Transaction) -> dict:
        details = _details(tx)
        phone = _clean(details.get("phone"))
        service_id = resolve_data_service_id(details.get("network") or tx.provider)
        if not phone:
            raise ValueError("Missing phone number for data purchase")
        if not service_id:
            raise ValueError("Missing network for data purchase")
        payload = {
            "request_id": generate_request_id(tx.tx_ref),
            "serviceID": service_id,
            "billersCode": phone,
            "amount": tx.amount,
            "phone": phone,
        }
        variation_code = _clean(details.get("product_id"))
        if variation_code:
            payload["variation_code"] = variation_code
        return payload


class AirtimeAdapter(VendorAdapter):
    category = TransactionCategory.AIRTIME
    mock_token = "MOCK-AIRTIME-SUCCESS"

    def build_payload(self, tx: Transaction) -> dict:
        details = _details(tx)
        phone = _clean(details.get("phone"))
        service_id = resolve_airtime_service_id(details.get("network") or tx.provider)
        if not phone:
            raise ValueError("Missing phone number for airtime purchase")
        if not service_id:
            raise ValueError("Missing network for airtime purchase")
        return {
            "request_id": generate_request_id(tx.tx_ref),
            "serviceID": service_id,
            "billersCode": phone,
            "amount": tx.amount,
            "phone": phone,
        }


class TvAdapter(VendorAdapter):
    category = TransactionCategory.TV
    mock_token = "MOCK-TV-SUCCESS"

    def build_payload(self, tx: Transaction) -> dict:
        details = _details(tx)
        # The app collects the smartcard number in the meter field.
        smartcard = _clean(details.get("smartcard") or details.get("meter") or details.get("phone"))
        if not smartcard:
            raise ValueError("Missing smartcard number for TV subscription")
        return {
            "request_id": generate_request_id(tx.tx_ref),
            "serviceID": resolve_tv_service_id(details.get("network") or tx.provider),
            "billersCode": smartcard,
            "variation_code": _clean(details.get("product_id")),
            "amount": tx.amount,
            "phone": _clean(details.get("phone")) or self.client.placeholder_phone,
            "subscription_type": _clean(details.get("subscription_type")) or "change",
        }


class ElectricityAdapter(VendorAdapter):
    category = TransactionCategory.ELECTRICITY
    mock_token = "MOCK-ELEC-BYPASS-TOKEN"
    bypass_label = "SANDBOX MOCK SUCCESS ({code} BYPASS)"
    default_error = "Electricity vending failed"

    def build_payload(self, tx: Transaction) -> dict:
        details = _details(tx)
        meter = _clean(details.get("meter"))
        if not meter:
            raise ValueError("Missing meter number for electricity purchase")
        return {
            "request_id": generate_request_id(tx.tx_ref),
            "serviceID": resolve_electricity_service_id(details.get("network") or tx.provider),
            "billersCode": meter,
            "variation_code": _clean(details.get("meter_type")).lower() or "prepaid",
            "amount": tx.amount,
            "phone": _clean(details.get("phone")) or self.client.placeholder_phone,
        }

    def extract_token(self, data: dict) -> str | None:
        direct = _clean(data.get("purchased_code"))
        if direct:
            return direct
        content = data.get("content")
        if isinstance(content, dict):
            nested = _clean(content.get("purchased_code"))
            if ":" in nested:
                value = nested.split(":", 1)[1].strip()
                if value:
                    return value
        main_token = _clean(data.get("mainToken"))
        return main_token or ELECTRICITY_FALLBACK_TOKEN


ADAPTERS: dict[TransactionCategory, type[VendorAdapter]] = {
    TransactionCategory.DATA: DataAdapter,
    TransactionCategory.AIRTIME: AirtimeAdapter,
    TransactionCategory.ELECTRICITY: ElectricityAdapter,
    TransactionCategory.TV: TvAdapter,
}


class VendingEngine:
    def __init__(self, client: VTpassClient | None = None):
        self.client = client or VTpassClient()
        self.adapters = {category: adapter_cls(self.client) for category, adapter_cls in ADAPTERS.items()}

    def adapter_for(self, category) -> VendorAdapter | None:
        parsed = TransactionCategory.parse(category)
        if parsed is None:
            return None
        return self.adapters.get(parsed)

    def dispatch(self, tx: Transaction) -> VendResult:
        adapter = self.adapter_for(tx.category)
        if adapter is None:
            raise ValueError(f"No vendor adapter for category: {tx.category}")
        return adapter.vend(tx)
