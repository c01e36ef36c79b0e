import logging
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from sqlalchemy.orm import Session
from app.core.config import Settings, get_settings
from app.core.errors import InvalidArgumentError
from app.models import DataPlanCache, TransactionCategory
from app.services.vtpass import SUCCESS_CODE, VTpassClient


logger = logging.getLogger(__name__)

# Caller-facing provider id -> VTpass serviceID.
PROVIDER_SERVICE_IDS = {
    "mtn": "mtn-data",
    "airtel": "airtel-data",
    "glo": "glo-data",
    "9mobile": "etisalat-data",
    "smile": "smile-direct",
    "spectranet": "spectranet",
}

DEFAULT_VALIDITY = "30 Days"
VALIDITY_RULES = (
    (("24 hrs", "1 day", "daily"), "1 Day"),
    (("2 days",), "2 Days"),
    (("7 days", "weekly", "1 week"), "7 Days"),
    (("14 days", "2 weeks"), "14 Days"),
    (("30 days", "monthly", "1 month"), "30 Days"),
)

_DATA_SIZE_PATTERN = re.compile(r"(\d+(?:\.\d+)?(?:MB|GB))", re.IGNORECASE)


def resolve_provider_service_id(provider: str | None) -> str | None:
    return PROVIDER_SERVICE_IDS.get(str(provider or "").strip().lower())


def derive_validity(name: str | None) -> str:
    text = str(name or "").lower()
    for keywords, label in VALIDITY_RULES:
        if any(keyword in text for keyword in keywords):
            return label
    return DEFAULT_VALIDITY


def clean_plan_name(name: str | None) -> str:
    raw = str(name or "")
    match = _DATA_SIZE_PATTERN.search(raw)
    return match.group(1) if match else raw


def _round_price(value) -> int | None:
    try:
        return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError, TypeError):
        return None


def extract_variations(payload: dict) -> list | None:
    if not isinstance(payload, dict):
        return None
    ok = str(payload.get("response_description") or "") == SUCCESS_CODE or str(payload.get("code") or "") == SUCCESS_CODE
    content = payload.get("content")
    if not ok or not isinstance(content, dict):
        return None
    # VTpass spells the key "varations" on some services.
    variations = content.get("varations") or content.get("variations")
    return variations if isinstance(variations, list) else None


def normalize_variations(variations: list, provider: str) -> list[dict]:
    plans: dict[str, dict] = {}
    for row in variations:
        if not isinstance(row, dict):
            continue
        code = str(row.get("variation_code") or "").strip()
        if not code:
            continue
        price = _round_price(row.get("variation_amount"))
        if price is None:
            continue
        name = str(row.get("name") or "")
        # Later duplicates overwrite earlier ones but keep the first position.
        plans[code] = {
            "id": code,
            "name": clean_plan_name(name),
            "price": price,
            "validity": derive_validity(name),
            "category": TransactionCategory.DATA.value,
            "providerId": provider,
        }
    return list(plans.values())


def _as_aware(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    # SQLite drops tzinfo on the way back.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def is_cache_fresh(entry: DataPlanCache | None, now: datetime, ttl: timedelta) -> bool:
    if entry is None or not entry.plans:
        return False
    last_updated = _as_aware(entry.last_updated)
    return last_updated is not None and now - last_updated < ttl


def get_data_plans(
    db: Session,
    provider: str | None,
    *,
    client: VTpassClient | None = None,
    settings: Settings | None = None,
    now: datetime | None = None,
    force: bool = False,
) -> dict:
    service_id = resolve_provider_service_id(provider)
    if not service_id:
        raise InvalidArgumentError("Invalid or unsupported provider")

    settings = settings or get_settings()
    key = str(provider).strip().lower()
    now = now or datetime.now(timezone.utc)
    ttl = timedelta(hours=settings.data_plan_cache_ttl_hours)

    try:
        entry = db.get(DataPlanCache, key)
        if not force and is_cache_fresh(entry, now, ttl):
            logger.info("[getDataPlans] Returning cached plans for %s", key)
            return {"success": True, "plans": entry.plans}

        logger.info("[getDataPlans] Fetching fresh plans from VTpass for %s", key)
        client = client or VTpassClient(settings)
        payload = client.service_variations(service_id)
        variations = extract_variations(payload)
        if not variations:
            logger.warning("[getDataPlans] VTpass empty/error response for %s: %s", key, payload)
            return {"success": False, "plans": []}

        plans = normalize_variations(variations, key)
        if entry is None:
            entry = DataPlanCache(provider=key, plans=plans, last_updated=now)
            db.add(entry)
        else:
            entry.plans = plans
            entry.last_updated = now
        db.commit()
        logger.info("[getDataPlans] Cache updated for %s (%s plans)", key, len(plans))
        return {"success": True, "plans": plans}
    except Exception as exc:
        db.rollback()
        logger.error("[getDataPlans] Failed for %s: %s", key, exc)
        return {"success": False, "plans": []}
