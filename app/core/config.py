from functools import lru_cache
import json
from typing import Optional

from pydantic import AnyHttpUrl, BaseSettings


def parse_cors_origins(value: str) -> list[str]:
    if not value:
        return []

    parsed: list[str]
    raw = value.strip()
    if raw.startswith("["):
        try:
            items = json.loads(raw)
            parsed = [str(item).strip() for item in items if str(item).strip()]
        except (TypeError, ValueError):
            parsed = []
    else:
        parsed = [origin.strip() for origin in raw.split(",") if origin.strip()]

    # Preserve order and remove duplicates.
    return list(dict.fromkeys(parsed))


class Settings(BaseSettings):
    app_name: str = "Swift VTU"
    environment: str = "development"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Database
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 5
    db_pool_timeout: int = 15
    db_pool_recycle: int = 1200
    db_pool_pre_ping: bool = True

    # Transactions
    tx_ref_prefix: str = "SWFT"

    # Paystack
    paystack_base_url: AnyHttpUrl = "https://api.paystack.co"
    paystack_secret_key: str
    paystack_webhook_secret: Optional[str] = None
    paystack_callback_url: str = "https://standard.paystack.co/close"
    paystack_default_email: str = "user@swift.app"
    paystack_timeout_seconds: int = 10

    # VTpass
    vtpass_base_url: AnyHttpUrl = "https://sandbox.vtpass.com/api"
    vtpass_api_key: str
    vtpass_secret_key: str
    vtpass_public_key: str
    # Unset means "derive from the base URL".
    vtpass_sandbox: Optional[bool] = None
    vtpass_purchase_timeout_seconds: int = 30
    vtpass_catalog_timeout_seconds: int = 15
    # VTpass requires a phone field even for meter/smartcard purchases.
    vtpass_placeholder_phone: str = "08011111111"

    # Outbound retry policy
    retry_max_retries: int = 3
    retry_initial_delay_seconds: float = 1.0

    # Data plan cache
    data_plan_cache_ttl_hours: int = 24

    # Dev-only payment bypass. Never honoured when ENVIRONMENT=production.
    enable_mock_payments: bool = False

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000,http://localhost:8081"
    auto_create_tables: bool = False
    rate_limit_enabled: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"production", "prod"}

    @property
    def vtpass_sandbox_mode(self) -> bool:
        if self.vtpass_sandbox is not None:
            return bool(self.vtpass_sandbox)
        return "sandbox" in str(self.vtpass_base_url).lower()

    @property
    def sandbox_bypass_enabled(self) -> bool:
        return self.vtpass_sandbox_mode and not self.is_production

    @property
    def mock_payments_enabled(self) -> bool:
        return self.enable_mock_payments and not self.is_production


@lru_cache
def get_settings() -> Settings:
    return Settings()
