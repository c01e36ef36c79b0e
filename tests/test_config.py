from app.core.config import get_settings, parse_cors_origins


def test_parse_cors_origins_csv():
    value = "http://localhost:5173, http://localhost:3000"
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "http://localhost:3000",
    ]


def test_parse_cors_origins_json_list():
    value = '["http://localhost:5173", "https://app.swift.example"]'
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "https://app.swift.example",
    ]


def test_parse_cors_origins_deduplicates():
    value = "http://localhost:5173,http://localhost:5173"
    assert parse_cors_origins(value) == ["http://localhost:5173"]


def test_sandbox_mode_derived_from_base_url():
    settings = get_settings()
    assert settings.copy(update={"vtpass_base_url": "https://sandbox.vtpass.com/api"}).vtpass_sandbox_mode
    assert not settings.copy(update={"vtpass_base_url": "https://vtpass.com/api"}).vtpass_sandbox_mode


def test_explicit_sandbox_flag_overrides_url():
    settings = get_settings()
    live_url_forced = settings.copy(update={"vtpass_base_url": "https://vtpass.com/api", "vtpass_sandbox": True})
    sandbox_url_disabled = settings.copy(update={"vtpass_base_url": "https://sandbox.vtpass.com/api", "vtpass_sandbox": False})
    assert live_url_forced.vtpass_sandbox_mode
    assert not sandbox_url_disabled.vtpass_sandbox_mode


def test_sandbox_bypass_never_enabled_in_production():
    settings = get_settings().copy(update={"vtpass_sandbox": True, "environment": "production"})
    assert settings.vtpass_sandbox_mode
    assert not settings.sandbox_bypass_enabled


def test_mock_payments_require_flag_and_non_production():
    settings = get_settings()
    assert settings.copy(update={"enable_mock_payments": True, "environment": "development"}).mock_payments_enabled
    assert not settings.copy(update={"enable_mock_payments": False, "environment": "development"}).mock_payments_enabled
    assert not settings.copy(update={"enable_mock_payments": True, "environment": "prod"}).mock_payments_enabled
