import os


def _set_test_env() -> None:
    defaults = {
        "APP_NAME": "Swift VTU Test",
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "WARNING",
        "AUTO_CREATE_TABLES": "false",
        "RATE_LIMIT_ENABLED": "false",
        "DATABASE_URL": "sqlite://",
        "PAYSTACK_BASE_URL": "https://api.paystack.co",
        "PAYSTACK_SECRET_KEY": "sk_test_xxx",
        "PAYSTACK_WEBHOOK_SECRET": "whsec_test_xxx",
        "VTPASS_BASE_URL": "https://sandbox.vtpass.com/api",
        "VTPASS_API_KEY": "vtpass_api_key",
        "VTPASS_SECRET_KEY": "vtpass_secret_key",
        "VTPASS_PUBLIC_KEY": "vtpass_public_key",
        "RETRY_MAX_RETRIES": "2",
        "RETRY_INITIAL_DELAY_SECONDS": "0",
        "ENABLE_MOCK_PAYMENTS": "true",
        "CORS_ORIGINS": "http://localhost:5173,http://localhost:3000",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


_set_test_env()

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.database import Base, SessionLocal, engine  # noqa: E402
from app.models import Transaction, DataPlanCache  # noqa: E402,F401
from app.services.paystack import PaystackClient  # noqa: E402
from app.services.vtpass import VTpassClient  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


class FakeVTpass:
    """Records every outbound VTpass call and answers with canned responses."""

    def __init__(self, pay_response=None, variations_response=None):
        self.pay_response = pay_response if pay_response is not None else {"code": "000", "response_description": "TRANSACTION SUCCESSFUL"}
        self.variations_response = variations_response
        self.calls: list[tuple[str, str, dict | None, dict | None]] = []

    @property
    def pay_calls(self) -> list[dict]:
        return [payload for method, path, payload, _ in self.calls if path == "/pay"]

    def send(self, client, method, path, payload=None, *, params=None, timeout=None):
        self.calls.append((method, path, payload, params))
        response = self.pay_response if path == "/pay" else self.variations_response
        if isinstance(response, Exception):
            raise response
        return response


class FakePaystack:
    def __init__(self, init_response=None, verify_response=None):
        self.init_response = init_response if init_response is not None else {
            "status": True,
            "message": "Authorization URL created",
            "data": {
                "authorization_url": "https://checkout.paystack.com/abc123",
                "access_code": "abc123",
                "reference": "PSK-REF-1",
            },
        }
        self.verify_response = verify_response if verify_response is not None else {
            "status": True,
            "data": {"status": "success", "amount": 100000},
        }
        self.calls: list[tuple[str, str, dict | None]] = []

    def send(self, client, method, path, payload=None):
        self.calls.append((method, path, payload))
        response = self.init_response if path == "/transaction/initialize" else self.verify_response
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_vtpass(monkeypatch):
    fake = FakeVTpass()
    monkeypatch.setattr(VTpassClient, "_send", lambda self, *args, **kwargs: fake.send(self, *args, **kwargs))
    return fake


@pytest.fixture
def fake_paystack(monkeypatch):
    fake = FakePaystack()
    monkeypatch.setattr(PaystackClient, "_send", lambda self, *args, **kwargs: fake.send(self, *args, **kwargs))
    return fake
