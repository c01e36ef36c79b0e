import pytest

from app.utils import retry as retry_module
from app.utils.retry import retry_with_backoff


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr(retry_module.time, "sleep", lambda seconds: recorded.append(seconds))
    return recorded


def test_returns_first_success_without_sleeping(sleeps):
    assert retry_with_backoff(lambda: "ok") == "ok"
    assert sleeps == []


def test_recovers_after_transient_failures(sleeps):
    attempts = {"count": 0}

    def flaky():
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise ConnectionError("reset by peer")
        return {"code": "000"}

    assert retry_with_backoff(flaky, max_retries=3, initial_delay=1.0) == {"code": "000"}
    assert attempts["count"] == 3
    assert sleeps == [1.0, 2.0]


def test_reraises_last_error_after_retries_exhausted(sleeps):
    attempts = {"count": 0}

    def always_fails():
        attempts["count"] += 1
        raise RuntimeError(f"failure {attempts['count']}")

    with pytest.raises(RuntimeError, match="failure 4"):
        retry_with_backoff(always_fails, max_retries=3, initial_delay=0.5)

    assert attempts["count"] == 4
    assert sleeps == [0.5, 1.0, 2.0]


def test_zero_retries_calls_once(sleeps):
    calls = []

    def fails():
        calls.append(1)
        raise ValueError("bad")

    with pytest.raises(ValueError):
        retry_with_backoff(fails, max_retries=0)
    assert len(calls) == 1
    assert sleeps == []
