import pytest

from storefront.utils import retry as retry_mod
from storefront.utils.retry import retry_with_backoff

@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr(retry_mod.time, "sleep", lambda s: calls.append(s))
    return calls

def test_returns_first_success_without_waiting(sleeps):
    assert retry_with_backoff(lambda: "ok") == "ok"
    assert sleeps == []

def test_retries_with_exponential_backoff(sleeps):
    attempts = {"n": 0}

    def flaky():
        attempts["n"] += 1
        if attempts["n"] < 3:
            raise RuntimeError("boom")
        return 42

    assert retry_with_backoff(flaky, max_retries=3, delay=0.5) == 42
    assert sleeps == [0.5, 1.0]

def test_reraises_last_error(sleeps):
    attempts = {"n": 0}

    def always_fail():
        attempts["n"] += 1
        raise ValueError(f"fail {attempts['n']}")

    with pytest.raises(ValueError, match="fail 3"):
        retry_with_backoff(always_fail, max_retries=3, delay=1.0)
    assert sleeps == [1.0, 2.0]

def test_rejects_zero_retries():
    with pytest.raises(ValueError):
        retry_with_backoff(lambda: None, max_retries=0)

def test_logs_each_retry(sleeps, caplog):
    attempts = {"n": 0}

    def flaky():
        attempts["n"] += 1
        if attempts["n"] < 2:
            raise RuntimeError("boom")
        return "ok"

    with caplog.at_level("WARNING", logger="storefront.utils.retry"):
        assert retry_with_backoff(flaky, max_retries=2, delay=0.1) == "ok"
    assert len([r for r in caplog.records if r.name == "storefront.utils.retry"]) == 1
    assert sleeps == [0.1]
