import pytest
from fastapi import HTTPException
from starlette.requests import Request

from sood.api.rate_limit import RateLimitService


def _request(client_host="10.0.0.1", forwarded=None) -> Request:
    headers = []
    if forwarded:
        headers.append((b"x-forwarded-for", forwarded.encode()))
    return Request({"type": "http", "headers": headers, "client": (client_host, 1234)})


def test_limit_within_window():
    svc = RateLimitService(limit=2, window=10)
    svc.check("a", now=100)
    svc.check("a", now=101)
    with pytest.raises(HTTPException) as exc:
        svc.check("a", now=102)
    assert exc.value.status_code == 429
    assert exc.value.headers["Retry-After"] == "8"


def test_retry_after_rounds_up():
    svc = RateLimitService(limit=1, window=10)
    svc.check("a", now=100)
    with pytest.raises(HTTPException) as exc:
        svc.check("a", now=102.5)
    assert exc.value.headers["Retry-After"] == "8"


def test_window_resets():
    svc = RateLimitService(limit=1, window=10)
    svc.check("a", now=100)
    svc.check("a", now=110)


def test_clients_are_isolated():
    svc = RateLimitService(limit=1, window=10)
    svc.check("a", now=100)
    svc.check("b", now=100)


def test_client_key_uses_forwarded_for_when_trusted():
    trusted = RateLimitService(trust_proxy=True)
    untrusted = RateLimitService(trust_proxy=False)
    request = _request(forwarded="203.0.113.5, 10.0.0.2")
    assert trusted.client_key(request) == "203.0.113.5"
    assert untrusted.client_key(request) == "10.0.0.1"
    assert trusted.client_key(_request()) == "10.0.0.1"
