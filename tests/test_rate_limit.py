"""Tests for rate limiting middleware."""

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from docextract.dependencies import get_relevancy
from docextract.main import app
from docextract.middleware.rate_limit import (
    RATE_LIMITS,
    get_client_ip,
    get_limiter,
    rate_limit_exceeded_handler,
)


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Reset the rate limiter before each test."""
    limiter = get_limiter()
    limiter.reset()


@pytest.fixture
def client(mock_env_vars) -> TestClient:
    """Create FastAPI test client."""
    app.dependency_overrides[get_relevancy] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


# Client IP Detection Tests


def _request(headers, peer="192.168.1.100"):
    mock_request = MagicMock(spec=Request)
    mock_request.headers = headers
    mock_request.client.host = peer
    return mock_request


def test_get_client_ip_direct(mock_env_vars) -> None:
    """Test getting client IP from direct connection."""
    with patch("docextract.middleware.rate_limit.get_remote_address") as mock_get_remote:
        mock_get_remote.return_value = "192.168.1.100"
        assert get_client_ip(_request({})) == "192.168.1.100"


def test_forwarded_for_ignored_from_untrusted_peer(mock_env_vars) -> None:
    """A client cannot pick its own rate limit key."""
    with patch("docextract.middleware.rate_limit.get_remote_address") as mock_get_remote:
        mock_get_remote.return_value = "192.168.1.100"
        ip = get_client_ip(_request({"X-Forwarded-For": "10.0.0.1"}))

    assert ip == "192.168.1.100"


def test_forwarded_for_from_trusted_proxy(mock_env_vars, monkeypatch) -> None:
    """Test getting client IP from X-Forwarded-For behind a trusted proxy."""
    monkeypatch.setenv("TRUSTED_PROXIES", "10.0.0.254, 10.0.0.253")

    with patch("docextract.middleware.rate_limit.get_remote_address") as mock_get_remote:
        mock_get_remote.return_value = "10.0.0.253"
        ip = get_client_ip(_request({"X-Forwarded-For": "  203.0.113.50 , 10.0.0.254"}))

    assert ip == "203.0.113.50"


def test_trusted_proxy_without_header(mock_env_vars, monkeypatch) -> None:
    monkeypatch.setenv("TRUSTED_PROXIES", "10.0.0.254")

    with patch("docextract.middleware.rate_limit.get_remote_address") as mock_get_remote:
        mock_get_remote.return_value = "10.0.0.254"
        assert get_client_ip(_request({})) == "10.0.0.254"


# Rate Limit Configuration Tests


def test_rate_limits_configuration() -> None:
    """Test rate limit configurations are properly set."""
    assert RATE_LIMITS["extract"] == "10/minute"
    assert RATE_LIMITS["evaluate"] == "30/minute"
    assert RATE_LIMITS["documents"] == "100/minute"


def test_limiter_is_attached_to_app() -> None:
    assert app.state.limiter is get_limiter()


# Rate Limit Exceeded Handler Tests


def test_rate_limit_exceeded_handler() -> None:
    """Test rate limit exceeded handler returns proper response."""
    mock_exc = MagicMock()
    mock_exc.retry_after = 45
    mock_exc.detail = "10 per 1 minute"

    response = rate_limit_exceeded_handler(MagicMock(spec=Request), mock_exc)

    assert response.status_code == 429
    assert response.media_type == "application/json"
    assert response.headers["Retry-After"] == "45"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert response.headers["X-RateLimit-Limit"] == "10 per 1 minute"

    body = json.loads(response.body.decode())
    assert body["detail"] == "Rate limit exceeded"
    assert body["retry_after"] == 45
    assert "45 seconds" in body["message"]


def test_rate_limit_exceeded_handler_default_retry() -> None:
    """Test rate limit exceeded handler with default retry time."""
    mock_exc = MagicMock(spec=[])  # Empty spec means no attributes
    mock_exc.detail = "10 per 1 minute"

    response = rate_limit_exceeded_handler(MagicMock(spec=Request), mock_exc)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"


# Integration Tests with FastAPI


def test_version_endpoint_no_rate_limit(client: TestClient) -> None:
    """Test that version endpoint is not rate limited."""
    for _ in range(40):
        assert client.get("/version").status_code == 200


def test_evaluate_rate_limit_enforced(client: TestClient) -> None:
    """The 31st evaluation within a minute is rejected."""
    body = {"record": {"documentType": "receipt"}}

    statuses = [client.post("/api/evaluate", json=body).status_code for _ in range(31)]

    assert statuses[:30] == [200] * 30
    assert statuses[30] == 429
