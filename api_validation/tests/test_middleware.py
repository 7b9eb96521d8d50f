"""Tests for audit logging and rate limiting middleware."""
import logging

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from domain_kits.jso_envelope import validate
from api_validation.public.middleware.audit_logging import AuditLogger, error_code_for_status
from api_validation.public.middleware.rate_limiting import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimitingMiddleware,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_rate_limiter_sliding_window():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock)

    assert limiter.is_allowed("k", limit=2)
    assert limiter.is_allowed("k", limit=2)
    assert not limiter.is_allowed("k", limit=2)
    assert limiter.get_remaining("k", limit=2) == 0
    assert 0 < limiter.seconds_until_reset("k") <= 61

    # other keys are independent
    assert limiter.is_allowed("other", limit=2)

    clock.now += 61
    assert limiter.get_remaining("k", limit=2) == 2
    assert limiter.seconds_until_reset("k") == 0
    assert limiter.is_allowed("k", limit=2)


def test_rate_limiter_forgets_expired_keys():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock)
    assert limiter.is_allowed("a", limit=5)
    assert limiter.is_allowed("b", limit=5)
    assert set(limiter.requests) == {"a", "b"}

    clock.now += 61
    assert limiter.get_remaining("a", limit=5) == 5
    assert "a" not in limiter.requests

    assert limiter.is_allowed("c", limit=5)
    assert set(limiter.requests) == {"c"}


def test_rejected_keys_do_not_accumulate():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock)
    for i in range(50):
        limiter.is_allowed(f"junk{i}", limit=1)
    assert len(limiter.requests) == 50

    clock.now += 61
    limiter.is_allowed("fresh", limit=1)
    assert list(limiter.requests) == ["fresh"]


def _limited_app(rate_limit: int = 2, max_mb: int = 10) -> TestClient:
    config = RateLimitConfig()
    config.rate_limit_per_minute = rate_limit
    config.max_request_payload_mb = max_mb

    app = FastAPI()
    app.add_middleware(RateLimitingMiddleware, config=config, limiter=InMemoryRateLimiter())

    @app.post("/echo")
    async def echo(request: Request):
        return {"success": True, "data": {"size": len(await request.body())}}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return TestClient(app)


def test_rate_limit_exceeded_returns_failure_envelope():
    client = _limited_app(rate_limit=2)
    headers = {"Authorization": "Bearer some-key"}

    assert client.post("/echo", content=b"{}", headers=headers).status_code == 200
    ok = client.post("/echo", content=b"{}", headers=headers)
    assert ok.headers["X-RateLimit-Remaining"] == "0"

    r = client.post("/echo", content=b"{}", headers=headers)
    assert r.status_code == 429
    assert r.headers["X-RateLimit-Limit"] == "2"
    assert "Retry-After" in r.headers
    body = r.json()
    assert validate(body).valid
    assert body["errors"][0]["code"] == "RATE_LIMIT_EXCEEDED"


def test_anonymous_requests_are_not_rate_limited():
    client = _limited_app(rate_limit=1)
    for _ in range(3):
        assert client.post("/echo", content=b"{}").status_code == 200


def test_excluded_paths_skip_limits():
    client = _limited_app(rate_limit=1)
    headers = {"Authorization": "Bearer some-key"}
    for _ in range(3):
        assert client.get("/health", headers=headers).status_code == 200


def test_payload_too_large():
    client = _limited_app(max_mb=0)
    r = client.post("/echo", content=b'{"success": true}')
    assert r.status_code == 413
    body = r.json()
    assert validate(body).valid
    assert body["errors"][0]["type"] == "PAYLOAD_TOO_LARGE"


@pytest.mark.parametrize(
    "status_code,expected",
    [(200, None), (302, None), (400, "INPUT_ERROR"), (404, "NOT_FOUND"), (418, "CLIENT_ERROR"),
     (429, "RATE_LIMIT_EXCEEDED"), (503, "SERVER_ERROR")],
)
def test_error_code_for_status(status_code, expected):
    assert error_code_for_status(status_code) == expected


def test_audit_logger_redacts_and_obfuscates():
    logger = AuditLogger()
    assert logger.obfuscate_api_key("Bearer abcdefghij12345") == "key_***12345"
    assert logger.obfuscate_api_key("") is None
    assert logger.obfuscate_api_key("Bearer") is None

    assert logger.redact("contact jane@example.com") == "contact [REDACTED_EMAIL]"
    assert "[REDACTED_API_KEY]" in logger.redact("Bearer abc.def-123")

    assert AuditLogger(enable_redaction=False).redact("jane@example.com") == "jane@example.com"


def test_audit_payload_hash():
    assert AuditLogger.hash_payload(b"") == "sha256:empty"
    digest = AuditLogger.hash_payload(b'{"success": true}')
    assert digest.startswith("sha256:")
    assert digest == AuditLogger.hash_payload(b'{"success": true}')


def test_oversized_request_is_rejected_before_audit_reads_it(monkeypatch, caplog):
    from api_validation.public import main
    from api_validation.public.settings import settings

    monkeypatch.setattr(settings, "enable_audit_logging", True)
    monkeypatch.setattr(settings, "enable_rate_limiting", True)
    hashed = []

    def record_hash(body):
        hashed.append(body)
        return "sha256:x"

    monkeypatch.setattr(AuditLogger, "hash_payload", staticmethod(record_hash))

    config = RateLimitConfig()
    config.max_request_payload_mb = 0
    app = FastAPI()
    main.add_security_middleware(app, rate_limit_config=config)

    @app.post("/echo")
    async def echo(request: Request):
        return {"success": True, "data": {}}

    caplog.set_level(logging.INFO, logger="audit")
    r = TestClient(app).post("/echo", content=b'{"success": true}')
    assert r.status_code == 413
    assert hashed == []
    assert not [rec for rec in caplog.records if rec.name == "audit"]


def test_service_rate_limiter_wraps_audit_logging():
    from api_validation.public.main import app
    from api_validation.public.middleware.audit_logging import AuditLoggingMiddleware

    order = [m.cls for m in app.user_middleware]
    assert order.index(RateLimitingMiddleware) < order.index(AuditLoggingMiddleware)
