"""
Audit logging middleware for FastAPI.

This middleware:
1. Reuses the request's trace ID
2. Extracts API key (obfuscated)
3. Hashes request payload (never stores it)
4. Logs structured audit entries
5. Applies redaction rules (removes PII, secrets, etc.)

Usage:
    app.add_middleware(AuditLoggingMiddleware)
"""

import json
import hashlib
import time
import logging
import re
from uuid import uuid4
from typing import Optional, Dict, Any
from datetime import datetime, timezone

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


# Error code recorded for each failing status; anything else 4xx is CLIENT_ERROR.
STATUS_ERROR_CODES = {
    400: "INPUT_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    413: "PAYLOAD_TOO_LARGE",
    422: "REQUEST_VALIDATION_ERROR",
    429: "RATE_LIMIT_EXCEEDED",
}


def error_code_for_status(status_code: int) -> Optional[str]:
    if status_code < 400:
        return None
    if status_code >= 500:
        return "SERVER_ERROR"
    return STATUS_ERROR_CODES.get(status_code, "CLIENT_ERROR")


class AuditLogger:
    """Structured audit logger with redaction rules."""

    # Patterns to redact (sensitive data)
    REDACTION_PATTERNS = {
        "api_key": r"(Bearer\s+[a-zA-Z0-9._\-]+)",
        "email": r"[\w\.-]+@[\w\.-]+\.\w+",
        "ssn": r"\d{3}-\d{2}-\d{4}",
        "credit_card": r"\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}",
        "password": r"(?i)password[:\s=\"]+[^\s,}]+",
        "token": r"(?i)(token|authorization)[:\s=\"]+[^\s,}]+",
    }

    def __init__(self, name: str = "audit", enable_redaction: bool = True):
        self.logger = logging.getLogger(name)
        self.enable_redaction = enable_redaction

    @staticmethod
    def obfuscate_api_key(auth_header: str) -> Optional[str]:
        """Return an obfuscated key id from a `Bearer <key>` header."""
        if not auth_header:
            return None

        parts = auth_header.split()
        if len(parts) >= 2 and len(parts[1]) >= 5:
            return f"key_***{parts[1][-5:]}"
        return None

    @staticmethod
    def hash_payload(payload: bytes) -> str:
        """Create SHA-256 hash of request payload."""
        if not payload:
            return "sha256:empty"
        h = hashlib.sha256(payload).hexdigest()
        return f"sha256:{h[:16]}..."

    def redact(self, text: str) -> str:
        """Apply redaction rules to remove sensitive data."""
        if not self.enable_redaction or not isinstance(text, str):
            return text

        result = text
        for pattern_name, pattern in self.REDACTION_PATTERNS.items():
            result = re.sub(pattern, f"[REDACTED_{pattern_name.upper()}]", result, flags=re.IGNORECASE)

        return result

    def create_audit_entry(
        self,
        request_id: str,
        api_key_id: Optional[str],
        endpoint: str,
        http_method: str,
        http_status: int,
        latency_ms: float,
        payload_hash: str,
        error_code: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a structured audit log entry."""
        return {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "request_id": request_id,
            "api_key_id": api_key_id,
            "endpoint": endpoint,
            "http_method": http_method,
            "http_status": http_status,
            "latency_ms": round(latency_ms, 3),
            "payload_hash": payload_hash,
            "error_code": error_code,
        }

    def log_entry(self, entry: Dict[str, Any]):
        """Write audit entry to log (JSON format)."""
        # Redact the entire entry (in case error messages contain PII)
        redacted_entry = {k: self.redact(v) if isinstance(v, str) else v for k, v in entry.items()}

        self.logger.info(json.dumps(redacted_entry))


class AuditLoggingMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware to log all API calls with audit trail.

    Logs contain:
    - request_id (trace id, for correlation)
    - api_key_id (obfuscated)
    - endpoint & method
    - HTTP status & latency
    - payload_hash (not the payload itself)
    - error_code (if any)

    No raw payloads or PII are stored.
    """

    def __init__(self, app, enable_redaction: bool = True, enable_logging: bool = True):
        super().__init__(app)
        self.audit_logger = AuditLogger(enable_redaction=enable_redaction)
        self.enable_logging = enable_logging

    async def dispatch(self, request: Request, call_next) -> Response:
        """Process request, measure latency, log audit entry."""

        request_id = (
            getattr(request.state, "trace_id", None)
            or request.headers.get("X-Request-ID")
            or str(uuid4())
        )
        api_key_id = self.audit_logger.obfuscate_api_key(request.headers.get("Authorization", ""))

        # Starlette caches the body, so downstream handlers can still read it.
        body = await request.body()
        payload_hash = self.audit_logger.hash_payload(body)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self._log(request, request_id, api_key_id, payload_hash, 500, start_time)
            raise

        self._log(request, request_id, api_key_id, payload_hash, response.status_code, start_time)
        return response

    def _log(self, request: Request, request_id: str, api_key_id: Optional[str], payload_hash: str,
             status_code: int, start_time: float) -> None:
        if not self.enable_logging:
            return
        entry = self.audit_logger.create_audit_entry(
            request_id=request_id,
            api_key_id=api_key_id,
            endpoint=str(request.url.path),
            http_method=request.method,
            http_status=status_code,
            latency_ms=(time.perf_counter() - start_time) * 1000,
            payload_hash=payload_hash,
            error_code=error_code_for_status(status_code),
        )
        self.audit_logger.log_entry(entry)
