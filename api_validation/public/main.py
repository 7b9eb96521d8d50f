"""
FastAPI application for the JSO envelope validation API.

Every response this service produces is itself a JSO envelope, including
framework errors, except `/health`, which returns a plain health payload for
probes and load balancers.

Security features enabled:
- Audit logging (trace ID, payload hash, latency, status)
- Rate limiting (per-API-key, configurable)
- Payload size enforcement
- Request redaction (removes PII, secrets)
"""
from fastapi import FastAPI, status, Request
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
import os
import logging
import uuid
import time
from contextvars import ContextVar
from typing import Optional

from domain_kits.jso_envelope import ErrorObject, EnvelopeInputError

from api_validation.public.routes import health, envelopes
from api_validation.public.middleware.audit_logging import AuditLoggingMiddleware
from api_validation.public.middleware.rate_limiting import RateLimitConfig, RateLimitingMiddleware
from api_validation.public.responses import json_error, json_success, trace_meta
from api_validation.public.settings import settings

# Context var for trace_id (used in logging)
trace_id_ctx: ContextVar[str] = ContextVar('trace_id', default='-')

# Logging filter to inject trace_id into all log records
class TraceIdFilter(logging.Filter):
    def filter(self, record):
        record.trace_id = trace_id_ctx.get()
        return True

# Configure logging (audit logs to stdout, rotated by log handler)
root_logger = logging.getLogger()
if not root_logger.handlers:
    logging.basicConfig(
        level=logging.INFO,
        format='[%(trace_id)s] %(message)s',
    )

# Add trace_id filter to root logger
for handler in logging.root.handlers:
    if not any(isinstance(f, TraceIdFilter) for f in handler.filters):
        handler.addFilter(TraceIdFilter())

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="JSO Envelope Validation API",
    description="Check API responses against the JSO envelope convention and report every violation.",
    version=settings.api_version,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

@app.get("/")
def root(request: Request):
    return json_success({"name": "JSO Envelope Validation API", "status": "running"}, meta=trace_meta(request))


def add_security_middleware(target: FastAPI, rate_limit_config: Optional[RateLimitConfig] = None) -> None:
    """Install audit logging and rate limiting on `target`.

    Last added runs first: trace id -> rate limit -> audit log. Oversized and
    throttled requests are answered before the audit layer reads their body.
    """
    if settings.enable_audit_logging:
        target.add_middleware(AuditLoggingMiddleware, enable_redaction=settings.enable_redaction)

    if settings.enable_rate_limiting:
        target.add_middleware(RateLimitingMiddleware, config=rate_limit_config)


add_security_middleware(app)

# CORS is disabled by default (server-to-server API). Enable only if explicitly configured.
if settings.cors_allow_origins:
    # Never allow credentials with wildcard origins.
    allow_credentials = settings.cors_allow_credentials and "*" not in settings.cors_allow_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

# Trace ID middleware (sets request.state.trace_id and adds response headers)
@app.middleware("http")
async def add_trace_id_middleware(request: Request, call_next):
    trace_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.trace_id = trace_id

    # Set context var for logging
    token = trace_id_ctx.set(trace_id)
    try:
        start = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start

        response.headers["X-Request-ID"] = trace_id
        response.headers["X-Process-Time"] = str(process_time)
        return response
    finally:
        # Reset context var after response
        trace_id_ctx.reset(token)

# Include routes
app.include_router(health.router)
app.include_router(envelopes.router)


# HTTPException handler (wraps all HTTPException, including unknown routes, into a failure envelope)
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc.detail, dict):
        code = str(exc.detail.get("code") or exc.status_code)
        message = str(exc.detail.get("message") or code)
    else:
        code = str(exc.detail)
        message = str(exc.detail)

    return json_error(
        message,
        error_type="CLIENT_ERROR" if exc.status_code < 500 else "SERVER_ERROR",
        code=code,
        meta=trace_meta(request),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )

# RequestValidationError handler (one error object per pydantic error)
@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        ErrorObject(
            type="VALIDATION_ERROR",
            code=str(err.get("type") or "invalid"),
            message=str(err.get("msg") or "Invalid value"),
            source={"pointer": ".".join(str(p) for p in err.get("loc", ()))},
        )
        for err in exc.errors()
    ]
    return json_error(
        "Request validation failed",
        errors=errors,
        meta=trace_meta(request),
        status_code=422,
    )

# Envelope input precondition failures (not JSON at all, too deep)
@app.exception_handler(EnvelopeInputError)
async def envelope_input_exception_handler(request: Request, exc: EnvelopeInputError):
    logger.info("rejected envelope input: %s", exc)
    return json_error(
        "Input is not a JSON value",
        error_type="INPUT_ERROR",
        code=type(exc).__name__,
        detail=str(exc),
        meta=trace_meta(request),
        status_code=400,
    )

# Global exception handler (cleaner error responses)
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled error")
    return json_error(
        "An unexpected error occurred.",
        error_type="SERVER_ERROR",
        code="INTERNAL_ERROR",
        meta=trace_meta(request),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api_validation.public.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=settings.environment == "development"
    )
