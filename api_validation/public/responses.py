"""Response helpers so every endpoint answers with a JSO envelope.

Success:
{
    "success": true,
    "data": <object or array of objects>,
    "meta": { optional metadata }
}

Failure:
{
    "success": false,
    "message": "<summary>",
    "errors": [ { type, code, message, source } ],
    "meta": { optional metadata }
}
"""
from __future__ import annotations

from typing import Any, Iterable, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from domain_kits.jso_envelope import MISSING, ErrorObject, FailureEnvelope, SuccessEnvelope


def trace_meta(request: Request, **extra: Any) -> dict:
    meta = {"trace_id": getattr(request.state, "trace_id", None) or request.headers.get("X-Request-ID")}
    meta.update(extra)
    return {k: v for k, v in meta.items() if v is not None}


def json_success(
    data: Any = None,
    *,
    meta: Optional[dict] = None,
    links: Optional[dict] = None,
    status_code: int = 200,
) -> JSONResponse:
    envelope = SuccessEnvelope(data=jsonable_encoder(data), meta=meta or None, links=links)
    return JSONResponse(status_code=status_code, content=envelope.to_dict())


def json_error(
    message: str,
    *,
    error_type: str = "CLIENT_ERROR",
    code: Any = None,
    detail: Optional[str] = None,
    source: Optional[dict] = None,
    errors: Optional[Iterable[ErrorObject]] = None,
    data: Any = MISSING,
    meta: Optional[dict] = None,
    status_code: int = 400,
    headers: Optional[dict] = None,
) -> JSONResponse:
    if errors is None:
        errors = [ErrorObject(type=error_type, code=code, message=detail, source=source)]
    envelope = FailureEnvelope(
        message=message,
        errors=tuple(errors),
        data=data if data is MISSING else jsonable_encoder(data),
        meta=meta or None,
    )
    return JSONResponse(status_code=status_code, content=envelope.to_dict(), headers=headers)


__all__ = ["trace_meta", "json_success", "json_error"]
