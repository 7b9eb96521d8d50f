"""
Envelope validation endpoints.

Clients post a candidate API response and get back a report of every JSO
envelope rule it breaks. A non-conforming envelope is a successful
validation (valid=false), never an HTTP error.

Includes audit logging of verdicts (no raw payloads).
"""
from fastapi import APIRouter, Depends, HTTPException, Request, Security
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
import hmac
import json
import logging
import os

from domain_kits.jso_envelope import (
    EnvelopeInputError,
    EnvelopeViolationTaxonomy,
    ValidationResult,
    validate,
    validate_json_text,
)
from domain_kits.jso_envelope.examples import CANONICAL_EXAMPLES

from ..responses import json_error, json_success, trace_meta
from ..schemas import (
    BatchValidateRequest,
    EnvelopeValidateRequest,
    ValidationReport,
    ViolationOut,
    ViolationRule,
)
from ..settings import settings

# Audit logger (configured in main.py)
audit_logger = logging.getLogger("audit")


# --- API key auth (Authorization: Bearer ...) ---
api_key_bearer_header = APIKeyHeader(name="Authorization", auto_error=False)


def require_api_key(auth_header: str = Security(api_key_bearer_header)) -> None:
    """
    Require the configured API key when ENVELOPE_API_KEY is set.
    Stealth mode: missing/wrong key returns 404 (pretend the route doesn't exist).
    """
    expected = os.getenv("ENVELOPE_API_KEY")
    if not expected:
        return

    if not auth_header:
        raise HTTPException(status_code=404, detail="Not found")

    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=404, detail="Not found")

    if not hmac.compare_digest(parts[1].strip().encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=404, detail="Not found")


router = APIRouter(
    prefix="/api/envelopes",
    tags=["envelopes"],
    dependencies=[Depends(require_api_key)],
)


def _report(result: ValidationResult, include_details: bool, index: int | None = None) -> dict:
    violations = []
    for v in result.violations:
        item = ViolationOut(kind=v.kind.value, path=v.path, description=v.description)
        if include_details:
            info = EnvelopeViolationTaxonomy.classify(v.kind)
            item.severity = info["severity"]
            item.rule = info["rule"]
        violations.append(item)

    report = ValidationReport(index=index, valid=result.valid, variant=result.variant, violations=violations)
    payload = report.model_dump()
    payload["violations"] = [v.model_dump(exclude_none=True) for v in report.violations]
    if index is None:
        payload.pop("index")
    return payload


def _log_verdict(endpoint: str, result: ValidationResult) -> None:
    audit_logger.info(
        json.dumps(
            {
                "event": "envelope_validated",
                "endpoint": endpoint,
                "valid": result.valid,
                "variant": result.variant,
                "violation_count": len(result.violations),
                "kinds": sorted({k.value for k in result.kinds()}),
            }
        )
    )


@router.post("/validate")
def validate_envelope(request: Request, req_body: EnvelopeValidateRequest) -> JSONResponse:
    """Validate one envelope supplied as the `envelope` member of the body."""
    result = validate(req_body.envelope, max_depth=settings.max_depth)
    _log_verdict("validate", result)
    return json_success(
        _report(result, req_body.include_details),
        meta=trace_meta(request, violation_count=len(result.violations)),
    )


@router.post("/validate/raw")
async def validate_raw_envelope(request: Request, include_details: bool = False) -> JSONResponse:
    """Validate the raw request body as the envelope itself.

    Bodies that are not JSON at all are rejected with a 400 failure envelope.
    """
    body = await request.body()
    result = validate_json_text(body, max_depth=settings.max_depth)
    _log_verdict("validate_raw", result)
    return json_success(
        _report(result, include_details),
        meta=trace_meta(request, violation_count=len(result.violations)),
    )


@router.post("/validate/batch")
def validate_envelope_batch(request: Request, req_body: BatchValidateRequest) -> JSONResponse:
    """Validate several envelopes; one report per input, in order."""
    if len(req_body.envelopes) > settings.max_batch:
        return json_error(
            f"Batch exceeds {settings.max_batch} envelopes",
            error_type="BATCH_TOO_LARGE",
            code="BATCH_TOO_LARGE",
            detail=f"received {len(req_body.envelopes)} envelopes",
            source={"pointer": "envelopes"},
            meta=trace_meta(request),
            status_code=422,
        )

    reports = []
    valid_count = 0
    for idx, candidate in enumerate(req_body.envelopes):
        try:
            result = validate(candidate, max_depth=settings.max_depth)
        except EnvelopeInputError as exc:
            return json_error(
                "Input is not a JSON value",
                error_type="INPUT_ERROR",
                code="INPUT_ERROR",
                detail=str(exc),
                source={"pointer": f"envelopes[{idx}]"},
                meta=trace_meta(request),
                status_code=400,
            )
        _log_verdict("validate_batch", result)
        valid_count += int(result.valid)
        reports.append(_report(result, req_body.include_details, index=idx))

    return json_success(
        reports,
        meta=trace_meta(
            request,
            total=len(reports),
            valid_count=valid_count,
            invalid_count=len(reports) - valid_count,
        ),
    )


@router.get("/rules")
def list_violation_rules(request: Request) -> JSONResponse:
    rules = [
        ViolationRule(kind=kind, **info).model_dump()
        for kind, info in EnvelopeViolationTaxonomy.CATEGORIES.items()
    ]
    return json_success(rules, meta=trace_meta(request, total=len(rules)))


@router.get("/examples")
def list_examples(request: Request) -> JSONResponse:
    examples = [
        {
            "id": example_id,
            "description": example["description"],
            "expected_valid": example["expected_valid"],
        }
        for example_id, example in CANONICAL_EXAMPLES.items()
    ]
    return json_success(examples, meta=trace_meta(request, total=len(examples)))


@router.get("/examples/{example_id}")
def get_example(request: Request, example_id: str) -> JSONResponse:
    example = CANONICAL_EXAMPLES.get(example_id)
    if not example:
        raise HTTPException(status_code=404, detail={"code": "EXAMPLE_NOT_FOUND", "message": "Example not found"})

    return json_success({"id": example_id, **example}, meta=trace_meta(request))
