"""
Pydantic models for request/response validation.
These define the exact contract between client and API.
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Any
from datetime import datetime


class EnvelopeValidateRequest(BaseModel):
    """Request to validate a single candidate envelope."""
    envelope: Any = Field(..., description="Any JSON value; checked against the JSO envelope rules")
    include_details: bool = Field(False, description="If True, each violation carries taxonomy severity + rule")


class BatchValidateRequest(BaseModel):
    """Request to validate several candidate envelopes in one call."""
    envelopes: List[Any] = Field(..., description="JSON values to check, reported in order")
    include_details: bool = Field(False, description="If True, each violation carries taxonomy severity + rule")


class ViolationOut(BaseModel):
    """One detected deviation from the envelope rules."""
    kind: str = Field(..., description="Violation kind, e.g. 'MissingMessage'")
    path: str = Field(..., description="Field path, e.g. 'errors[1].type'; '$' is the envelope itself")
    description: str = Field(..., description="Human-readable explanation")
    severity: Optional[str] = Field(None, description="Taxonomy severity (include_details only)")
    rule: Optional[str] = Field(None, description="Rule that was broken (include_details only)")


class ValidationReport(BaseModel):
    """Outcome of validating one envelope."""
    index: Optional[int] = Field(None, description="Position in a batch request")
    valid: bool = Field(..., description="True when no violations were found")
    variant: Optional[str] = Field(None, description="'success', 'failure', or null when undetermined")
    violations: List[ViolationOut] = Field(default_factory=list)


class ViolationRule(BaseModel):
    """Taxonomy entry for one violation kind."""
    kind: str
    severity: str
    rule: str
    example: str
    client_impact: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="'ok' if healthy")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="API version")
    commit: str = Field(..., description="Git commit hash")
    timestamp: datetime = Field(..., description="Current time (ISO8601)")
