"""JSO response-envelope validation.

This package checks arbitrary JSON values against the JSO envelope rules
and reports every violation it finds. It performs no I/O.
"""

from .engine import (
    DEFAULT_MAX_DEPTH,
    MISSING,
    Envelope,
    ErrorObject,
    FailureEnvelope,
    SuccessEnvelope,
    ValidationResult,
    Violation,
    ViolationKind,
    parse_envelope,
    validate,
    validate_json_text,
)
from .errors import (
    EnvelopeDecodeError,
    EnvelopeDepthError,
    EnvelopeError,
    EnvelopeInputError,
    EnvelopeValidationError,
)
from .violation_taxonomy import EnvelopeViolationTaxonomy

__all__ = [
    'DEFAULT_MAX_DEPTH',
    'MISSING',
    'Envelope',
    'ErrorObject',
    'FailureEnvelope',
    'SuccessEnvelope',
    'ValidationResult',
    'Violation',
    'ViolationKind',
    'parse_envelope',
    'validate',
    'validate_json_text',
    'EnvelopeDecodeError',
    'EnvelopeDepthError',
    'EnvelopeError',
    'EnvelopeInputError',
    'EnvelopeValidationError',
    'EnvelopeViolationTaxonomy',
]
__version__ = '1.0.0'
