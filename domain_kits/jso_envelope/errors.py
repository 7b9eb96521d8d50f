"""Exceptions raised by the envelope kit.

Semantic problems with an envelope are never raised; they are reported as
violations on a ValidationResult. These exceptions signal caller misuse:
a value that is not JSON at all.
"""
from __future__ import annotations

from typing import Tuple


class EnvelopeError(Exception):
    """Base envelope kit exception."""


class EnvelopeInputError(EnvelopeError, ValueError):
    """Input is not representable as a JSON value."""


class EnvelopeDecodeError(EnvelopeInputError):
    """JSON text could not be decoded."""


class EnvelopeDepthError(EnvelopeInputError):
    """Input nests deeper than the configured limit."""

    def __init__(self, max_depth: int):
        super().__init__(f"JSON value nests deeper than {max_depth} levels")
        self.max_depth = max_depth


class EnvelopeValidationError(EnvelopeError):
    """Raised by parse_envelope when the value is not a conforming envelope."""

    def __init__(self, violations: Tuple):
        self.violations = tuple(violations)
        kinds = ", ".join(v.kind.value for v in self.violations)
        super().__init__(f"Invalid JSO envelope ({len(self.violations)} violation(s): {kinds})")


__all__ = [
    "EnvelopeError",
    "EnvelopeInputError",
    "EnvelopeDecodeError",
    "EnvelopeDepthError",
    "EnvelopeValidationError",
]
