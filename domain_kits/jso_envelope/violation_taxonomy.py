"""
Envelope Violation Taxonomy

Describe each violation kind in plain language (for API consumers).

Every kind carries:
- severity: 'critical' | 'high' | 'medium'
- rule: the envelope rule that was broken
- example: a minimal offending envelope
- client_impact: what a client reading the response loses
"""

from .engine import ViolationKind


class EnvelopeViolationTaxonomy:
    """Map violation kinds to rule text and severity."""

    CATEGORIES = {
        ViolationKind.NOT_AN_OBJECT.value: {
            'severity': 'critical',
            'rule': 'The response body must be a JSON object',
            'example': '[{"id": 1}]',
            'client_impact': 'No envelope at all; the response must be treated as opaque',
        },
        ViolationKind.MISSING_SUCCESS_FIELD.value: {
            'severity': 'critical',
            'rule': "Every envelope carries a boolean 'success' field",
            'example': '{"data": {"id": 1}}',
            'client_impact': 'Clients cannot tell a success from a failure',
        },
        ViolationKind.INVALID_SUCCESS_TYPE.value: {
            'severity': 'critical',
            'rule': "'success' is a JSON boolean, not a string or number",
            'example': '{"success": "true"}',
            'client_impact': 'Truthiness checks on the flag give wrong answers',
        },
        ViolationKind.INVALID_DATA_SHAPE.value: {
            'severity': 'high',
            'rule': "On success, 'data' is an object or an array of objects; never null or a primitive",
            'example': '{"success": true, "data": null}',
            'client_impact': 'Resource parsing fails; not-found must be a failure envelope and empty lists must be []',
        },
        ViolationKind.INVALID_META_SHAPE.value: {
            'severity': 'medium',
            'rule': "'meta' is a JSON object when present",
            'example': '{"success": true, "meta": [1, 2]}',
            'client_impact': 'Metadata such as totals or paging info cannot be read',
        },
        ViolationKind.INVALID_LINKS_SHAPE.value: {
            'severity': 'medium',
            'rule': "'links' is a JSON object when present",
            'example': '{"success": true, "links": "/next"}',
            'client_impact': 'Navigation links cannot be followed',
        },
        ViolationKind.MISSING_MESSAGE.value: {
            'severity': 'critical',
            'rule': "A failure envelope carries a non-empty 'message'",
            'example': '{"success": false}',
            'client_impact': 'Nothing to show the user about what went wrong',
        },
        ViolationKind.INVALID_MESSAGE_TYPE.value: {
            'severity': 'high',
            'rule': "'message' is a string",
            'example': '{"success": false, "message": {"text": "Bad input."}}',
            'client_impact': 'The summary message cannot be displayed as-is',
        },
        ViolationKind.INVALID_ERRORS_SHAPE.value: {
            'severity': 'high',
            'rule': "'errors' is an array of error objects when present",
            'example': '{"success": false, "message": "Bad input.", "errors": {"email": "invalid"}}',
            'client_impact': 'Per-field error reporting cannot be iterated',
        },
        ViolationKind.INVALID_ERROR_OBJECT.value: {
            'severity': 'medium',
            'rule': "Error entries are objects; 'type'/'message' are strings, 'code' a number or string, 'source' an object",
            'example': '{"success": false, "message": "Bad input.", "errors": [{"type": 7}]}',
            'client_impact': 'A single error entry cannot be classified or located',
        },
    }

    @classmethod
    def classify(cls, kind) -> dict:
        """
        Retrieve category info for a violation kind.

        Args:
            kind: A ViolationKind or its string value

        Returns:
            Dict with severity, rule, example, client_impact
        """
        key = kind.value if isinstance(kind, ViolationKind) else str(kind)
        if key in cls.CATEGORIES:
            return cls.CATEGORIES[key]
        return {
            'severity': 'unknown',
            'rule': 'Unknown violation kind',
            'example': '',
            'client_impact': 'See logs for details',
        }

    @classmethod
    def all_kinds(cls) -> list:
        """Return list of all violation kind names."""
        return list(cls.CATEGORIES.keys())

    @classmethod
    def severity_level(cls, kind) -> str:
        """Get severity of a violation kind."""
        return cls.classify(kind).get('severity', 'unknown')
