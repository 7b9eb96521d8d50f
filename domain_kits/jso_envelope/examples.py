"""Canonical example envelopes with their expected verdicts.

Served by the API as onboarding material and replayed by the client smoke
script. These are reference documents, not a conformance suite.
"""

CANONICAL_EXAMPLES: dict[str, dict] = {
    "single_resource_v1": {
        "description": "Success envelope carrying a single resource object.",
        "envelope": {"success": True, "data": {"id": 1, "name": "John Doe"}},
        "expected_valid": True,
        "expected_kinds": [],
    },
    "empty_collection_v1": {
        "description": "An empty result set is a success with an empty array.",
        "envelope": {"success": True, "data": []},
        "expected_valid": True,
        "expected_kinds": [],
    },
    "paginated_collection_v1": {
        "description": "Collection with paging metadata and navigation links.",
        "envelope": {
            "success": True,
            "data": [{"id": 1, "name": "John Doe"}, {"id": 2, "name": "Jane Doe"}],
            "meta": {"total": 42, "page": 1, "per_page": 2},
            "links": {"self": "/users?page=1", "next": "/users?page=2"},
        },
        "expected_valid": True,
        "expected_kinds": [],
    },
    "failure_without_message_v1": {
        "description": "A failure envelope must explain itself with a message.",
        "envelope": {"success": False},
        "expected_valid": False,
        "expected_kinds": ["MissingMessage"],
    },
    "not_found_v1": {
        "description": "A missing single resource is a failure, not a null success.",
        "envelope": {"success": False, "message": "Not found."},
        "expected_valid": True,
        "expected_kinds": [],
    },
    "validation_failure_v1": {
        "description": "Failure with per-field errors and the client input echoed back.",
        "envelope": {
            "success": False,
            "message": "Bad input.",
            "data": {"email": "not-an-email"},
            "errors": [
                {
                    "type": "VALIDATION_ERROR",
                    "code": 101,
                    "message": "Email is invalid.",
                    "source": {"field": "email"},
                }
            ],
        },
        "expected_valid": True,
        "expected_kinds": [],
    },
    "primitive_data_v1": {
        "description": "Success data must be an object or an array of objects.",
        "envelope": {"success": True, "data": "hello"},
        "expected_valid": False,
        "expected_kinds": ["InvalidDataShape"],
    },
    "null_data_v1": {
        "description": "Null success data is rejected; use a failure envelope for not-found.",
        "envelope": {"success": True, "data": None},
        "expected_valid": False,
        "expected_kinds": ["InvalidDataShape"],
    },
}
