import json

import pytest

from domain_kits.jso_envelope import EnvelopeViolationTaxonomy, ViolationKind, validate_json_text
from domain_kits.jso_envelope.examples import CANONICAL_EXAMPLES


def test_every_kind_is_classified():
    assert sorted(EnvelopeViolationTaxonomy.all_kinds()) == sorted(k.value for k in ViolationKind)


def test_classify_accepts_enum_or_string():
    by_enum = EnvelopeViolationTaxonomy.classify(ViolationKind.MISSING_MESSAGE)
    by_name = EnvelopeViolationTaxonomy.classify("MissingMessage")
    assert by_enum is by_name
    assert by_enum["severity"] == "critical"


def test_unknown_kind():
    info = EnvelopeViolationTaxonomy.classify("NoSuchKind")
    assert info["severity"] == "unknown"
    assert EnvelopeViolationTaxonomy.severity_level("NoSuchKind") == "unknown"


@pytest.mark.parametrize("kind", list(EnvelopeViolationTaxonomy.CATEGORIES))
def test_taxonomy_examples_exhibit_their_kind(kind):
    example = EnvelopeViolationTaxonomy.classify(kind)["example"]
    result = validate_json_text(example)
    assert kind in [k.value for k in result.kinds()]


@pytest.mark.parametrize("example_id", list(CANONICAL_EXAMPLES))
def test_canonical_examples_match_expected_verdicts(example_id):
    example = CANONICAL_EXAMPLES[example_id]
    result = validate_json_text(json.dumps(example["envelope"]))
    assert result.valid is example["expected_valid"]
    assert [k.value for k in result.kinds()] == example["expected_kinds"]
