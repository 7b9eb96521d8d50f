"""Client-style smoke test for the hosted envelope validator.

- Uses stdlib-only HTTP client in tools/ci/jso_http.py
- Posts every canonical example to /api/envelopes/validate/batch and checks
  each verdict against the expected one

Env vars:
- JSO_API_BASE_URL
- JSO_API_KEY (optional)

Exit codes:
- 0: all verdicts matched
- 1: error or mismatch
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

repo_root = Path(__file__).resolve().parents[2]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from domain_kits.jso_envelope.examples import CANONICAL_EXAMPLES
from tools.ci.jso_http import post_json


def check_reports(resp: dict, example_ids: list[str]) -> list[str]:
    """Return one line per example whose verdict differs from the expected one."""
    if resp.get("success") is not True:
        return [f"request failed: {resp.get('message') or 'no message'}"]

    reports = resp.get("data") or []
    if len(reports) != len(example_ids):
        return [f"expected {len(example_ids)} reports, got {len(reports)}"]

    mismatches = []
    for example_id, report in zip(example_ids, reports):
        expected = CANONICAL_EXAMPLES[example_id]
        kinds = [v.get("kind") for v in report.get("violations") or []]
        if report.get("valid") is not expected["expected_valid"] or kinds != expected["expected_kinds"]:
            mismatches.append(
                f"{example_id}: expected valid={expected['expected_valid']} kinds={expected['expected_kinds']}, "
                f"got valid={report.get('valid')} kinds={kinds}"
            )
    return mismatches


def main() -> int:
    example_ids = list(CANONICAL_EXAMPLES)
    payload = {"envelopes": [CANONICAL_EXAMPLES[i]["envelope"] for i in example_ids]}

    resp = post_json("/api/envelopes/validate/batch", payload)
    meta = resp.get("meta") or {}
    print(json.dumps({"success": resp.get("success"), "trace_id": meta.get("trace_id"), "total": meta.get("total")}, indent=2))

    mismatches = check_reports(resp, example_ids)
    for line in mismatches:
        print(f"ERROR: {line}", file=sys.stderr)
    return 1 if mismatches else 0


if __name__ == "__main__":
    raise SystemExit(main())
