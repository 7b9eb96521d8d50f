"""Minimal HTTP client helpers for JSO envelope CI gates.

- Uses stdlib only (urllib) to avoid extra deps in CI.
- Auth header (only when the server sets ENVELOPE_API_KEY):
  - Authorization: Bearer <api-key>

Environment variables:
- JSO_API_BASE_URL (default: http://localhost:8000)
- JSO_API_KEY (optional)
"""

from __future__ import annotations

import json
import os
import urllib.error
import urllib.request
from typing import Any


def env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def post_json(path: str, payload: Any, *, timeout_s: int = 30) -> dict[str, Any]:
    """POST `payload` as JSON and return the decoded response envelope.

    Failure envelopes (HTTP 4xx/5xx) are returned as-is so callers can read
    their `message`; transport problems raise RuntimeError.
    """
    if os.getenv("GITHUB_ACTIONS", "").lower() == "true" and env("JSO_API_BASE_URL") is None:
        raise RuntimeError(
            "JSO_API_BASE_URL must be set in GitHub Actions to avoid accidentally calling localhost."
        )

    base_url = env("JSO_API_BASE_URL") or "http://localhost:8000"
    api_key = env("JSO_API_KEY")

    url = base_url.rstrip("/") + path
    body = json.dumps(payload).encode("utf-8")

    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    req = urllib.request.Request(url=url, data=body, method="POST", headers=headers)

    try:
        with urllib.request.urlopen(req, timeout=timeout_s) as resp:
            raw = resp.read().decode("utf-8")
            return json.loads(raw) if raw else {}
    except urllib.error.HTTPError as e:
        raw = e.read().decode("utf-8") if getattr(e, "fp", None) else ""
        try:
            return json.loads(raw)
        except ValueError:
            raise RuntimeError(f"HTTP {e.code} calling {url}: {raw!r}") from e
    except urllib.error.URLError as e:
        raise RuntimeError(f"Network error calling {url}: {e}") from e
