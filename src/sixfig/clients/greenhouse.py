# src/sixfig/clients/greenhouse.py

"""Greenhouse job board API (public, no auth): one request returns the whole board."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import httpx

from sixfig.clients.http import get_json

API_ROOT = "https://boards-api.greenhouse.io/v1/boards"

_BOARD_URL_RE = re.compile(r"(?:job-)?boards(?:\.eu)?\.greenhouse\.io/(?:embed/job_board\?for=)?([A-Za-z0-9_-]+)")


def extract_board_slug(value: str) -> Optional[str]:
    """'https://boards.greenhouse.io/acme/jobs/123' -> 'acme'; bare slugs pass through."""
    if not value:
        return None
    value = value.strip()
    m = _BOARD_URL_RE.search(value)
    if m:
        return m.group(1).lower()
    if re.fullmatch(r"[A-Za-z0-9_-]+", value):
        return value.lower()
    return None


def fetch_board_jobs(
    board: str,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> List[Dict[str, Any]]:
    """
    All published jobs with full `content` (HTML, usually double-escaped)
    and, where the employer fills them in, structured `pay_input_ranges`.
    """
    params = {"content": "true", "pay_transparency": "true"}
    data = get_json(f"{API_ROOT}/{board}/jobs", params, transport=transport)
    return list(data.get("jobs") or [])
