# src/sixfig/clients/lever.py

"""Lever postings API (public, no auth)."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import httpx

from sixfig.clients.http import get_json

API_ROOT = "https://api.lever.co/v0/postings"

_COMPANY_URL_RE = re.compile(r"jobs(?:\.eu)?\.lever\.co/([A-Za-z0-9_-]+)")


def extract_company_slug(value: str) -> Optional[str]:
    """'https://jobs.lever.co/acme/abc-123' -> 'acme'; bare slugs pass through."""
    if not value:
        return None
    value = value.strip()
    m = _COMPANY_URL_RE.search(value)
    if m:
        return m.group(1).lower()
    if re.fullmatch(r"[A-Za-z0-9_-]+", value):
        return value.lower()
    return None


def fetch_postings(
    company: str,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> List[Dict[str, Any]]:
    data = get_json(f"{API_ROOT}/{company}", {"mode": "json"}, transport=transport)
    return list(data or [])
