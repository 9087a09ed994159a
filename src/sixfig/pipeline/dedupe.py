# src/sixfig/pipeline/dedupe.py
"""
Dedupe keys: `company_id::normalized_title::normalized_location`.

Only formatting is normalized. Seniority words stay in the title token,
since "Senior ML Engineer" and "ML Engineer" are different jobs.
"""

from __future__ import annotations

import re
from typing import Dict, Optional
from urllib.parse import urlsplit

KEY_SEPARATOR = "::"

_WORK_MODE_RE = re.compile(r"\b(remote|hybrid|onsite|on-site|work from home|wfh)\b")
_GENERIC_LOCATION_RE = re.compile(r"\b(remote|anywhere|worldwide|global|work from home|wfh)\b")


def _squash(text: str) -> str:
    text = re.sub(r"[^a-z0-9]+", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def normalize_title(title: Optional[str]) -> str:
    if not title:
        return ""
    t = title.lower()
    t = _WORK_MODE_RE.sub("", t)
    t = re.sub(r"\bsr\.\s*", "senior ", t)
    t = re.sub(r"\bjr\.\s*", "junior ", t)
    t = re.sub(r"\beng\.\s*", "engineer ", t)
    t = re.sub(r"\bmgr\.\s*", "manager ", t)
    t = re.sub(r"\bdev\b", "developer", t)
    return _squash(t)


def normalize_location(location: Optional[str]) -> str:
    """Drop generic remote markers; keep the country/city/region words."""
    if not location:
        return ""
    return _squash(_GENERIC_LOCATION_RE.sub("", location.lower()))


def make_dedupe_key(company_id: str, title: Optional[str], location: Optional[str]) -> str:
    return KEY_SEPARATOR.join((company_id, normalize_title(title), normalize_location(location)))


def parse_dedupe_key(key: str) -> Dict[str, str]:
    parts = (key or "").split(KEY_SEPARATOR)
    parts += [""] * (3 - len(parts))
    return {
        "company_id": parts[0],
        "normalized_title": parts[1],
        "normalized_location": parts[2],
    }


def normalize_url(url: Optional[str]) -> Optional[str]:
    """host + path, lowercased, without scheme, `www.`, query or trailing slash."""
    if not url:
        return None
    raw = url.strip()
    if "://" not in raw:
        raw = "https://" + raw
    parts = urlsplit(raw)
    host = (parts.hostname or "").removeprefix("www.")
    if not host:
        return None
    path = parts.path.rstrip("/")
    return f"{host}{path}".lower()


def urls_match(a: Optional[str], b: Optional[str]) -> bool:
    na, nb = normalize_url(a), normalize_url(b)
    return bool(na) and na == nb
