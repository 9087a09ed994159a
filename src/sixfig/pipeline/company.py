# src/sixfig/pipeline/company.py
"""
Company name cleaning and find-or-create.

Board feeds put all sorts of things in the company field ("Remote",
"$240k - $290k USD", "Full Time"). Those are rejected before we ever look
anything up. Matching order: exact name key, domain (only when the names
agree), fuzzy name key.
"""

from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urlsplit

from rapidfuzz import fuzz, process

from sixfig.io.store import MemoryStore
from sixfig.models import Company

logger = logging.getLogger(__name__)

FUZZY_SCORE_CUTOFF = 92

_BANNED_NAMES = {
    "remote", "anywhere", "worldwide", "global", "full time", "full-time",
    "part time", "part-time", "contract", "internship", "temporary", "marketing",
    "ai", "confidential", "stealth", "n/a", "unknown",
}

# job boards and aggregators that show up as the "company"
_BOARD_NAMES = {
    "adzuna", "remoteok", "remote ok", "remotive", "we work remotely", "weworkremotely",
    "builtin", "built in", "remote100k", "remote rocketship", "remoterocketship",
    "linkedin", "indeed", "glassdoor", "ziprecruiter",
}

_JOB_TYPE_SUFFIX_RE = re.compile(
    r"^(.+?)[\s\-–|]+(remote|hybrid|full time|full-time|part time|part-time|contract|"
    r"internship|temporary|onsite|on site)$",
    re.IGNORECASE,
)

_MONEY_RE = re.compile(r"[$€£₹¥]|\b(usd|eur|gbp|cad|aud)\b|\d+\s*[kK]\b|\d+\s*[-–]\s*\d+", re.IGNORECASE)

# job titles sometimes land in the company column
_JOB_LIKE_RE = re.compile(
    r"\b(engineer|developer|manager|designer|scientist|analyst|recruiter|intern)\b", re.IGNORECASE
)

_NAME_SUFFIXES = (
    " inc.", " inc", ", inc", " llc", ", llc", " ltd.", " ltd", " limited", " gmbh",
    " corp.", " corp", " corporation", " company", " co.", " co", " plc", " s.a.", " ag",
)

# hosts that belong to an ATS or board, never to the employer
_NON_COMPANY_HOSTS = (
    "greenhouse.io", "lever.co", "ashbyhq.com", "myworkdayjobs.com", "workable.com",
    "smartrecruiters.com", "bamboohr.com", "adzuna.com", "adzuna.co.uk", "linkedin.com",
    "indeed.com", "remoteok.com", "remotive.com", "weworkremotely.com", "builtin.com",
    "glassdoor.com", "ziprecruiter.com",
)


def clean_company_name(raw: Optional[str]) -> Optional[str]:
    """Tidy a scraped company name, or None when it is not a company at all."""
    if not raw:
        return None
    name = re.sub(r"\s+", " ", raw).strip()
    lower = name.lower()
    if not name or lower in _BANNED_NAMES or lower in _BOARD_NAMES:
        return None

    # salary strings: nothing left once the money bits are gone
    if _MONEY_RE.search(name) and not re.search(r"[a-zA-Z]", _MONEY_RE.sub("", name)):
        return None

    m = _JOB_TYPE_SUFFIX_RE.match(name)
    if m:
        name = m.group(1).strip()
    name = re.sub(r"\s*\([^)]*\)\s*$", "", name).strip()

    if len(name) < 2 or not re.search(r"[a-zA-Z]", name):
        return None
    if name.lower() in _BANNED_NAMES or name.lower() in _BOARD_NAMES:
        return None
    if _JOB_LIKE_RE.search(name) and len(name.split()) >= 2 and not re.search(r"\b(inc|llc|ltd|labs)\b", name, re.I):
        return None

    if len(name) > 80:
        first = name.split(" - ")[0].strip()
        return first if 2 <= len(first) <= 80 else None
    return name


def company_name_key(name: Optional[str]) -> str:
    """Lowercase, suffix-free name used for matching ("Acme, Inc." -> "acme")."""
    if not name:
        return ""
    s = name.lower().strip()
    stripped = True
    while stripped:
        stripped = False
        for suf in _NAME_SUFFIXES:
            if s.endswith(suf):
                s = s[: -len(suf)].strip(" ,")
                stripped = True
    return re.sub(r"[^a-z0-9& ]+", "", s).strip()


def company_slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", company_name_key(name)).strip("-")


def normalize_domain(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    raw = value.strip().lower()
    if "://" not in raw:
        raw = "https://" + raw
    host = (urlsplit(raw).hostname or "").removeprefix("www.")
    return host or None


def _is_non_company_host(host: str) -> bool:
    return any(host == h or host.endswith("." + h) for h in _NON_COMPANY_HOSTS)


def infer_company_domain(company_domain: Optional[str], *urls: Optional[str]) -> Optional[str]:
    """Explicit domain first, else the first URL host that is not an ATS or board."""
    domain = normalize_domain(company_domain)
    if domain:
        return domain
    for url in urls:
        host = normalize_domain(url)
        if host and not _is_non_company_host(host):
            return host
    return None


def names_agree(a: str, b: str, score_cutoff: int = FUZZY_SCORE_CUTOFF) -> bool:
    if not a or not b:
        return False
    return a == b or fuzz.WRatio(a, b) >= score_cutoff


def fuzzy_match_company(
    name_key: str,
    store: MemoryStore,
    score_cutoff: int = FUZZY_SCORE_CUTOFF,
) -> Optional[Company]:
    if len(name_key) < 4:
        return None
    companies = [c for c in store.list_companies() if c.get("name_key")]
    if not companies:
        return None
    keys = [c["name_key"] for c in companies]
    best = process.extractOne(name_key, keys, scorer=fuzz.WRatio, score_cutoff=score_cutoff)
    if not best:
        return None
    matched, score, idx = best
    logger.debug("fuzzy company match %r -> %r (%.1f)", name_key, matched, score)
    return companies[idx]


def find_or_create_company(
    store: MemoryStore,
    raw_name: Optional[str],
    domain: Optional[str] = None,
) -> Optional[Company]:
    """
    Resolve the owning company: exact name key, then a domain hit whose
    name agrees, then a fuzzy name match, else create. None when the name
    is not usable.
    """
    name = clean_company_name(raw_name)
    if not name:
        return None
    key = company_name_key(name)
    if not key:
        return None

    found = store.find_company(name_key=key)
    if found:
        return found

    if domain:
        found = store.find_company(domain=domain)
        if found and names_agree(key, found.get("name_key") or ""):
            return found

    found = fuzzy_match_company(key, store)
    if found:
        return found

    return store.create_company({
        "name": name,
        "name_key": key,
        "slug": company_slug(name),
        "domain": domain,
    })
