# src/sixfig/pipeline/normalize.py
"""
Convert raw upstream JSON (Adzuna, Greenhouse, Lever) into RawCandidate
dicts. Only mapping happens here; salary parsing and validation are the
resolver's job.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from sixfig.models import RawCandidate
from sixfig.pipeline.priority import make_ats_source, make_board_source

# Adzuna country endpoint -> currency its salary figures are in
ADZUNA_CURRENCY = {
    "us": "USD", "gb": "GBP", "ca": "CAD", "au": "AUD", "nz": "NZD", "sg": "SGD",
    "de": "EUR", "fr": "EUR", "nl": "EUR", "at": "EUR", "it": "EUR", "es": "EUR",
    "be": "EUR", "ch": "CHF", "in": "INR",
}


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """ISO strings ("2025-09-26T07:20:13Z") or epoch milliseconds -> aware datetime."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, (int, float)):
        ts = pd.to_datetime(raw, unit="ms", utc=True, errors="coerce")
    else:
        ts = pd.to_datetime(str(raw), utc=True, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def normalize_adzuna(results_json: dict, country: str = "us") -> List[RawCandidate]:
    """
    Adzuna nests company and location under `display_name`. Its
    `salary_is_predicted` flag ("1") marks Adzuna's own estimate, which we
    keep for reference but never trust as the employer's figure.
    """
    currency = ADZUNA_CURRENCY.get(country.lower())
    out: List[RawCandidate] = []
    for x in results_json.get("results", []):
        out.append({
            "source": make_board_source("adzuna"),
            "external_id": str(x.get("id")),
            "title": (x.get("title") or "").strip(),
            "company_name_raw": (x.get("company") or {}).get("display_name"),
            "location_text": (x.get("location") or {}).get("display_name"),
            "country_code_hint": country.upper(),
            "description_text": x.get("description"),
            "salary_min": x.get("salary_min"),
            "salary_max": x.get("salary_max"),
            "salary_currency_raw": currency if x.get("salary_min") or x.get("salary_max") else None,
            "salary_interval_raw": None,
            "salary_estimated": str(x.get("salary_is_predicted", "0")) == "1",
            "url": x.get("redirect_url", ""),
            "posted_at": parse_timestamp(x.get("created")),
            "employment_type": x.get("contract_time"),
        })
    return out


def _greenhouse_pay(job: Dict[str, Any]) -> Dict[str, Any]:
    ranges = job.get("pay_input_ranges") or []
    if not ranges:
        return {}
    first = ranges[0]
    low, high = first.get("min_cents"), first.get("max_cents")
    return {
        "salary_min": low / 100 if low is not None else None,
        "salary_max": high / 100 if high is not None else None,
        "salary_currency_raw": first.get("currency_type"),
        "salary_interval_raw": "year",
    }


def normalize_greenhouse(jobs: Iterable[Dict[str, Any]], board: str) -> List[RawCandidate]:
    out: List[RawCandidate] = []
    for job in jobs:
        url = job.get("absolute_url") or ""
        cand: RawCandidate = {
            "source": make_ats_source("greenhouse"),
            "external_id": str(job.get("id")),
            "title": (job.get("title") or "").strip(),
            "company_name_raw": job.get("company_name") or board,
            "location_text": (job.get("location") or {}).get("name"),
            "description_html": job.get("content"),
            "url": url,
            "apply_url": url,
            "posted_at": parse_timestamp(job.get("first_published") or job.get("updated_at")),
            "salary_estimated": False,
        }
        cand.update(_greenhouse_pay(job))  # type: ignore[typeddict-item]
        out.append(cand)
    return out


def _lever_html(posting: Dict[str, Any]) -> str:
    parts = [posting.get("description") or ""]
    for section in posting.get("lists") or []:
        parts.append(f"<h3>{section.get('text', '')}</h3><ul>{section.get('content', '')}</ul>")
    parts.append(posting.get("additional") or "")
    return "\n".join(p for p in parts if p)


def normalize_lever(postings: Iterable[Dict[str, Any]], company: str) -> List[RawCandidate]:
    out: List[RawCandidate] = []
    for p in postings:
        categories = p.get("categories") or {}
        salary = p.get("salaryRange") or {}
        out.append({
            "source": make_ats_source("lever"),
            "external_id": str(p.get("id")),
            "title": (p.get("text") or "").strip(),
            "company_name_raw": company,
            "location_text": categories.get("location"),
            "country_code_hint": p.get("country"),
            "description_html": _lever_html(p),
            "description_text": p.get("descriptionPlain"),
            "salary_min": salary.get("min"),
            "salary_max": salary.get("max"),
            "salary_currency_raw": salary.get("currency"),
            "salary_interval_raw": salary.get("interval"),
            "salary_estimated": False,
            "url": p.get("hostedUrl") or "",
            "apply_url": p.get("applyUrl"),
            "posted_at": parse_timestamp(p.get("createdAt")),
            "employment_type": categories.get("commitment"),
        })
    return out
