# src/sixfig/models.py
"""
Lightweight typed dictionaries for every record that flows through ingestion:
raw candidates from collectors, salary fragments, normalized salaries and
their validation verdicts, companies, and the resolved jobs we persist.

Everything is a plain dict with type hints.
"""

from datetime import datetime
from typing import Literal, Optional, TypedDict


Interval = Literal["year", "month", "week", "day", "hour"]

SalarySource = Literal["ats", "salaryRaw", "descriptionText", "none"]

# Closed set of validation outcomes; audits aggregate on these.
SalaryReason = Literal[
    "ok",
    "no_salary",
    "excluded_title",
    "unknown_currency",
    "bad_range",
    "too_high",
    "capped_description",
    "below_threshold",
    "low_confidence",
]

Seniority = Literal[
    "intern", "junior", "mid", "senior", "staff", "principal", "lead",
    "manager", "director", "vp", "cxo", "head", "unknown",
]

Discipline = Literal[
    "engineering", "data", "design", "product", "marketing", "sales",
    "operations", "people", "finance", "legal", "support", "generalist",
    "other",
]

Decision = Literal["created", "updated", "skipped"]


class RawCandidate(TypedDict, total=False):
    """
    A job posting as a collector produced it, before any normalization.

    Notes:
    - Built once per scrape cycle and never mutated afterwards.
    - Salary numbers are in the source's stated unit (hourly, monthly, ...).
    """

    # Source identifier, e.g. "ats:greenhouse" or "board:adzuna"
    source: str

    # Identifier of the posting inside that source
    external_id: str

    # Human-readable job title
    title: str

    # Company name exactly as scraped
    company_name_raw: Optional[str]

    # Company website domain when the source exposes it
    company_domain: Optional[str]

    # Free-text location and an optional ISO country hint
    location_text: Optional[str]
    country_code_hint: Optional[str]

    # Job description, as markup and/or plain text
    description_html: Optional[str]
    description_text: Optional[str]

    # Structured salary fields if the source has them
    salary_min: Optional[float]
    salary_max: Optional[float]
    salary_currency_raw: Optional[str]
    salary_interval_raw: Optional[str]

    # Dedicated free-text salary field ("$120k - $150k")
    salary_text: Optional[str]

    # True when the board predicted the salary instead of the employer posting it
    salary_estimated: bool

    url: str
    apply_url: Optional[str]

    posted_at: Optional[datetime]
    employment_type: Optional[str]


class SalaryCandidate(TypedDict):
    """Best compensation statement the extractor found in a piece of text."""

    min: float
    max: float
    currency: str
    currency_explicit: bool
    interval: Interval
    matcher: str
    score: int
    raw: str


class NormalizedSalary(TypedDict):
    min_annual: Optional[int]
    max_annual: Optional[int]
    currency: Optional[str]
    interval: Interval
    is_high_salary: bool
    is_very_high_salary: bool


class SalaryValidation(TypedDict):
    validated: bool
    confidence: int
    source: SalarySource
    reason: SalaryReason
    needs_review: bool
    normalized_at: datetime
    rejected_at: Optional[datetime]


class NormalizedRole(TypedDict):
    normalized_title: str
    role_slug: str
    base_role_slug: str
    seniority: Seniority
    discipline: Discipline
    is_manager: bool


class Company(TypedDict, total=False):
    id: str
    name: str
    # lowercase, suffix-free name used for matching
    name_key: str
    slug: str
    domain: Optional[str]
    created_at: datetime


class ResolvedJob(TypedDict, total=False):
    id: str
    dedupe_key: str
    company_id: str
    company_name: str

    title: str
    source: str
    external_id: str
    source_priority: int
    url: str
    apply_url: Optional[str]
    location_text: Optional[str]
    country_code: Optional[str]
    description_html: Optional[str]
    description_text: Optional[str]
    employment_type: Optional[str]
    posted_at: Optional[datetime]

    # Raw salary inputs, kept for audit and backfill
    salary_min: Optional[float]
    salary_max: Optional[float]
    salary_currency_raw: Optional[str]
    salary_interval_raw: Optional[str]
    salary_text: Optional[str]

    # Normalized salary
    min_annual: Optional[int]
    max_annual: Optional[int]
    currency: Optional[str]
    salary_interval: str
    is_high_salary: bool
    is_very_high_salary: bool

    # Validation verdict
    salary_validated: bool
    salary_confidence: int
    salary_source: str
    salary_reason: str
    salary_normalized_at: datetime
    salary_rejected_at: Optional[datetime]
    needs_review: bool
    is_published: bool

    # Role
    role_slug: str
    seniority: str
    discipline: str
    is_manager: bool

    created_at: datetime
    updated_at: datetime
    last_seen_at: datetime
    is_expired: bool


class IngestResult(TypedDict, total=False):
    status: Decision
    job_id: Optional[str]
    dedupe_key: Optional[str]
    reason: Optional[str]


class SourceStats(TypedDict):
    source: str
    created: int
    updated: int
    skipped: int
    errors: int
    # hard failure of the whole source (fetch exhausted retries, ...)
    error: Optional[str]


def empty_stats(source: str) -> SourceStats:
    return {"source": source, "created": 0, "updated": 0, "skipped": 0, "errors": 0, "error": None}
