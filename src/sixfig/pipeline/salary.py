# src/sixfig/pipeline/salary.py
"""
Turn a raw salary (amount range + currency + interval) into an annual figure
in local currency, and decide whether that figure is trustworthy enough to
publish as a high-salary role.

No FX conversion happens anywhere: every threshold and ceiling is looked up
per currency on `IngestConfig.currency_policies`.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Dict, Optional

from sixfig.config import IngestConfig
from sixfig.models import Interval, NormalizedSalary, SalaryReason, SalarySource, SalaryValidation

INTERVAL_FACTORS: Dict[str, int] = {
    "hour": 2080,
    "day": 260,
    "week": 52,
    "month": 12,
    "year": 1,
}

# Symbol / synonym -> ISO code. No bare "$": it is
# ambiguous (USD, CAD, AUD, ...) and has to be resolved from location.
CURRENCY_SYNONYMS: Dict[str, str] = {
    "USD": "USD", "US$": "USD", "US DOLLARS": "USD",
    "EUR": "EUR", "€": "EUR", "EURO": "EUR", "EUROS": "EUR",
    "GBP": "GBP", "£": "GBP", "POUNDS": "GBP",
    "CAD": "CAD", "C$": "CAD", "CA$": "CAD",
    "AUD": "AUD", "A$": "AUD", "AU$": "AUD",
    "NZD": "NZD", "NZ$": "NZD",
    "SGD": "SGD", "S$": "SGD", "SG$": "SGD",
    "CHF": "CHF", "FR.": "CHF",
    "SEK": "SEK",
    "NOK": "NOK",
    "DKK": "DKK",
    "INR": "INR", "₹": "INR", "RS": "INR", "RS.": "INR",
}

_INTERVAL_SYNONYMS = [
    (re.compile(r"^(hour|hourly|hr|hrs|ph|per hour)"), "hour"),
    (re.compile(r"^(day|daily|per day)"), "day"),
    (re.compile(r"^(week|weekly|wk|pw|per week)"), "week"),
    (re.compile(r"^(month|monthly|mo|pm|per month)"), "month"),
    (re.compile(r"^(year|yearly|annual|annually|annum|yr|pa|per year|per annum)"), "year"),
]

_EXCLUDED_TITLE_RE = re.compile(
    r"\b(intern|internship|co[-\s]?op|junior|jr\.?|entry[-\s]?level|apprentice(ship)?|"
    r"graduate|new\s*grad)\b",
    re.IGNORECASE,
)


def normalize_currency(raw: Optional[str]) -> Optional[str]:
    """Map a currency code or symbol to its ISO code; None if unknown or ambiguous."""
    if not raw:
        return None
    value = str(raw).strip().upper()
    if not value or value == "$":
        return None
    return CURRENCY_SYNONYMS.get(value)


def normalize_interval(raw: Optional[str]) -> Interval:
    """
    Map free-form interval text onto the five buckets. Missing or unknown
    values mean "year": sources that omit the interval almost always post
    annual figures.
    """
    if not raw:
        return "year"
    # "per-year-salary" (Lever), "per_hour", "/month"
    value = str(raw).strip().lower().lstrip("/").replace("_", " ").replace("-", " ")
    for pattern, interval in _INTERVAL_SYNONYMS:
        if pattern.match(value):
            return interval  # type: ignore[return-value]
    return "year"


def annualize(amount: Optional[float], interval: str) -> Optional[int]:
    if amount is None:
        return None
    return int(round(float(amount) * INTERVAL_FACTORS.get(interval, 1)))


def _upper_bound(normalized: NormalizedSalary) -> Optional[int]:
    if normalized["max_annual"] is not None:
        return normalized["max_annual"]
    return normalized["min_annual"]


def normalize_salary(
    min_amount: Optional[float],
    max_amount: Optional[float],
    currency: Optional[str],
    interval: Optional[str],
    config: Optional[IngestConfig] = None,
) -> NormalizedSalary:
    config = config or IngestConfig()
    bucket = normalize_interval(interval)
    code = normalize_currency(currency)

    min_annual = annualize(min_amount, bucket)
    max_annual = annualize(max_amount, bucket)
    if min_annual is not None and max_annual is not None and min_annual > max_annual:
        min_annual, max_annual = max_annual, min_annual

    normalized: NormalizedSalary = {
        "min_annual": min_annual,
        "max_annual": max_annual,
        "currency": code,
        "interval": bucket,
        "is_high_salary": False,
        "is_very_high_salary": False,
    }

    threshold = config.threshold_for(code)
    upper = _upper_bound(normalized)
    if threshold is not None and upper is not None:
        normalized["is_high_salary"] = upper >= threshold
        normalized["is_very_high_salary"] = upper >= threshold * config.very_high_multiplier
    return normalized


def salary_confidence(
    source: SalarySource,
    *,
    currency_explicit: bool,
    upper: Optional[int],
    threshold: Optional[int],
    config: IngestConfig,
) -> int:
    score = config.confidence_by_source.get(source, 0)
    if score <= 0:
        return 0
    if not currency_explicit:
        score -= config.inferred_currency_penalty
    if threshold is not None and upper is not None:
        if threshold <= upper < threshold * (1 + config.near_threshold_margin):
            score -= config.near_threshold_penalty
    return max(0, min(100, score))


def is_excluded_title(title: Optional[str]) -> bool:
    """Intern / junior / entry-level roles never qualify, whatever they pay."""
    return bool(title) and bool(_EXCLUDED_TITLE_RE.search(title))


def validate_salary(
    normalized: NormalizedSalary,
    source: SalarySource,
    *,
    currency_explicit: bool = True,
    title: Optional[str] = None,
    config: Optional[IngestConfig] = None,
    now: Optional[datetime] = None,
) -> SalaryValidation:
    """
    Run the publication policy over a normalized salary.

    Checks run in a fixed order and the first failure decides `reason`.
    Confidence is always reported, even on rejection, so audits can see
    how close a record came.
    """
    config = config or IngestConfig()
    now = now or datetime.now(timezone.utc)

    policy = config.policy_for(normalized["currency"])
    threshold = policy.min_annual if policy else None
    lower = normalized["min_annual"]
    upper = _upper_bound(normalized)

    confidence = salary_confidence(
        source,
        currency_explicit=currency_explicit,
        upper=upper,
        threshold=threshold,
        config=config,
    )

    def verdict(reason: SalaryReason, needs_review: bool = False) -> SalaryValidation:
        ok = reason == "ok"
        return {
            "validated": ok,
            "confidence": confidence,
            "source": source,
            "reason": reason,
            "needs_review": needs_review,
            "normalized_at": now,
            "rejected_at": None if ok else now,
        }

    if is_excluded_title(title):
        return verdict("excluded_title")

    if source == "none" or upper is None:
        return verdict("no_salary")

    if policy is None:
        return verdict("unknown_currency")

    if lower is not None and lower > 0 and upper / lower > config.max_range_ratio:
        return verdict("bad_range")
    if upper <= 0:
        return verdict("bad_range")

    if upper > policy.max_plausible_annual:
        return verdict("too_high")

    if source == "descriptionText" and upper > policy.description_cap_annual:
        return verdict("capped_description")

    if upper < policy.min_annual:
        return verdict("below_threshold")

    if confidence < config.min_confidence:
        return verdict("low_confidence")

    # structured salaries above the description cap are accepted but audited
    return verdict("ok", needs_review=upper > policy.description_cap_annual)


def is_publishable(validation: SalaryValidation, config: Optional[IngestConfig] = None) -> bool:
    config = config or IngestConfig()
    return validation["validated"] and validation["confidence"] >= config.min_confidence


# ---- Display helpers ----------------------------------------------------------

_SYMBOLS = {
    "USD": "$", "EUR": "€", "GBP": "£", "AUD": "A$", "CAD": "C$", "NZD": "NZ$",
    "SGD": "S$", "INR": "₹", "CHF": "CHF ", "SEK": "kr ", "NOK": "kr ", "DKK": "kr ",
}


def currency_symbol(currency: Optional[str]) -> str:
    if not currency:
        return "$"
    return _SYMBOLS.get(currency.upper(), f"{currency.upper()} ")


def salary_tier(amount: int, currency: str, config: Optional[IngestConfig] = None) -> Optional[str]:
    """high / very-high / elite / top-1 relative to the local threshold."""
    config = config or IngestConfig()
    threshold = config.threshold_for(currency)
    if threshold is None or amount < threshold:
        return None
    if amount >= threshold * 3:
        return "top-1"
    if amount >= threshold * 2:
        return "elite"
    if amount >= threshold * config.very_high_multiplier:
        return "very-high"
    return "high"


def _compact(n: int) -> str:
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if n >= 1000:
        return f"{round(n / 1000)}K"
    return f"{n:,}"


def format_salary_range(
    min_annual: Optional[int],
    max_annual: Optional[int],
    currency: Optional[str],
) -> str:
    if min_annual is None and max_annual is None:
        return "Salary not specified"
    sym = currency_symbol(currency)
    if min_annual is not None and max_annual is not None and min_annual != max_annual:
        return f"{sym}{_compact(min_annual)} - {sym}{_compact(max_annual)}"
    if min_annual is not None:
        return f"{sym}{_compact(min_annual)}+"
    return f"Up to {sym}{_compact(max_annual)}"
