# src/sixfig/config.py
"""
Tunable policy for salary validation and source arbitration.

Every table that materially changes validation outcomes lives on
`IngestConfig`, which is built once and passed into the normalizer and the
resolver. Defaults are below; the currency table can be replaced from a CSV
file (or a Google Sheet tab, see `sixfig.io.sheets`) without code changes.

CSV columns: currency, min_annual, max_plausible_annual, description_cap_annual
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import pandas as pd

from sixfig.pipeline.priority import DEFAULT_SOURCE_PRIORITIES


@dataclass(frozen=True)
class CurrencyPolicy:
    currency: str
    # what counts as "six figures" locally
    min_annual: int
    # anything above this is a stray number (phone, headcount, funding), not a salary
    max_plausible_annual: int
    # free-text description salaries above this are rejected outright
    description_cap_annual: int


_DEFAULT_POLICY_ROWS = [
    # currency, min_annual, max_plausible_annual, description_cap_annual
    ("USD", 100_000, 1_500_000, 600_000),
    ("EUR", 80_000, 1_500_000, 550_000),
    ("GBP", 75_000, 1_500_000, 475_000),
    ("CAD", 120_000, 1_500_000, 800_000),
    ("AUD", 140_000, 1_500_000, 900_000),
    ("NZD", 150_000, 1_500_000, 1_000_000),
    ("SGD", 120_000, 1_500_000, 800_000),
    ("CHF", 110_000, 1_500_000, 550_000),
    ("SEK", 900_000, 20_000_000, 6_250_000),
    ("NOK", 1_000_000, 20_000_000, 6_250_000),
    ("DKK", 700_000, 20_000_000, 4_100_000),
    ("INR", 3_500_000, 150_000_000, 50_000_000),
]


def default_currency_policies() -> Dict[str, CurrencyPolicy]:
    return {row[0]: CurrencyPolicy(*row) for row in _DEFAULT_POLICY_ROWS}


def default_confidence_by_source() -> Dict[str, int]:
    return {"ats": 95, "salaryRaw": 90, "descriptionText": 80, "none": 0}


@dataclass(frozen=True)
class IngestConfig:
    currency_policies: Dict[str, CurrencyPolicy] = field(default_factory=default_currency_policies)
    source_priorities: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_SOURCE_PRIORITIES))
    confidence_by_source: Dict[str, int] = field(default_factory=default_confidence_by_source)

    # publication gate
    min_confidence: int = 65
    # penalties applied to the source's base confidence
    inferred_currency_penalty: int = 10
    near_threshold_penalty: int = 10
    # "near" = upper bound within this fraction above the threshold
    near_threshold_margin: float = 0.10

    # max/min above this ratio is not a real range (e.g. 50k-500k)
    max_range_ratio: float = 3.0
    # display-only flag, never an eligibility gate
    very_high_multiplier: float = 1.5

    # postings older than this are not ingested
    max_posting_age_days: int = 30

    def policy_for(self, currency: Optional[str]) -> Optional[CurrencyPolicy]:
        if not currency:
            return None
        return self.currency_policies.get(currency.strip().upper())

    def threshold_for(self, currency: Optional[str]) -> Optional[int]:
        policy = self.policy_for(currency)
        return policy.min_annual if policy else None

    def with_currency_policies(self, policies: Mapping[str, CurrencyPolicy]) -> "IngestConfig":
        merged = {**self.currency_policies, **policies}
        return replace(self, currency_policies=merged)


def _int_or_default(value, default: int) -> int:
    if value is None or pd.isna(value):
        return default
    return int(float(str(value).replace(",", "").replace("_", "")))


def policies_from_frame(df: pd.DataFrame) -> Dict[str, CurrencyPolicy]:
    """
    Build currency policies from a table. Only `currency` and `min_annual`
    are required; missing ceilings keep the defaults for that currency (or
    USD's when the currency is new).
    """
    cols = {c: c.strip().lower() for c in df.columns}
    df = df.rename(columns=cols)
    missing = sorted({"currency", "min_annual"} - set(df.columns))
    if missing:
        raise ValueError(f"Currency table is missing column(s): {', '.join(missing)}")

    defaults = default_currency_policies()
    out: Dict[str, CurrencyPolicy] = {}
    for row in df.dropna(subset=["currency", "min_annual"]).to_dict(orient="records"):
        code = str(row["currency"]).strip().upper()
        if not code:
            continue
        base = defaults.get(code, defaults["USD"])
        out[code] = CurrencyPolicy(
            currency=code,
            min_annual=_int_or_default(row.get("min_annual"), base.min_annual),
            max_plausible_annual=_int_or_default(row.get("max_plausible_annual"), base.max_plausible_annual),
            description_cap_annual=_int_or_default(row.get("description_cap_annual"), base.description_cap_annual),
        )
    return out


def load_currency_table(path: str | Path) -> Dict[str, CurrencyPolicy]:
    return policies_from_frame(pd.read_csv(path))


def config_from_env() -> IngestConfig:
    """
    Build the effective config from environment variables (a .env file is
    loaded by the CLI before this runs).
    """
    config = IngestConfig()

    table_path = os.getenv("SIXFIG_THRESHOLDS_CSV", "")
    if table_path:
        config = config.with_currency_policies(load_currency_table(table_path))

    min_conf = os.getenv("SIXFIG_MIN_CONFIDENCE", "")
    if min_conf:
        config = replace(config, min_confidence=int(min_conf))

    return config
