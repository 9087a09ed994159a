# src/sixfig/pipeline/resolve.py
"""
Ingestion resolver: one RawCandidate in, one create/update/skip decision out.

    candidate -> validate input -> company -> dedupe key -> lookup
              -> DECISIONS[(exists, priority comparison)] -> store write

Salary handling picks the most trustworthy provenance available
(structured numbers > dedicated salary text > description), extracts,
normalizes and validates it. Rejected salaries are still stored with their
reason and raw inputs; they just are not published.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Literal, Optional, Tuple

from sixfig.config import IngestConfig
from sixfig.io.store import DuplicateKeyError, MemoryStore
from sixfig.models import (
    Company,
    Decision,
    IngestResult,
    NormalizedSalary,
    RawCandidate,
    ResolvedJob,
    SalarySource,
    SalaryValidation,
)
from sixfig.pipeline.company import find_or_create_company, infer_company_domain
from sixfig.pipeline.dedupe import make_dedupe_key, urls_match
from sixfig.pipeline.extract import extractor_for_source, infer_country_code, parse_salary_text
from sixfig.pipeline.priority import source_kind, source_priority
from sixfig.pipeline.role import normalize_role
from sixfig.pipeline.salary import is_publishable, normalize_salary, validate_salary

logger = logging.getLogger(__name__)

Comparison = Literal["higher", "equal", "lower"]

# (record exists, incoming priority vs stored) -> decision
DECISIONS: Dict[Tuple[bool, Comparison], Decision] = {
    (False, "higher"): "created",
    (False, "equal"): "created",
    (False, "lower"): "created",
    (True, "higher"): "updated",
    (True, "equal"): "updated",
    (True, "lower"): "skipped",
}

# fields a higher-or-equal source may overwrite on an existing job
AUTHORITATIVE_FIELDS = (
    "title", "source", "external_id", "source_priority", "url", "apply_url",
    "location_text", "country_code", "description_html", "description_text",
    "employment_type", "posted_at",
    "salary_min", "salary_max", "salary_currency_raw", "salary_interval_raw", "salary_text",
    "min_annual", "max_annual", "currency", "salary_interval", "is_high_salary",
    "is_very_high_salary", "salary_validated", "salary_confidence", "salary_source",
    "salary_reason", "salary_rejected_at", "needs_review", "is_published",
    "role_slug", "seniority", "discipline", "is_manager",
)

# changes in these alone do not count as "new data"
_BOOKKEEPING_FIELDS = {"salary_normalized_at", "salary_rejected_at", "updated_at", "last_seen_at"}


def compare_priority(incoming: int, stored: int) -> Comparison:
    if incoming > stored:
        return "higher"
    if incoming == stored:
        return "equal"
    return "lower"


def decide(existing: Optional[ResolvedJob], incoming_priority: int) -> Decision:
    stored = existing.get("source_priority", 0) if existing else 0
    return DECISIONS[(existing is not None, compare_priority(incoming_priority, stored))]


def candidate_errors(cand: RawCandidate) -> List[str]:
    errors = []
    if not (cand.get("title") or "").strip():
        errors.append("missing title")
    if not cand.get("source"):
        errors.append("missing source")
    if not cand.get("external_id"):
        errors.append("missing external_id")
    if not (cand.get("url") or cand.get("apply_url")):
        errors.append("missing url")
    return errors


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestionResolver:
    def __init__(
        self,
        store: MemoryStore,
        config: Optional[IngestConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.config = config or IngestConfig()
        self.clock = clock

    # ---- salary ----

    def process_salary(
        self, cand: RawCandidate, now: datetime
    ) -> Tuple[NormalizedSalary, SalaryValidation]:
        country = cand.get("country_code_hint") or infer_country_code(cand.get("location_text"))
        location = cand.get("location_text")

        low = high = None
        currency = interval = None
        explicit = True
        source: SalarySource = "none"

        has_numbers = cand.get("salary_min") is not None or cand.get("salary_max") is not None
        if has_numbers and cand.get("salary_currency_raw") and not cand.get("salary_estimated"):
            low, high = cand.get("salary_min"), cand.get("salary_max")
            currency = cand.get("salary_currency_raw")
            interval = cand.get("salary_interval_raw")
            # board feeds expose a salary field, not the employer's ATS record
            source = "ats" if source_kind(cand.get("source", "")) in ("ats", "company") else "salaryRaw"
        else:
            parsed = None
            if cand.get("salary_text"):
                parsed = parse_salary_text(cand["salary_text"], location_text=location, country_code=country)
                if parsed:
                    source = "salaryRaw"
            if parsed is None:
                description = cand.get("description_html") or cand.get("description_text")
                if description:
                    extractor = extractor_for_source(cand.get("source", ""))
                    parsed = extractor(description, location_text=location, country_code=country)
                    if parsed:
                        source = "descriptionText"
            if parsed:
                low, high = parsed["min"], parsed["max"]
                currency, interval = parsed["currency"], parsed["interval"]
                explicit = parsed["currency_explicit"]

        normalized = normalize_salary(low, high, currency, interval, self.config)
        validation = validate_salary(
            normalized,
            source,
            currency_explicit=explicit,
            title=cand.get("title"),
            config=self.config,
            now=now,
        )
        return normalized, validation

    # ---- record building ----

    def build_fields(self, cand: RawCandidate, priority: int, now: datetime) -> ResolvedJob:
        normalized, validation = self.process_salary(cand, now)
        role = normalize_role(cand.get("title"))
        country = cand.get("country_code_hint") or infer_country_code(cand.get("location_text"))
        return {
            "title": cand["title"].strip(),
            "source": cand["source"],
            "external_id": str(cand["external_id"]),
            "source_priority": priority,
            "url": cand.get("url") or cand.get("apply_url") or "",
            "apply_url": cand.get("apply_url"),
            "location_text": cand.get("location_text"),
            "country_code": country,
            "description_html": cand.get("description_html"),
            "description_text": cand.get("description_text"),
            "employment_type": cand.get("employment_type"),
            "posted_at": cand.get("posted_at"),
            "salary_min": cand.get("salary_min"),
            "salary_max": cand.get("salary_max"),
            "salary_currency_raw": cand.get("salary_currency_raw"),
            "salary_interval_raw": cand.get("salary_interval_raw"),
            "salary_text": cand.get("salary_text"),
            "min_annual": normalized["min_annual"],
            "max_annual": normalized["max_annual"],
            "currency": normalized["currency"],
            "salary_interval": normalized["interval"],
            "is_high_salary": normalized["is_high_salary"],
            "is_very_high_salary": normalized["is_very_high_salary"],
            "salary_validated": validation["validated"],
            "salary_confidence": validation["confidence"],
            "salary_source": validation["source"],
            "salary_reason": validation["reason"],
            "salary_normalized_at": validation["normalized_at"],
            "salary_rejected_at": validation["rejected_at"],
            "needs_review": validation["needs_review"],
            "is_published": is_publishable(validation, self.config),
            "role_slug": role["role_slug"],
            "seniority": role["seniority"],
            "discipline": role["discipline"],
            "is_manager": role["is_manager"],
        }

    # ---- lookup ----

    def find_existing(self, key: str, company: Company, cand: RawCandidate) -> Optional[ResolvedJob]:
        existing = self.store.find_job_by_key(key)
        if existing:
            return existing
        # same posting, same source and title, whose location text drifted
        title = cand["title"].strip().casefold()
        url, apply_url = cand.get("url"), cand.get("apply_url")
        for job in self.store.find_jobs(company_id=company["id"], source=cand["source"]):
            if (job.get("title") or "").strip().casefold() != title:
                continue
            if (
                urls_match(job.get("url"), url)
                or urls_match(job.get("apply_url"), apply_url)
                or urls_match(job.get("url"), apply_url)
                or urls_match(job.get("apply_url"), url)
            ):
                return job
        return None

    # ---- writes ----

    def create(
        self, cand: RawCandidate, company: Company, key: str, priority: int, now: datetime
    ) -> Tuple[Optional[IngestResult], Optional[ResolvedJob]]:
        """
        Insert a new job. Returns (result, None) on success, or (None, row)
        when another worker created the same key first.
        """
        fields = self.build_fields(cand, priority, now)
        row: ResolvedJob = {
            **fields,
            "dedupe_key": key,
            "company_id": company["id"],
            "company_name": company["name"],
            "created_at": now,
            "updated_at": now,
            "last_seen_at": now,
            "is_expired": False,
        }
        try:
            created = self.store.create_job(row)
        except DuplicateKeyError as e:
            logger.info("dedupe key race on %s, re-resolving", e.key)
            winner = self.store.get_job(e.existing_id)
            if winner is None:
                raise
            return None, winner
        return {"status": "created", "job_id": created["id"], "dedupe_key": key, "reason": None}, None

    def update(
        self, cand: RawCandidate, existing: ResolvedJob, priority: int, now: datetime
    ) -> Optional[IngestResult]:
        """Apply authoritative fields; None when a stronger source won the compare-and-set."""
        fields = self.build_fields(cand, priority, now)
        changed = {
            k: fields[k] for k in AUTHORITATIVE_FIELDS
            if k in fields and existing.get(k) != fields[k]
        }
        if not set(changed) - _BOOKKEEPING_FIELDS:
            self.store.touch_job(existing["id"], now)
            return {"status": "skipped", "job_id": existing["id"], "dedupe_key": existing["dedupe_key"], "reason": "unchanged"}

        changes: ResolvedJob = {
            **changed,
            "salary_normalized_at": fields["salary_normalized_at"],
            "updated_at": now,
            "last_seen_at": now,
        }
        updated = self.store.update_job(existing["id"], changes, max_priority=priority)
        if updated is None:
            logger.info("update lost to a higher-priority write on %s", existing["dedupe_key"])
            return None
        return {"status": "updated", "job_id": updated["id"], "dedupe_key": updated["dedupe_key"], "reason": None}

    # ---- entry point ----

    def ingest(self, cand: RawCandidate) -> IngestResult:
        errors = candidate_errors(cand)
        if errors:
            logger.warning("invalid candidate %r: %s", cand.get("title"), ", ".join(errors))
            return {"status": "skipped", "job_id": None, "dedupe_key": None, "reason": "invalid: " + ", ".join(errors)}

        domain = infer_company_domain(cand.get("company_domain"), cand.get("apply_url"))
        company = find_or_create_company(self.store, cand.get("company_name_raw"), domain)
        if company is None:
            return {"status": "skipped", "job_id": None, "dedupe_key": None, "reason": "no_company"}

        key = make_dedupe_key(company["id"], cand["title"], cand.get("location_text"))
        priority = source_priority(cand["source"], self.config.source_priorities)
        now = self.clock()

        existing = self.find_existing(key, company, cand)
        if existing is None:
            result, existing = self.create(cand, company, key, priority, now)
            if result is not None:
                return result

        if decide(existing, priority) == "updated":
            result = self.update(cand, existing, priority, now)
            if result is not None:
                return result

        self.store.touch_job(existing["id"], now)
        return {"status": "skipped", "job_id": existing["id"], "dedupe_key": existing["dedupe_key"], "reason": "lower_priority"}
