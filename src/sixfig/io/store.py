# src/sixfig/io/store.py
"""
In-memory Company / ResolvedJob store.

Rows live in dicts keyed by id; natural keys (dedupe key, company name key,
domain) map to row ids. Every method takes the same lock, so a single call
is atomic: a job row is either fully written or not written at all.

The dedupe key index is the uniqueness constraint: `create_job` on a key
that already exists raises `DuplicateKeyError` and callers take the
update/skip path instead.
"""

from __future__ import annotations

import copy
import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sixfig.models import Company, ResolvedJob


class DuplicateKeyError(KeyError):
    """A job with this dedupe key already exists."""

    def __init__(self, key: str, existing_id: str):
        super().__init__(key)
        self.key = key
        self.existing_id = existing_id


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class MemoryStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: Dict[str, ResolvedJob] = {}
        self._job_by_key: Dict[str, str] = {}
        self._companies: Dict[str, Company] = {}
        self._company_by_key: Dict[str, str] = {}
        self._company_by_domain: Dict[str, str] = {}

    # ---- companies ----

    def find_company(self, *, name_key: Optional[str] = None, domain: Optional[str] = None) -> Optional[Company]:
        with self._lock:
            cid = None
            if domain:
                cid = self._company_by_domain.get(domain.lower())
            if cid is None and name_key:
                cid = self._company_by_key.get(name_key)
            return copy.deepcopy(self._companies[cid]) if cid else None

    def create_company(self, data: Company) -> Company:
        """Get-or-create on name key; fills in a missing domain on the existing row."""
        with self._lock:
            key = data["name_key"]
            cid = self._company_by_key.get(key)
            if cid is None:
                cid = _new_id("co")
                row: Company = {**data, "id": cid, "created_at": _now()}
                self._companies[cid] = row
                self._company_by_key[key] = cid
            row = self._companies[cid]
            domain = data.get("domain")
            if domain and not row.get("domain"):
                row["domain"] = domain
            if domain:
                self._company_by_domain.setdefault(domain.lower(), cid)
            return copy.deepcopy(row)

    def list_companies(self) -> List[Company]:
        with self._lock:
            return [copy.deepcopy(c) for c in self._companies.values()]

    # ---- jobs ----

    def find_job_by_key(self, key: str) -> Optional[ResolvedJob]:
        with self._lock:
            jid = self._job_by_key.get(key)
            return copy.deepcopy(self._jobs[jid]) if jid else None

    def find_jobs(self, *, company_id: str, source: Optional[str] = None) -> List[ResolvedJob]:
        with self._lock:
            return [
                copy.deepcopy(j) for j in self._jobs.values()
                if j.get("company_id") == company_id and (source is None or j.get("source") == source)
            ]

    def get_job(self, job_id: str) -> Optional[ResolvedJob]:
        with self._lock:
            row = self._jobs.get(job_id)
            return copy.deepcopy(row) if row else None

    def create_job(self, data: ResolvedJob) -> ResolvedJob:
        with self._lock:
            key = data["dedupe_key"]
            existing = self._job_by_key.get(key)
            if existing is not None:
                raise DuplicateKeyError(key, existing)
            jid = _new_id("job")
            row: ResolvedJob = {**copy.deepcopy(data), "id": jid}
            self._jobs[jid] = row
            self._job_by_key[key] = jid
            return copy.deepcopy(row)

    def update_job(self, job_id: str, changes: ResolvedJob, *, max_priority: int) -> Optional[ResolvedJob]:
        """
        Compare-and-set: apply `changes` only if the stored source priority is
        still <= `max_priority`. Returns the new row, or None when a stronger
        source got there first.
        """
        with self._lock:
            row = self._jobs.get(job_id)
            if row is None:
                return None
            if row.get("source_priority", 0) > max_priority:
                return None
            row.update(copy.deepcopy(changes))
            return copy.deepcopy(row)

    def touch_job(self, job_id: str, seen_at: Optional[datetime] = None) -> bool:
        with self._lock:
            row = self._jobs.get(job_id)
            if row is None:
                return False
            row["last_seen_at"] = seen_at or _now()
            return True

    def list_jobs(self) -> List[ResolvedJob]:
        with self._lock:
            return [copy.deepcopy(j) for j in self._jobs.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
