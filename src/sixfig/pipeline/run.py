# src/sixfig/pipeline/run.py
"""
Batch runner: fetch every selected source on a bounded thread pool and feed
its candidates through the resolver.

Sources are isolated from each other. A source whose fetch fails (after the
HTTP layer's retries) reports `error` and zero-or-partial counts; the other
sources carry on. A single bad record is logged and counted, never fatal.
Setting the `cancel` event stops new page fetches and new records; a
record already inside the resolver finishes its (atomic) store write.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

import httpx

from sixfig.clients.adzuna import adzuna_iter_search
from sixfig.clients.greenhouse import fetch_board_jobs
from sixfig.clients.lever import fetch_postings
from sixfig.models import RawCandidate, SourceStats, empty_stats
from sixfig.pipeline.filter import is_job_too_old
from sixfig.pipeline.normalize import normalize_adzuna, normalize_greenhouse, normalize_lever
from sixfig.pipeline.priority import source_kind
from sixfig.pipeline.resolve import IngestionResolver

logger = logging.getLogger(__name__)

MODES = ("all", "ats", "boards")

Fetcher = Callable[[threading.Event], Iterable[RawCandidate]]


@dataclass(frozen=True)
class SourceSpec:
    # display name, e.g. "ats:greenhouse/acme"
    name: str
    # source identifier stamped on candidates ("ats:greenhouse", "board:adzuna")
    source: str
    fetch: Fetcher

    @property
    def kind(self) -> str:
        return source_kind(self.source)


def greenhouse_source(board: str, transport: Optional[httpx.BaseTransport] = None) -> SourceSpec:
    def fetch(cancel: threading.Event) -> Iterator[RawCandidate]:
        if cancel.is_set():
            return
        yield from normalize_greenhouse(fetch_board_jobs(board, transport=transport), board)

    return SourceSpec(name=f"ats:greenhouse/{board}", source="ats:greenhouse", fetch=fetch)


def lever_source(company: str, transport: Optional[httpx.BaseTransport] = None) -> SourceSpec:
    def fetch(cancel: threading.Event) -> Iterator[RawCandidate]:
        if cancel.is_set():
            return
        yield from normalize_lever(fetch_postings(company, transport=transport), company)

    return SourceSpec(name=f"ats:lever/{company}", source="ats:lever", fetch=fetch)


def adzuna_source(
    app_id: str,
    app_key: str,
    query: str,
    *,
    country: str = "us",
    max_pages: int = 1,
    salary_min: Optional[int] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> SourceSpec:
    def fetch(cancel: threading.Event) -> Iterator[RawCandidate]:
        pages = adzuna_iter_search(
            app_id,
            app_key,
            query,
            country=country,
            max_pages=max_pages,
            salary_min=salary_min,
            cancel=cancel,
            transport=transport,
        )
        for page in pages:
            yield from normalize_adzuna(page, country)

    return SourceSpec(name=f"board:adzuna/{country}/{query}", source="board:adzuna", fetch=fetch)


def select_sources(sources: Sequence[SourceSpec], mode: str) -> List[SourceSpec]:
    if mode not in MODES:
        raise ValueError(f"mode must be one of {', '.join(MODES)}; got {mode!r}")
    if mode == "ats":
        return [s for s in sources if s.kind in ("ats", "company")]
    if mode == "boards":
        return [s for s in sources if s.kind == "board"]
    return list(sources)


def run_source(
    spec: SourceSpec,
    resolver: IngestionResolver,
    cancel: threading.Event,
    *,
    max_age_days: int,
    now: Optional[datetime] = None,
) -> SourceStats:
    stats = empty_stats(spec.name)
    now = now or datetime.now(timezone.utc)
    try:
        for cand in spec.fetch(cancel):
            if cancel.is_set():
                logger.info("%s: cancelled", spec.name)
                break
            if is_job_too_old(cand.get("posted_at"), max_age_days, now):
                stats["skipped"] += 1
                continue
            try:
                result = resolver.ingest(cand)
            except Exception:
                logger.exception("%s: failed to ingest %r", spec.name, cand.get("title"))
                stats["errors"] += 1
                stats["skipped"] += 1
                continue
            stats[result["status"]] += 1
    except Exception as exc:
        # fetch failed (retries exhausted, bad payload, ...): no more data from this source this cycle
        logger.error("%s: source failed: %s", spec.name, exc)
        stats["error"] = f"{type(exc).__name__}: {exc}"
    logger.info(
        "%s: created=%d updated=%d skipped=%d errors=%d",
        spec.name, stats["created"], stats["updated"], stats["skipped"], stats["errors"],
    )
    return stats


def run_sources(
    sources: Sequence[SourceSpec],
    resolver: IngestionResolver,
    *,
    mode: str = "all",
    max_workers: int = 4,
    cancel: Optional[threading.Event] = None,
    max_age_days: Optional[int] = None,
) -> List[SourceStats]:
    """Run the selected sources concurrently; one stats dict per source, in input order."""
    selected = select_sources(sources, mode)
    if not selected:
        return []
    cancel = cancel or threading.Event()
    if max_age_days is None:
        max_age_days = resolver.config.max_posting_age_days

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        futures = [
            pool.submit(run_source, spec, resolver, cancel, max_age_days=max_age_days)
            for spec in selected
        ]
        return [f.result() for f in futures]
