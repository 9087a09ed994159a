import threading
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from tenacity import wait_none

from sixfig.clients.http import get_json
from sixfig.io.store import MemoryStore
from sixfig.pipeline.resolve import IngestionResolver
from sixfig.pipeline.run import (
    SourceSpec,
    greenhouse_source,
    run_source,
    run_sources,
    select_sources,
)


def candidate(n, source="ats:greenhouse", company="Acme", **extra):
    cand = {
        "source": source,
        "external_id": f"{source}-{n}",
        "title": f"Staff Engineer {n}",
        "company_name_raw": company,
        "location_text": "Austin, TX",
        "salary_min": 200000,
        "salary_max": 250000,
        "salary_currency_raw": "USD",
        "url": f"https://example.org/{source}/{n}",
    }
    cand.update(extra)
    return cand


def static_source(name, source, cands):
    return SourceSpec(name=name, source=source, fetch=lambda cancel: iter(cands))


def failing_source(name, source, after=()):
    def fetch(cancel):
        yield from after
        raise httpx.ConnectError("connection refused")

    return SourceSpec(name=name, source=source, fetch=fetch)


def test_sources_are_isolated():
    resolver = IngestionResolver(MemoryStore())
    sources = [
        static_source("gh", "ats:greenhouse", [candidate(1), candidate(2)]),
        failing_source("adzuna", "board:adzuna", after=[candidate(3, source="board:adzuna", company="Globex")]),
        static_source("lever", "ats:lever", [candidate(4, source="ats:lever", company="Initech")]),
    ]

    stats = run_sources(sources, resolver, max_workers=3)

    assert [s["source"] for s in stats] == ["gh", "adzuna", "lever"]
    assert stats[0]["created"] == 2 and stats[0]["error"] is None
    assert stats[1]["created"] == 1
    assert stats[1]["error"] == "ConnectError: connection refused"
    assert stats[2]["created"] == 1
    assert len(resolver.store) == 4


def test_bad_record_is_counted_not_fatal(monkeypatch):
    resolver = IngestionResolver(MemoryStore())
    real_ingest = resolver.ingest

    def ingest(cand):
        if cand["external_id"].endswith("-2"):
            raise RuntimeError("bad record")
        return real_ingest(cand)

    monkeypatch.setattr(resolver, "ingest", ingest)
    spec = static_source("gh", "ats:greenhouse", [candidate(1), candidate(2), candidate(3)])

    stats = run_source(spec, resolver, threading.Event(), max_age_days=30)

    assert stats["created"] == 2
    assert stats["errors"] == 1
    assert stats["skipped"] == 1
    assert stats["error"] is None


def test_cancelled_run_ingests_nothing():
    resolver = IngestionResolver(MemoryStore())
    cancel = threading.Event()
    cancel.set()
    stats = run_sources([static_source("gh", "ats:greenhouse", [candidate(1)])], resolver, cancel=cancel)
    assert stats[0]["created"] == 0
    assert len(resolver.store) == 0


def test_stale_postings_are_skipped():
    resolver = IngestionResolver(MemoryStore())
    now = datetime.now(timezone.utc)
    cands = [
        candidate(1, posted_at=now - timedelta(days=2)),
        candidate(2, posted_at=now - timedelta(days=90)),
        candidate(3),
    ]
    stats = run_sources([static_source("gh", "ats:greenhouse", cands)], resolver, max_age_days=30)
    assert stats[0]["created"] == 2
    assert stats[0]["skipped"] == 1


def test_duplicate_across_sources_counts_once():
    resolver = IngestionResolver(MemoryStore())
    ats = candidate(1)
    board = candidate(1, source="board:adzuna")
    board["title"] = ats["title"]
    sources = [
        static_source("gh", "ats:greenhouse", [ats]),
        static_source("adzuna", "board:adzuna", [board]),
    ]
    stats = run_sources(sources, resolver, max_workers=1)
    assert stats[0]["created"] + stats[1]["created"] == 1
    assert len(resolver.store) == 1
    assert resolver.store.list_jobs()[0]["source"] == "ats:greenhouse"


def test_select_sources_by_mode():
    sources = [
        static_source("gh", "ats:greenhouse", []),
        static_source("careers", "company:careers", []),
        static_source("adzuna", "board:adzuna", []),
    ]
    assert [s.name for s in select_sources(sources, "ats")] == ["gh", "careers"]
    assert [s.name for s in select_sources(sources, "boards")] == ["adzuna"]
    assert len(select_sources(sources, "all")) == 3
    with pytest.raises(ValueError):
        select_sources(sources, "everything")


def test_greenhouse_source_end_to_end(monkeypatch):
    monkeypatch.setattr(get_json.retry, "wait", wait_none())
    payload = {
        "jobs": [
            {
                "id": 11,
                "title": "Senior Data Engineer",
                "company_name": "Acme",
                "location": {"name": "Remote - US"},
                "absolute_url": "https://boards.greenhouse.io/acme/jobs/11",
                "content": "&lt;div class=&quot;pay-range&quot;&gt;&lt;span&gt;$170,000&lt;/span&gt;"
                           "&lt;span&gt;$210,000 USD&lt;/span&gt;&lt;/div&gt;",
            }
        ]
    }
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
    resolver = IngestionResolver(MemoryStore())

    stats = run_sources([greenhouse_source("acme", transport=transport)], resolver)

    assert stats[0]["created"] == 1
    job = resolver.store.list_jobs()[0]
    assert job["min_annual"] == 170000
    assert job["max_annual"] == 210000
    assert job["is_published"] is True


def test_greenhouse_source_outage_reports_error(monkeypatch):
    monkeypatch.setattr(get_json.retry, "wait", wait_none())
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    resolver = IngestionResolver(MemoryStore())

    stats = run_sources([greenhouse_source("acme", transport=transport)], resolver)

    assert stats[0]["error"].startswith("HTTPStatusError")
    assert stats[0]["created"] == 0
