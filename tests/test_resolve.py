import threading
from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from sixfig.io.store import DuplicateKeyError, MemoryStore
from sixfig.pipeline.resolve import DECISIONS, IngestionResolver, compare_priority, decide

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def ticking_clock():
    ticks = count()
    return lambda: T0 + timedelta(minutes=next(ticks))


def make_resolver(store=None):
    return IngestionResolver(store if store is not None else MemoryStore(), clock=ticking_clock())


def greenhouse_job(**overrides):
    cand = {
        "source": "ats:greenhouse",
        "external_id": "gh-1",
        "title": "Senior Software Engineer",
        "company_name_raw": "Acme",
        "location_text": "New York, NY",
        "description_html": "&lt;p&gt;Base salary range: $180k - $220k annually&lt;/p&gt;",
        "url": "https://boards.greenhouse.io/acme/jobs/1",
    }
    cand.update(overrides)
    return cand


def adzuna_job(**overrides):
    cand = {
        "source": "board:adzuna",
        "external_id": "az-9",
        "title": "Senior Software Engineer",
        "company_name_raw": "Acme Inc",
        "location_text": "New York, NY",
        "description_text": "Great role.",
        "salary_min": 120000,
        "salary_max": 140000,
        "salary_currency_raw": "USD",
        "url": "https://www.adzuna.com/land/ad/9",
    }
    cand.update(overrides)
    return cand


# ---- decision table ----

def test_decision_table_covers_every_branch():
    assert len(DECISIONS) == 6
    assert DECISIONS[(False, "higher")] == "created"
    assert DECISIONS[(True, "higher")] == "updated"
    assert DECISIONS[(True, "equal")] == "updated"
    assert DECISIONS[(True, "lower")] == "skipped"


def test_compare_and_decide():
    assert compare_priority(100, 40) == "higher"
    assert compare_priority(40, 40) == "equal"
    assert compare_priority(40, 100) == "lower"
    assert decide(None, 20) == "created"
    assert decide({"source_priority": 100}, 40) == "skipped"
    assert decide({"source_priority": 40}, 100) == "updated"


# ---- create ----

def test_create_persists_salary_role_and_timestamps():
    resolver = make_resolver()
    result = resolver.ingest(greenhouse_job())

    assert result["status"] == "created"
    job = resolver.store.get_job(result["job_id"])
    assert job["dedupe_key"] == result["dedupe_key"]
    assert job["source_priority"] == 100
    assert job["min_annual"] == 180000
    assert job["max_annual"] == 220000
    assert job["currency"] == "USD"
    assert job["salary_source"] == "descriptionText"
    assert job["salary_validated"] is True
    assert job["is_published"] is True
    assert job["role_slug"] == "senior-software-engineer"
    assert job["seniority"] == "senior"
    assert job["is_expired"] is False
    assert job["created_at"] == job["last_seen_at"]


def test_rejected_salary_is_kept_for_audit():
    resolver = make_resolver()
    cand = greenhouse_job(description_html="Pay range: $22.00 - $25.00/hour")
    result = resolver.ingest(cand)

    job = resolver.store.get_job(result["job_id"])
    assert result["status"] == "created"
    assert job["salary_validated"] is False
    assert job["salary_reason"] == "below_threshold"
    assert job["is_published"] is False
    assert job["description_html"] == "Pay range: $22.00 - $25.00/hour"
    assert job["salary_rejected_at"] is not None


def test_no_salary_leaves_fields_empty():
    resolver = make_resolver()
    result = resolver.ingest(greenhouse_job(description_html="<p>We manage hourly employees.</p>"))
    job = resolver.store.get_job(result["job_id"])
    assert job["min_annual"] is None
    assert job["salary_source"] == "none"
    assert job["salary_reason"] == "no_salary"


def test_structured_salary_wins_over_description():
    resolver = make_resolver()
    cand = greenhouse_job(salary_min=210000, salary_max=250000, salary_currency_raw="USD")
    job = resolver.store.get_job(resolver.ingest(cand)["job_id"])
    assert job["salary_source"] == "ats"
    assert job["salary_confidence"] == 95
    assert job["min_annual"] == 210000


def test_board_structured_salary_is_not_ats_provenance():
    resolver = make_resolver()
    job = resolver.store.get_job(resolver.ingest(adzuna_job())["job_id"])
    assert job["salary_source"] == "salaryRaw"
    assert job["salary_confidence"] == 90
    assert job["min_annual"] == 120000


def test_estimated_board_salary_is_ignored():
    resolver = make_resolver()
    result = resolver.ingest(adzuna_job(salary_estimated=True))
    job = resolver.store.get_job(result["job_id"])
    assert job["salary_source"] == "none"
    assert job["salary_min"] == 120000


def test_dedicated_salary_text():
    resolver = make_resolver()
    cand = adzuna_job(salary_min=None, salary_max=None, salary_currency_raw=None, salary_text="$75/hr")
    job = resolver.store.get_job(resolver.ingest(cand)["job_id"])
    assert job["salary_source"] == "salaryRaw"
    assert job["salary_interval"] == "hour"
    assert job["min_annual"] == 156000


@pytest.mark.parametrize(
    "overrides, reason",
    [
        ({"title": ""}, "invalid: missing title"),
        ({"external_id": None}, "invalid: missing external_id"),
        ({"url": ""}, "invalid: missing url"),
        ({"company_name_raw": "Remote"}, "no_company"),
    ],
)
def test_invalid_candidates_are_skipped_without_writes(overrides, reason):
    resolver = make_resolver()
    result = resolver.ingest(greenhouse_job(**overrides))
    assert result["status"] == "skipped"
    assert result["reason"] == reason
    assert resolver.store.list_jobs() == []


# ---- idempotence / updates ----

def test_reingesting_identical_candidate_never_duplicates():
    resolver = make_resolver()
    first = resolver.ingest(greenhouse_job())
    second = resolver.ingest(greenhouse_job())

    assert first["status"] == "created"
    assert second["status"] in ("updated", "skipped")
    assert second["job_id"] == first["job_id"]
    assert len(resolver.store.list_jobs()) == 1


def test_same_source_with_new_data_updates():
    resolver = make_resolver()
    first = resolver.ingest(greenhouse_job())
    second = resolver.ingest(greenhouse_job(description_html="Base salary range: $200k - $240k annually"))

    assert second["status"] == "updated"
    job = resolver.store.get_job(first["job_id"])
    assert job["max_annual"] == 240000
    assert job["updated_at"] > job["created_at"]


# ---- priority precedence ----

@pytest.mark.parametrize("order", ["ats_first", "board_first"])
def test_higher_priority_source_wins_in_either_order(order):
    resolver = make_resolver()
    ats, board = greenhouse_job(), adzuna_job()
    sequence = [ats, board] if order == "ats_first" else [board, ats]

    results = [resolver.ingest(c) for c in sequence]

    jobs = resolver.store.list_jobs()
    assert len(jobs) == 1
    job = jobs[0]
    assert job["source"] == "ats:greenhouse"
    assert job["source_priority"] == 100
    assert job["url"] == ats["url"]
    assert job["min_annual"] == 180000
    if order == "ats_first":
        assert [r["status"] for r in results] == ["created", "skipped"]
    else:
        assert [r["status"] for r in results] == ["created", "updated"]


def test_skip_refreshes_last_seen_only():
    resolver = make_resolver()
    created = resolver.ingest(greenhouse_job())
    before = resolver.store.get_job(created["job_id"])

    skipped = resolver.ingest(adzuna_job())
    after = resolver.store.get_job(created["job_id"])

    assert skipped["status"] == "skipped"
    assert skipped["reason"] == "lower_priority"
    assert after["last_seen_at"] > before["last_seen_at"]
    assert {k: v for k, v in after.items() if k != "last_seen_at"} == {
        k: v for k, v in before.items() if k != "last_seen_at"
    }


def test_location_drift_on_same_posting_updates_in_place():
    resolver = make_resolver()
    first = resolver.ingest(greenhouse_job())
    second = resolver.ingest(greenhouse_job(location_text="Brooklyn, NY"))
    assert second["job_id"] == first["job_id"]
    assert second["status"] == "updated"
    assert resolver.store.get_job(first["job_id"])["location_text"] == "Brooklyn, NY"
    assert len(resolver.store.list_jobs()) == 1


def test_distinct_titles_on_a_shared_careers_url_stay_separate():
    resolver = make_resolver()
    common = {"source": "board:remoteok", "company_name_raw": "Acme", "url": "https://acme.com/careers"}
    senior = resolver.ingest(greenhouse_job(external_id="r-1", title="Senior Software Engineer", **common))
    plain = resolver.ingest(greenhouse_job(external_id="r-2", title="Software Engineer", **common))

    assert [senior["status"], plain["status"]] == ["created", "created"]
    assert senior["job_id"] != plain["job_id"]
    assert len(resolver.store.list_jobs()) == 2


def test_companies_sharing_a_board_host_are_not_merged():
    resolver = make_resolver()
    acme = resolver.ingest(greenhouse_job(
        source="board:remote100k", external_id="1", company_name_raw="Acme",
        url="https://remote100k.com/jobs/1",
    ))
    globex = resolver.ingest(greenhouse_job(
        source="board:remote100k", external_id="2", company_name_raw="Globex",
        url="https://remote100k.com/jobs/2",
    ))

    assert [acme["status"], globex["status"]] == ["created", "created"]
    assert len(resolver.store.list_companies()) == 2
    assert {j["company_name"] for j in resolver.store.list_jobs()} == {"Acme", "Globex"}


# ---- concurrency ----

def test_losing_a_create_race_falls_back_to_update(monkeypatch):
    store = MemoryStore()
    resolver = make_resolver(store)
    rival = make_resolver(store)

    real_find = store.find_job_by_key
    calls = {"n": 0}

    def stale_find(key):
        # first lookup misses, as if a rival created the row right after it
        calls["n"] += 1
        if calls["n"] == 1:
            rival.ingest(adzuna_job())
            return None
        return real_find(key)

    monkeypatch.setattr(store, "find_job_by_key", stale_find)

    result = resolver.ingest(greenhouse_job())

    assert result["status"] == "updated"
    assert len(store.list_jobs()) == 1
    assert store.list_jobs()[0]["source"] == "ats:greenhouse"


def test_duplicate_key_error_carries_existing_id():
    store = MemoryStore()
    row = store.create_job({"dedupe_key": "k", "source_priority": 1})
    with pytest.raises(DuplicateKeyError) as info:
        store.create_job({"dedupe_key": "k", "source_priority": 1})
    assert info.value.existing_id == row["id"]


def test_parallel_ingest_of_one_posting_creates_one_row():
    resolver = make_resolver()
    barrier = threading.Barrier(8)
    results, errors = [], []

    def worker():
        barrier.wait()
        try:
            results.append(resolver.ingest(greenhouse_job()))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert [r["status"] for r in results].count("created") == 1
    assert len({r["job_id"] for r in results}) == 1
    assert len(resolver.store.list_jobs()) == 1
    assert len(resolver.store.list_companies()) == 1
