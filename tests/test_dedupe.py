import pytest

from sixfig.pipeline.dedupe import (
    make_dedupe_key,
    normalize_location,
    normalize_title,
    normalize_url,
    parse_dedupe_key,
    urls_match,
)


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Senior ML Engineer", "senior ml engineer"),
        ("Sr. Software Eng. (Remote)", "senior software engineer"),
        ("Backend Dev - Hybrid", "backend developer"),
        ("  Staff   Engineer ", "staff engineer"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_title(title, expected):
    assert normalize_title(title) == expected


def test_seniority_is_kept_in_key():
    assert make_dedupe_key("c1", "Senior ML Engineer", None) != make_dedupe_key("c1", "ML Engineer", None)


@pytest.mark.parametrize(
    "location, expected",
    [
        ("Remote - US", "us"),
        ("Anywhere", ""),
        ("New York, NY", "new york ny"),
        ("Worldwide (Remote)", ""),
        (None, ""),
    ],
)
def test_normalize_location(location, expected):
    assert normalize_location(location) == expected


def test_key_format_and_parse():
    key = make_dedupe_key("co_123", "Sr. Data Engineer", "Remote, Canada")
    assert key == "co_123::senior data engineer::canada"
    assert parse_dedupe_key(key) == {
        "company_id": "co_123",
        "normalized_title": "senior data engineer",
        "normalized_location": "canada",
    }


def test_key_is_deterministic_across_formatting():
    a = make_dedupe_key("c1", "Senior Data Engineer (Remote)", "Remote")
    b = make_dedupe_key("c1", "senior data engineer", "")
    assert a == b


def test_parse_short_key():
    assert parse_dedupe_key("c1") == {"company_id": "c1", "normalized_title": "", "normalized_location": ""}


def test_normalize_url():
    assert normalize_url("https://www.Example.com/jobs/123/?utm=x") == "example.com/jobs/123"
    assert normalize_url("example.com/jobs/123") == "example.com/jobs/123"
    assert normalize_url(None) is None
    assert normalize_url("") is None


def test_urls_match():
    assert urls_match("https://boards.greenhouse.io/acme/jobs/1", "http://boards.greenhouse.io/acme/jobs/1/")
    assert not urls_match("https://boards.greenhouse.io/acme/jobs/1", "https://boards.greenhouse.io/acme/jobs/2")
    assert not urls_match(None, None)
