import pytest

from sixfig.pipeline.priority import (
    ATS_PRIORITY,
    CAREERS_PRIORITY,
    GENERIC_BOARD_PRIORITY,
    UNKNOWN_PRIORITY,
    make_ats_source,
    make_board_source,
    source_kind,
    source_priority,
)


def test_fixed_ranking():
    ranked = [
        source_priority("ats:greenhouse"),
        source_priority("company:careers"),
        source_priority("board:remote100k"),
        source_priority("board:adzuna"),
        source_priority("board:weworkremotely"),
        source_priority("scraper:mystery"),
    ]
    assert ranked == sorted(ranked, reverse=True)
    assert len(set(ranked)) == len(ranked)


@pytest.mark.parametrize(
    "source, expected",
    [
        ("ats:smartrecruiters", ATS_PRIORITY),
        ("company:acme", CAREERS_PRIORITY),
        ("board:somethingnew", GENERIC_BOARD_PRIORITY),
        ("", UNKNOWN_PRIORITY),
        ("ATS:Lever", ATS_PRIORITY),
    ],
)
def test_prefix_fallback(source, expected):
    assert source_priority(source) == expected


def test_custom_table():
    table = {"board:adzuna": 99, "other": 5}
    assert source_priority("board:adzuna", table) == 99
    assert source_priority("mystery", table) == 5


def test_source_helpers():
    assert make_board_source(" Adzuna ") == "board:adzuna"
    assert make_ats_source("Greenhouse") == "ats:greenhouse"
    assert source_kind("ats:lever") == "ats"
    assert source_kind("weird") == "other"
