# src/sixfig/pipeline/priority.py
"""
Source authority ranking used to arbitrate when two sources report the same job.

Higher number = more authoritative. The employer's own listing (its ATS feed
or careers page) beats any third-party board's copy of it.
"""

from typing import Dict, Literal, Mapping, Optional

ATS_PRIORITY = 100
CAREERS_PRIORITY = 90
CURATED_BOARD_PRIORITY = 50
STANDARD_BOARD_PRIORITY = 40
GENERIC_BOARD_PRIORITY = 30
UNKNOWN_PRIORITY = 20

DEFAULT_SOURCE_PRIORITIES: Dict[str, int] = {
    "ats:greenhouse": ATS_PRIORITY,
    "ats:lever": ATS_PRIORITY,
    "ats:ashby": ATS_PRIORITY,
    "ats:workday": ATS_PRIORITY,
    "company:careers": CAREERS_PRIORITY,
    # boards that only list 100k+ roles
    "board:remote100k": CURATED_BOARD_PRIORITY,
    "board:remoterocketship": CURATED_BOARD_PRIORITY,
    "board:remoteok": STANDARD_BOARD_PRIORITY,
    "board:remotive": STANDARD_BOARD_PRIORITY,
    "board:adzuna": STANDARD_BOARD_PRIORITY,
    "board:weworkremotely": GENERIC_BOARD_PRIORITY,
    "board:builtin": GENERIC_BOARD_PRIORITY,
    "other": UNKNOWN_PRIORITY,
}

SourceKind = Literal["ats", "company", "board", "other"]


def source_kind(source: str) -> SourceKind:
    prefix = (source or "").split(":", 1)[0].lower()
    if prefix in ("ats", "company", "board"):
        return prefix  # type: ignore[return-value]
    return "other"


def source_priority(source: str, table: Optional[Mapping[str, int]] = None) -> int:
    """
    Look up a source's priority, falling back on its prefix for sources
    that are not listed (a new ATS is still an ATS).
    """
    table = DEFAULT_SOURCE_PRIORITIES if table is None else table
    key = (source or "").lower()
    if key in table:
        return table[key]

    kind = source_kind(key)
    if kind == "ats":
        return ATS_PRIORITY
    if kind == "company":
        return CAREERS_PRIORITY
    if kind == "board":
        return GENERIC_BOARD_PRIORITY
    return table.get("other", UNKNOWN_PRIORITY)


def make_board_source(board: str) -> str:
    return f"board:{board.strip().lower()}"


def make_ats_source(provider: str) -> str:
    return f"ats:{provider.strip().lower()}"
