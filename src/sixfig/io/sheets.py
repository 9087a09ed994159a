# src/sixfig/io/sheets.py
from __future__ import annotations

import datetime as dt
import io
import os
from typing import Dict, List, Optional

import gspread
import httpx
import pandas as pd

from sixfig.config import CurrencyPolicy, policies_from_frame
from sixfig.models import SourceStats

REPORT_WORKSHEET = "Runs"
REPORT_HEADERS = ["Run At", "Source", "Created", "Updated", "Skipped", "Errors", "Error"]


def csv_export_url(sheet_id: str, gid: str | int) -> str:
    return f"https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv&gid={gid}"


def service_account_file() -> str:
    return os.getenv("SIXFIG_SERVICE_ACCOUNT", "service_account.json")


def _client() -> gspread.Client:
    return gspread.service_account(filename=service_account_file())


def _read_csv_via_httpx(url: str) -> pd.DataFrame:
    with httpx.Client(timeout=20, follow_redirects=True) as client:
        r = client.get(url)
        r.raise_for_status()
        return pd.read_csv(io.StringIO(r.text))


def _read_df_with_gspread(sheet_id: str, gid: int) -> pd.DataFrame:
    sh = _client().open_by_key(sheet_id)
    ws = next((ws for ws in sh.worksheets() if ws.id == gid), None)
    if ws is None:
        raise ValueError(f"No worksheet with gid={gid}")
    return pd.DataFrame(ws.get_all_records())


def _read_tab(sheet_id: str, gid: int) -> pd.DataFrame:
    # Public CSV export first; a private sheet answers 401 and needs the service account
    url = csv_export_url(sheet_id, gid)
    try:
        return _read_csv_via_httpx(url)
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 401:
            return _read_df_with_gspread(sheet_id, gid)
        raise


def read_currency_table(sheet_id: str, gid: int = 0) -> Dict[str, CurrencyPolicy]:
    """Currency threshold table kept in a sheet tab (same columns as the CSV)."""
    return policies_from_frame(_read_tab(sheet_id, gid))


def report_rows(stats: List[SourceStats], run_at: Optional[dt.datetime] = None) -> List[dict]:
    stamp = (run_at or dt.datetime.now(dt.timezone.utc)).isoformat(timespec="seconds")
    return [
        {
            "Run At": stamp,
            "Source": s["source"],
            "Created": s["created"],
            "Updated": s["updated"],
            "Skipped": s["skipped"],
            "Errors": s["errors"],
            "Error": s["error"] or "",
        }
        for s in stats
    ]


def append_run_report(stats: List[SourceStats], sheet_id: str, worksheet: str = REPORT_WORKSHEET) -> int:
    """
    Append one row per source to the run report tab.
    - The tab must exist; its header row decides column order.
    - Returns number of rows appended.
    """
    rows = report_rows(stats)
    if not rows:
        return 0

    sh = _client().open_by_key(sheet_id)
    try:
        ws = sh.worksheet(worksheet)
    except gspread.WorksheetNotFound as e:
        raise RuntimeError(f"Worksheet {worksheet!r} not found.") from e

    headers = ws.row_values(1)
    if not headers:
        raise RuntimeError(f"Header row is empty in {worksheet!r} worksheet.")
    missing = sorted(set(REPORT_HEADERS) - set(headers))
    if missing:
        raise RuntimeError(f"{worksheet!r} is missing required header(s): {', '.join(missing)}")

    out = [[r.get(h, "") for h in headers] for r in rows]
    ws.append_rows(out, value_input_option="RAW")
    return len(out)
