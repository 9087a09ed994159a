import datetime as dt

import gspread
import httpx
import pandas as pd
import pytest

from sixfig.io import sheets
from sixfig.models import empty_stats


def http_error(status):
    request = httpx.Request("GET", "https://docs.google.com/x")
    return httpx.HTTPStatusError(str(status), request=request, response=httpx.Response(status, request=request))


def test_csv_export_url():
    assert sheets.csv_export_url("abc", 12) == "https://docs.google.com/spreadsheets/d/abc/export?format=csv&gid=12"


def test_read_currency_table_public_export(monkeypatch):
    seen = {}

    def fake_csv(url):
        seen["url"] = url
        return pd.DataFrame({"currency": ["USD", "EUR"], "min_annual": [110000, 85000]})

    monkeypatch.setattr(sheets, "_read_csv_via_httpx", fake_csv)
    policies = sheets.read_currency_table("sheet123", gid=5)

    assert seen["url"].endswith("gid=5")
    assert policies["USD"].min_annual == 110_000
    assert policies["EUR"].min_annual == 85_000


def test_private_sheet_falls_back_to_service_account(monkeypatch):
    def unauthorized(url):
        raise http_error(401)

    monkeypatch.setattr(sheets, "_read_csv_via_httpx", unauthorized)
    monkeypatch.setattr(
        sheets, "_read_df_with_gspread",
        lambda sheet_id, gid: pd.DataFrame([{"currency": "GBP", "min_annual": 80000}]),
    )
    assert sheets.read_currency_table("private")["GBP"].min_annual == 80_000


def test_other_http_errors_propagate(monkeypatch):
    def missing(url):
        raise http_error(404)

    monkeypatch.setattr(sheets, "_read_csv_via_httpx", missing)
    with pytest.raises(httpx.HTTPStatusError):
        sheets.read_currency_table("gone")


def test_report_rows():
    stats = empty_stats("ats:greenhouse/acme")
    stats.update(created=3, skipped=1)
    failed = empty_stats("board:adzuna/us/engineer")
    failed["error"] = "ConnectError: refused"

    rows = sheets.report_rows([stats, failed], run_at=dt.datetime(2026, 5, 1, 9, 30, tzinfo=dt.timezone.utc))

    assert rows[0] == {
        "Run At": "2026-05-01T09:30:00+00:00",
        "Source": "ats:greenhouse/acme",
        "Created": 3,
        "Updated": 0,
        "Skipped": 1,
        "Errors": 0,
        "Error": "",
    }
    assert rows[1]["Error"] == "ConnectError: refused"


class FakeWorksheet:
    def __init__(self, headers):
        self.headers = headers
        self.appended = []

    def row_values(self, n):
        return self.headers

    def append_rows(self, rows, value_input_option=None):
        self.appended.extend(rows)


class FakeSpreadsheet:
    def __init__(self, worksheets):
        self._worksheets = worksheets

    def worksheet(self, name):
        if name not in self._worksheets:
            raise gspread.WorksheetNotFound(name)
        return self._worksheets[name]


class FakeClient:
    def __init__(self, spreadsheet):
        self.spreadsheet = spreadsheet

    def open_by_key(self, key):
        return self.spreadsheet


def test_append_run_report_follows_header_order(monkeypatch):
    ws = FakeWorksheet(["Source", "Created", "Error", "Run At", "Updated", "Skipped", "Errors", "Notes"])
    monkeypatch.setattr(sheets, "_client", lambda: FakeClient(FakeSpreadsheet({"Runs": ws})))

    stats = empty_stats("ats:lever/acme")
    stats["created"] = 2
    assert sheets.append_run_report([stats], "sheet") == 1

    (row,) = ws.appended
    assert row[:3] == ["ats:lever/acme", 2, ""]
    assert row[-1] == ""


def test_append_run_report_validates_tab(monkeypatch):
    monkeypatch.setattr(sheets, "_client", lambda: FakeClient(FakeSpreadsheet({"Runs": FakeWorksheet(["Source"])})))
    with pytest.raises(RuntimeError, match="missing required header"):
        sheets.append_run_report([empty_stats("x")], "sheet")
    with pytest.raises(RuntimeError, match="not found"):
        sheets.append_run_report([empty_stats("x")], "sheet", worksheet="Nope")


def test_append_run_report_nothing_to_write():
    assert sheets.append_run_report([], "sheet") == 0
