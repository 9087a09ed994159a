# src/sixfig/cli.py
"""
Command-line interface for the ingestion pipeline.

This module provides CLI commands to:
- Run a batch over ATS boards and job boards and report per-source stats
- Try the salary extractor / validator on a piece of text
- Inspect role normalization and dedupe keys
- Preview the effective currency threshold table
"""

from dotenv import load_dotenv
load_dotenv(override=True)  # automatically looks for a .env file in the project root

import json
import logging
import os
import signal
import threading
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

import pandas as pd
import typer

from sixfig.clients.greenhouse import extract_board_slug
from sixfig.clients.lever import extract_company_slug
from sixfig.config import IngestConfig, config_from_env, load_currency_table
from sixfig.io.sheets import append_run_report, read_currency_table
from sixfig.io.store import MemoryStore
from sixfig.pipeline.dedupe import make_dedupe_key
from sixfig.pipeline.extract import parse_salary_text
from sixfig.pipeline.resolve import IngestionResolver
from sixfig.pipeline.role import normalize_role
from sixfig.pipeline.run import SourceSpec, adzuna_source, greenhouse_source, lever_source, run_sources
from sixfig.pipeline.salary import format_salary_range, normalize_salary, validate_salary

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "id", "company_name", "title", "source", "source_priority", "location_text",
    "min_annual", "max_annual", "currency", "salary_source", "salary_reason",
    "salary_confidence", "is_published", "needs_review", "role_slug", "seniority",
    "url", "dedupe_key",
]

# Typer app instance for CLI commands
app = typer.Typer(help="Six-figure job ingestion")


def _env_list(name: str) -> List[str]:
    return [v.strip() for v in os.getenv(name, "").split(",") if v.strip()]


def _load_config(thresholds_csv: Optional[Path], thresholds_gid: Optional[int]) -> IngestConfig:
    config = config_from_env()
    if thresholds_csv:
        config = config.with_currency_policies(load_currency_table(thresholds_csv))
    if thresholds_gid is not None:
        sheet_id = os.getenv("SIXFIG_SHEET_ID", "")
        if not sheet_id:
            raise SystemExit("Set SIXFIG_SHEET_ID to read thresholds from Google Sheets.")
        config = config.with_currency_policies(read_currency_table(sheet_id, thresholds_gid))
    return config


def _dump(obj) -> str:
    return json.dumps(obj, indent=2, default=str)


@app.command()
def run(
    mode: str = typer.Option("all", "--mode", help="all | ats | boards"),
    greenhouse: List[str] = typer.Option([], "--greenhouse", help="Greenhouse board slug or URL (repeatable)"),
    lever: List[str] = typer.Option([], "--lever", help="Lever company slug or URL (repeatable)"),
    query: List[str] = typer.Option([], "--query", help="Adzuna search phrase (repeatable)"),
    country: str = typer.Option("us", "--country", help="Adzuna country endpoint"),
    pages: int = typer.Option(1, "--pages", help="Adzuna pages per query"),
    workers: int = typer.Option(4, "--workers", help="Sources fetched in parallel"),
    thresholds_csv: Optional[Path] = typer.Option(None, "--thresholds-csv", help="Currency threshold table (CSV)"),
    thresholds_gid: Optional[int] = typer.Option(None, "--thresholds-gid", help="Read thresholds from this tab of SIXFIG_SHEET_ID"),
    export: Optional[Path] = typer.Option(None, "--export", help="Write resolved jobs to this CSV"),
    report_sheet: bool = typer.Option(False, "--report-sheet", help="Append per-source stats to the 'Runs' tab"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """
    Fetch sources -> extract/validate salaries -> dedupe and resolve -> print per-source stats.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = _load_config(thresholds_csv, thresholds_gid)

    sources: List[SourceSpec] = []
    for value in list(greenhouse) + _env_list("SIXFIG_GREENHOUSE_BOARDS"):
        board = extract_board_slug(value)
        if board:
            sources.append(greenhouse_source(board))
        else:
            typer.echo(f"Ignoring unrecognised Greenhouse board {value!r}", err=True)
    for value in list(lever) + _env_list("SIXFIG_LEVER_COMPANIES"):
        company = extract_company_slug(value)
        if company:
            sources.append(lever_source(company))
        else:
            typer.echo(f"Ignoring unrecognised Lever company {value!r}", err=True)
    if query:
        app_id = os.getenv("ADZUNA_APP_ID", "")
        app_key = os.getenv("ADZUNA_APP_KEY", "")
        if not app_id or not app_key:
            raise SystemExit("Set ADZUNA_APP_ID and ADZUNA_APP_KEY env vars (in .env).")
        for q in query:
            sources.append(adzuna_source(app_id, app_key, q, country=country, max_pages=pages))

    if not sources:
        raise SystemExit("No sources: pass --greenhouse/--lever/--query or set SIXFIG_GREENHOUSE_BOARDS.")

    store = MemoryStore()
    resolver = IngestionResolver(store, config)

    # Ctrl-C stops new fetches and records; in-flight writes finish
    cancel = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: cancel.set())

    typer.echo(f"Running {len(sources)} source(s) in mode {mode!r}...")
    try:
        stats = run_sources(sources, resolver, mode=mode, max_workers=workers, cancel=cancel)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--mode")

    if export:
        df = pd.DataFrame(store.list_jobs())
        df = df.reindex(columns=EXPORT_COLUMNS)
        df.to_csv(export, index=False)
        typer.echo(f"Wrote {len(df)} jobs to {export}")

    if report_sheet:
        sheet_id = os.getenv("SIXFIG_SHEET_ID", "")
        if not sheet_id:
            raise SystemExit("Set SIXFIG_SHEET_ID to write the run report.")
        appended = append_run_report(stats, sheet_id)
        typer.echo(f"Appended {appended} report row(s).")

    typer.echo(_dump({"cancelled": cancel.is_set(), "sources": stats}))


@app.command()
def parse_salary(
    text: str,
    location: Optional[str] = typer.Option(None, "--location"),
    country: Optional[str] = typer.Option(None, "--country"),
    source: str = typer.Option("descriptionText", "--source", help="ats | salaryRaw | descriptionText"),
    title: Optional[str] = typer.Option(None, "--title"),
    thresholds_csv: Optional[Path] = typer.Option(None, "--thresholds-csv"),
):
    """
    Debug: run extractor + normalizer + validator over TEXT and print the result.
    """
    config = _load_config(thresholds_csv, None)
    candidate = parse_salary_text(text, location_text=location, country_code=country)
    if candidate is None:
        typer.echo(_dump({"candidate": None}))
        return

    normalized = normalize_salary(
        candidate["min"], candidate["max"], candidate["currency"], candidate["interval"], config
    )
    validation = validate_salary(
        normalized,
        source,  # type: ignore[arg-type]
        currency_explicit=candidate["currency_explicit"],
        title=title,
        config=config,
    )
    typer.echo(_dump({
        "candidate": candidate,
        "normalized": normalized,
        "validation": validation,
        "display": format_salary_range(normalized["min_annual"], normalized["max_annual"], normalized["currency"]),
    }))


@app.command()
def role(title: str):
    """Show seniority / discipline / canonical slug for a job title."""
    typer.echo(_dump(normalize_role(title)))


@app.command()
def dedupe_key(company_id: str, title: str, location: Optional[str] = typer.Argument(None)):
    """Show the dedupe key a job would get."""
    typer.echo(make_dedupe_key(company_id, title, location))


@app.command()
def thresholds_preview(
    thresholds_csv: Optional[Path] = typer.Option(None, "--thresholds-csv"),
    thresholds_gid: Optional[int] = typer.Option(None, "--thresholds-gid"),
):
    """
    Quick check: show the effective per-currency table after env/CSV/Sheet overrides.
    """
    config = _load_config(thresholds_csv, thresholds_gid)
    df = pd.DataFrame([asdict(p) for p in config.currency_policies.values()])
    typer.echo(df.sort_values("currency").to_string(index=False))
    typer.echo(f"\nmin_confidence={config.min_confidence}")


if __name__ == "__main__":
    app()
