# src/sixfig/clients/adzuna.py

"""
Plain-function client for Adzuna's Jobs API (a standard board source).

All HTTP details (URLs, timeouts, retries) live in `sixfig.clients.http`;
this module only knows Adzuna's URL scheme and query parameters and
returns raw JSON. Normalization happens in `sixfig.pipeline.normalize`.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Generator, Optional

import httpx

from sixfig.clients.http import get_json

logger = logging.getLogger(__name__)


def _base_url(country: str, page: int) -> str:
    """Adzuna paginates with integer pages: /search/1, /search/2, ..."""
    return f"https://api.adzuna.com/v1/api/jobs/{country}/search/{page}"


def adzuna_search(
    app_id: str,
    app_key: str,
    query: str,
    *,
    country: str = "us",
    page: int = 1,
    results_per_page: int = 50,
    salary_min: Optional[int] = None,
    where: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Dict[str, Any]:
    """
    Fetch ONE page of search results and return the raw JSON
    (keys like "count", "results", ...).
    """
    params: Dict[str, str] = {
        "app_id": app_id,
        "app_key": app_key,
        "what": query,
        "results_per_page": str(results_per_page),
        "content-type": "application/json",
    }
    if salary_min:
        params["salary_min"] = str(salary_min)
    if where:
        params["where"] = where
    return get_json(_base_url(country, page), params, transport=transport)


def adzuna_iter_search(
    app_id: str,
    app_key: str,
    query: str,
    *,
    country: str = "us",
    max_pages: int = 1,
    results_per_page: int = 50,
    salary_min: Optional[int] = None,
    cancel: Optional[threading.Event] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Generator[Dict[str, Any], None, None]:
    """
    Yield each page's raw JSON. Stops early on an empty page or when
    `cancel` is set (checked before every request).
    """
    for page in range(1, max_pages + 1):
        if cancel is not None and cancel.is_set():
            logger.info("adzuna: cancelled before page %d", page)
            return
        data = adzuna_search(
            app_id,
            app_key,
            query,
            country=country,
            page=page,
            results_per_page=results_per_page,
            salary_min=salary_min,
            transport=transport,
        )
        yield data
        if not data.get("results"):
            break
