# src/sixfig/clients/http.py

"""
The one place that does HTTP GETs for the collectors.

- Every request has a timeout.
- Transport errors, 429 and 5xx are retried with jittered exponential
  backoff (0.5s doubling, capped at 4s), at most 4 attempts in total.
- Any other 4xx fails straight away: retrying a 404 will not fix it.
- When retries run out the last exception is re-raised; the batch runner
  turns that into "no data this cycle" for the source.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20.0
MAX_ATTEMPTS = 4


def _default_headers() -> Dict[str, str]:
    return {"User-Agent": "sixfig-ingest/0.1", "Accept": "application/json"}


def is_retryable(exc: BaseException) -> bool:
    """Transport failures, rate limits and server errors are worth another try."""
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        return code == 429 or code >= 500
    return isinstance(exc, httpx.TransportError)


@retry(
    wait=wait_exponential_jitter(initial=0.5, max=4),
    stop=stop_after_attempt(MAX_ATTEMPTS),
    retry=retry_if_exception(is_retryable),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
def get_json(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.BaseTransport] = None,
) -> Any:
    """
    One GET, decoded as JSON. `transport` lets tests plug in an
    `httpx.MockTransport`.
    """
    with httpx.Client(timeout=timeout, headers=_default_headers(), transport=transport) as client:
        resp = client.get(url, params=params)
        resp.raise_for_status()  # httpx.HTTPStatusError for 4xx/5xx
        return resp.json()
