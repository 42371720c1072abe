from __future__ import annotations

from typing import Dict, Iterable, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

RETRY_STATUSES = (429, 500, 502, 503, 504)


def build_session(
    retries: int = 3,
    backoff_factor: float = 0.5,
    allowed_methods: Iterable[str] = ("GET", "POST"),
    headers: Optional[Dict[str, str]] = None,
) -> requests.Session:
    """requests.Session that retries transient failures with exponential backoff."""
    session = requests.Session()
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        backoff_factor=backoff_factor,
        status_forcelist=list(RETRY_STATUSES),
        allowed_methods=list(allowed_methods),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"User-Agent": "wallet-swap-tracker/0.1"})
    if headers:
        session.headers.update(headers)
    return session
