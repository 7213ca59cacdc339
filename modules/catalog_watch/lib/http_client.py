from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

LOG = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "CatalogWatch/0.1 (+https://example.invalid)"


class HttpClient:
    """
    Thin requests.Session wrapper used to pull catalog pages.

    One attempt per request: retries are disabled at the adapter level.
    `timeout=None` leaves requests unbounded.
    """

    def __init__(
        self,
        timeout: float | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.timeout = float(timeout) if timeout else None
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

        adapter = HTTPAdapter(max_retries=Retry(total=0, redirect=5, raise_on_status=False))
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def get_text(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        encoding: str | None = None,
    ) -> str:
        """GET and return decoded text; raises requests.HTTPError on 4xx/5xx."""
        resp = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        resp.raise_for_status()
        if encoding:
            resp.encoding = encoding
        elif not resp.encoding and resp.apparent_encoding:
            resp.encoding = resp.apparent_encoding
        return resp.text

    def close(self) -> None:
        try:
            self.session.close()
        except Exception:
            LOG.debug("HttpClient.close() swallow", exc_info=True)

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
