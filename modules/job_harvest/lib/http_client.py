# job_harvest/http_client.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

LOG = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)

# Browser-like headers; several boards serve an empty shell to bare clients.
_BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,application/json;q=0.8,*/*;q=0.7",
    "Accept-Language": "en-US,en;q=0.9,uk;q=0.8",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}


class HttpClient:
    """Shared HTTP client with retry/backoff and browser-like defaults."""

    def __init__(
        self,
        timeout: float = 15.0,
        user_agent: str = DEFAULT_USER_AGENT,
        headers: Mapping[str, str] | None = None,
    ):
        self.timeout = float(timeout)
        self.session = requests.Session()
        self.session.headers.update(_BROWSER_HEADERS)
        self.session.headers.update({"User-Agent": user_agent})
        if headers:
            self.session.headers.update(dict(headers))

        retry = Retry(
            total=3,
            backoff_factor=0.5,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset(["GET", "HEAD"]),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=10, pool_maxsize=20)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def get(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        **kwargs: Any,  # e.g., allow_redirects=False, proxies=...
    ) -> requests.Response:
        """
        GET and return the raw response. Status is NOT checked here; the
        fetcher classifies it. Network errors raise requests.RequestException.
        """
        resp = self.session.get(url, params=params, headers=headers, timeout=timeout or self.timeout, **kwargs)
        if not resp.encoding and resp.apparent_encoding:
            resp.encoding = resp.apparent_encoding
        return resp

    def close(self) -> None:
        try:
            self.session.close()
        except requests.RequestException:
            LOG.debug("HttpClient.close() swallow", exc_info=True)
