"""
HTTP client shared by every source adapter, with:
- Exponential backoff retry logic
- Rate limiting to avoid 429 errors
- Session-based connection pooling
"""
import threading
import time
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from f1_dashboard.config import cfg
from f1_dashboard.utils.logger import logger

# Anything an adapter treats as "upstream unavailable or malformed".
# requests' JSONDecodeError is a ValueError subclass.
UPSTREAM_ERRORS = (requests.exceptions.RequestException, ValueError)


class HttpClient:
    """
    Blocking HTTP client for one upstream host.

    Adapters call it from worker threads, so the inter-request delay is
    guarded by a lock.
    """

    def __init__(
        self,
        base_url: str,
        timeout: int | None = None,
        rate_limit_delay: float | None = None,
        accept: str = "application/json",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or cfg.sources.timeout
        self.rate_limit_delay = cfg.sources.rate_limit_delay if rate_limit_delay is None else rate_limit_delay
        self._last_request_time: float = 0.0
        self._rate_lock = threading.Lock()

        self.session = requests.Session()
        retry_strategy = Retry(
            total=cfg.sources.max_retries,
            backoff_factor=cfg.sources.backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self.session.headers.update({
            "Accept": accept,
            "User-Agent": cfg.sources.user_agent,
        })

    def _rate_limit(self) -> None:
        """Enforce minimum delay between requests."""
        with self._rate_lock:
            elapsed = time.monotonic() - self._last_request_time
            wait = self.rate_limit_delay - elapsed
            if wait > 0:
                time.sleep(wait)
            self._last_request_time = time.monotonic()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> requests.Response:
        url = self.url_for(path)
        logger.debug(f"Fetching: {url} params={params or {}}")

        self._rate_limit()
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            logger.warning(f"HTTP error for {url}: {e}")
            raise
        except requests.exceptions.RequestException as e:
            logger.warning(f"Request failed for {url}: {e}")
            raise
        return response

    def get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        Fetch and decode a JSON document.

        Raises:
            requests.exceptions.RequestException: network failure or non-2xx status.
            ValueError: body is not valid JSON.
        """
        return self._get(path, params).json()

    def get_text(self, path: str, params: Optional[dict[str, Any]] = None) -> str:
        """Fetch a document body as text (HTML pages)."""
        response = self._get(path, params)
        if not response.encoding or response.encoding.lower() == "iso-8859-1":
            response.encoding = response.apparent_encoding or "utf-8"
        return response.text

    def close(self) -> None:
        self.session.close()
