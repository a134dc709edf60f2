"""HTTP transport shared by the source adapters."""
import logging
import time
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class PageFetcher:
    """Fetches pages and JSON documents with bounded waits and retries."""

    USER_AGENT = 'Mozilla/5.0 (compatible; DohaEventsBot/1.0)'
    HTML_ACCEPT = 'text/html,application/xhtml+xml'

    def __init__(
        self,
        timeout: int = 15,
        max_retries: int = 3,
        backoff_seconds: float = 1,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: HTTP request timeout in seconds
            max_retries: Attempts per request before giving up
            backoff_seconds: Base delay for exponential backoff
            session: Optional preconfigured requests session
        """
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff_seconds = backoff_seconds
        self.session = session or requests.Session()
        self.session.max_redirects = 1
        self.session.headers['User-Agent'] = self.USER_AGENT

    def fetch_page(self, url: str) -> str:
        """
        Fetch an HTML page as text.

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        response = self._get(url, headers={'Accept': self.HTML_ACCEPT})
        return response.text

    def fetch_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """
        Fetch and decode a JSON document.

        Raises:
            requests.RequestException: If all retry attempts fail
            ValueError: If the body is not valid JSON
        """
        request_headers = {'Accept': 'application/json'}
        request_headers.update(headers or {})
        response = self._get(url, params=params, headers=request_headers)
        return response.json()

    def _get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> requests.Response:
        for attempt in range(self.max_retries):
            try:
                logger.debug(
                    f"GET {url} (attempt {attempt + 1}/{self.max_retries})"
                )
                response = self.session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = self.backoff_seconds * (2 ** attempt)
                    logger.warning(
                        f"Request to {url} failed (attempt {attempt + 1}/"
                        f"{self.max_retries}): {e}. Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} attempts for {url} failed. "
                        f"Last error: {e}"
                    )
                    raise
