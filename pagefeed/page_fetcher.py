"""
HTML page fetcher with timeout and error classification.
"""
import logging
import requests
from typing import Optional, Union

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Base exception for page fetch failures."""

    def __init__(self, message: str, url: str = None):
        super().__init__(message)
        self.url = url


class FetchTimeoutError(FetchError):
    """Raised when no response arrives before the timeout elapses."""
    pass


class HTTPStatusError(FetchError):
    """Raised when the server answers with a non-success status."""

    def __init__(self, message: str, url: str = None, status_code: int = None):
        super().__init__(message, url)
        self.status_code = status_code


class PageFetcher:
    """
    Fetches the raw markup of one page.

    Features:
    - Per-call timeout (milliseconds) and User-Agent override
    - Timeout, HTTP status and network failures mapped to FetchError types
    - No retries: the next scheduled run resumes from the stored cursor
    """

    DEFAULT_USER_AGENT = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/114.0.000.0 Safari/537.36"
    )
    DEFAULT_TIMEOUT_MS = 10000

    def __init__(self, timeout_ms: int = DEFAULT_TIMEOUT_MS, user_agent: Optional[str] = None):
        """
        Initialize page fetcher.

        Args:
            timeout_ms: Default request timeout in milliseconds
            user_agent: Default User-Agent string
        """
        self.timeout_ms = timeout_ms
        self.user_agent = user_agent or self.DEFAULT_USER_AGENT
        self.session = requests.Session()

    def fetch(self, url: str, user_agent: Optional[str] = None, timeout_ms: Optional[int] = None) -> Union[str, bytes]:
        """
        Fetch one page.

        Args:
            url: Page URL
            user_agent: Per-source User-Agent override
            timeout_ms: Per-source timeout override in milliseconds

        Returns:
            Response body: text when the server declares a charset, otherwise
            raw bytes so the parser can detect the encoding from the markup

        Raises:
            ValueError: If URL is empty
            FetchTimeoutError: If the request times out
            HTTPStatusError: If the response status is not 2xx
            FetchError: For any other network failure
        """
        if not url:
            raise ValueError("URL cannot be empty")

        timeout_ms = timeout_ms or self.timeout_ms
        headers = {"User-Agent": user_agent or self.user_agent}

        logger.info(f"Fetching page {url}")
        try:
            response = self.session.get(url, timeout=timeout_ms / 1000, headers=headers)
        except requests.Timeout as e:
            logger.error(f"Timed out after {timeout_ms} ms fetching {url}")
            raise FetchTimeoutError(f"Timed out after {timeout_ms} ms: {e}", url=url) from e
        except requests.RequestException as e:
            logger.error(f"Error fetching {url}: {e}")
            raise FetchError(f"Request failed: {e}", url=url) from e

        if not response.ok:
            logger.error(f"HTTP error {response.status_code} fetching {url}")
            raise HTTPStatusError(
                f"HTTP error! Status: {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        if "charset" in response.headers.get("Content-Type", "").lower():
            return response.text
        return response.content
