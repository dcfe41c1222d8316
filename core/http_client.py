import logging
import httpx
from typing import Mapping, Optional
from fake_useragent import UserAgent
from tenacity import AsyncRetrying, stop_after_attempt, stop_after_delay, wait_exponential, retry_if_exception_type

from core.exceptions import FetchError
from core.fetchers import DEFAULT_HEADERS, FetchStrategy

logger = logging.getLogger(__name__)


class HTTPClient(FetchStrategy):
    """Direct fetch strategy: a plain HTTP GET."""

    def __init__(
        self,
        timeout: float = 20.0,
        max_attempts: int = 3,
        client: Optional[httpx.AsyncClient] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.wait = wait_exponential(multiplier=1, min=2, max=10)
        self.ua = UserAgent()
        self.client = client or httpx.AsyncClient(http2=False, follow_redirects=True)
        self.log = log or logger

    def _get_headers(self, overrides: Optional[Mapping[str, str]] = None):
        headers = {"User-Agent": self.ua.random}
        headers.update(DEFAULT_HEADERS)
        if overrides:
            headers.update(overrides)
        return headers

    async def _get(self, url: str, headers, timeout: float) -> httpx.Response:
        # Only transport problems are retried; an HTTP error status is an answer.
        # No new attempt starts once `timeout` has elapsed, so a fetch gives up
        # within roughly two timeouts plus one back-off.
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts) | stop_after_delay(timeout),
            wait=self.wait,
            retry=retry_if_exception_type((httpx.RequestError, httpx.TimeoutException)),
            reraise=True,
        ):
            with attempt:
                return await self.client.get(url, headers=headers, timeout=timeout)

    async def fetch(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        wait_for_selector: Optional[str] = None,
    ) -> str:
        """
        GET the URL and return the body text.
        2xx and 3xx responses are successes; anything else raises FetchError.
        """
        timeout = timeout or self.timeout
        try:
            response = await self._get(url, self._get_headers(headers), timeout)
        except httpx.TimeoutException as e:
            self.log.warning(f"Timeout fetching {url}: {e}")
            raise FetchError(f"Timeout after {timeout}s", url) from e
        except httpx.RequestError as e:
            self.log.warning(f"Request error fetching {url}: {e}")
            raise FetchError(f"Request error: {e}", url) from e

        if response.history:
            self.log.warning(
                f"Redirected from {url} to {response.url}. Consider updating the configured URL."
            )
        elif 300 <= response.status_code < 400:
            location = response.headers.get("location")
            self.log.warning(f"Redirect {response.status_code} from {url} to {location} was not followed")

        if response.status_code >= 400:
            self.log.info(f"HTTP {response.status_code} for {url}")
            raise FetchError(f"HTTP error {response.status_code}", url, status_code=response.status_code)

        text = response.text
        if not text or not text.strip():
            raise FetchError("Empty response body", url, status_code=response.status_code)

        self.log.info(f"Successfully fetched {url}")
        return text

    async def close(self):
        await self.client.aclose()
