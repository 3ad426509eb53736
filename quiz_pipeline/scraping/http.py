"""
Outbound HTTP for adapters and scrapers.

Every request goes through one process-local RateLimiter. HTTP 429 answers
are retried with bounded exponential backoff (a numeric Retry-After header
wins) before RateLimited is raised; timeouts, connection errors and 5xx
answers are retried the same way before UpstreamFetchFailure is raised.
A 404 raises NotFound immediately so fallback chains can move on.
"""

import time
from typing import Any, Callable, Optional

import requests

from quiz_pipeline.config import PipelineConfig
from quiz_pipeline.errors import NotFound, RateLimited, UpstreamFetchFailure
from quiz_pipeline.logger import setup_logging


logger = setup_logging(logger_name="scraper")


class RateLimiter:
    """Interval-based limiter: at most `requests_per_second` calls to wait() return per second."""

    def __init__(
        self,
        requests_per_second: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        self.min_interval = 1.0 / requests_per_second
        self._clock = clock
        self._sleep = sleep
        self._last_request: Optional[float] = None

    def wait(self) -> float:
        """Block until the next request may go out. Returns the time slept."""
        waited = 0.0
        if self._last_request is not None:
            elapsed = self._clock() - self._last_request
            if elapsed < self.min_interval:
                waited = self.min_interval - elapsed
                self._sleep(waited)
        self._last_request = self._clock()
        return waited


def _retry_after(response: requests.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        # HTTP-date form is not supported; fall back to exponential backoff
        return None


class HttpClient:
    """
    Shared requests.Session with rate limiting, retries and error mapping.

    Usage:
        http = HttpClient(config)
        html = http.get_text("https://fangj.github.io/friends/season/0101.html")
        http.close()
    """

    def __init__(
        self,
        config: PipelineConfig,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[RateLimiter] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": config.user_agent})
        self.rate_limiter = rate_limiter or RateLimiter(config.requests_per_second)
        self._sleep = sleep

    def close(self) -> None:
        self.session.close()

    def _backoff(self, attempt: int) -> float:
        return min(self.config.backoff_base * 2**attempt, self.config.max_backoff)

    def get(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> requests.Response:
        """
        GET a URL.

        Raises:
            NotFound: 404
            RateLimited: still 429 after max_retries backoffs
            UpstreamFetchFailure: network errors/5xx after max_retries, another 4xx,
                or a request error that retrying cannot fix (redirect loop, invalid URL)
        """
        max_retries = self.config.max_retries
        failures: list[str] = []

        for attempt in range(max_retries + 1):
            self.rate_limiter.wait()
            try:
                response = self.session.get(
                    url, params=params, headers=headers, timeout=self.config.http_timeout
                )
            except (
                requests.ConnectionError,
                requests.Timeout,
                requests.exceptions.ChunkedEncodingError,
            ) as e:
                failures.append(f"{type(e).__name__}: {e}")
                logger.warning(f"Attempt {attempt + 1}/{max_retries + 1} failed for {url}: {e}")
                if attempt < max_retries:
                    self._sleep(self._backoff(attempt))
                    continue
                break
            except requests.RequestException as e:
                # Redirect loops, invalid URLs and decoding errors do not heal on retry
                raise UpstreamFetchFailure(
                    f"Request to {url} failed: {e}", attempts=failures + [f"{type(e).__name__}: {e}"]
                ) from e

            if response.status_code == 404:
                raise NotFound(f"{url} returned 404")

            if response.status_code == 429:
                if attempt >= max_retries:
                    logger.error(f"Giving up on {url} after {attempt} rate-limit retries")
                    raise RateLimited(url, retries=attempt)
                delay = _retry_after(response)
                delay = self._backoff(attempt) if delay is None else min(delay, self.config.max_backoff)
                logger.warning(f"Rate limited by {url}, waiting {delay:.1f}s before retry")
                self._sleep(delay)
                continue

            if response.status_code >= 500:
                failures.append(f"HTTP {response.status_code}")
                logger.warning(
                    f"Attempt {attempt + 1}/{max_retries + 1} for {url} got HTTP {response.status_code}"
                )
                if attempt < max_retries:
                    self._sleep(self._backoff(attempt))
                    continue
                break

            if response.status_code >= 400:
                raise UpstreamFetchFailure(
                    f"{url} returned HTTP {response.status_code}",
                    attempts=[f"HTTP {response.status_code}"],
                )

            return response

        raise UpstreamFetchFailure(
            f"Failed to fetch {url} after {len(failures)} attempts", attempts=failures
        )

    def get_text(self, url: str, **kwargs) -> str:
        return self.get(url, **kwargs).text

    def get_json(self, url: str, **kwargs) -> Any:
        response = self.get(url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamFetchFailure(f"{url} did not return JSON: {e}") from e
