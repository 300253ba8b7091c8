"""
Hiring page monitor.

Default worker: polls the target hiring page, extracts job titles and
reports the ones that match a target position through the log sink.
"""
import asyncio
import logging
from typing import Callable, Iterable, List, Optional, Set

import httpx
from bs4 import BeautifulSoup

from jobs_monitor.domain.entities import MonitorConfig
from jobs_monitor.domain.ports import LogSink
from jobs_monitor.infrastructure.resilience import (
    ExponentialBackoff,
    RetryExhaustedError,
    RetryPolicy,
)

logger = logging.getLogger(__name__)


# Ordered from most to least specific
JOB_TITLE_SELECTORS = (
    "[data-test-id='jobCard'] h2",
    "[data-test-id*='jobCard'] h2",
    "[class*='jobCard'] h2",
    "[class*='job-title']",
    "[class*='jobTitle']",
    "h2",
    "h3",
)


def extract_job_titles(html: str) -> List[str]:
    """
    Extract job titles from a hiring page.

    Uses the first selector that yields any text; titles are
    whitespace-normalized and deduplicated in page order.
    """
    soup = BeautifulSoup(html, "html.parser")

    for selector in JOB_TITLE_SELECTORS:
        titles = []
        seen = set()
        for element in soup.select(selector):
            text = " ".join(element.get_text(" ", strip=True).split())
            if text and text not in seen:
                seen.add(text)
                titles.append(text)
        if titles:
            return titles

    return []


def match_positions(titles: Iterable[str], positions: Iterable[str]) -> List[str]:
    """Titles containing any target position, case-insensitive."""
    needles = [position.lower() for position in positions if position]
    return [
        title for title in titles
        if any(needle in title.lower() for needle in needles)
    ]


class HiringPageMonitor:
    """
    Worker that watches a hiring page for target positions.

    Runs inside the backend's event loop. start() returns only after
    stop() is called; stop() returns immediately.
    """

    DEFAULT_HEADERS = {
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/120.0.0.0 Safari/537.36"
        ),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }

    def __init__(
        self,
        request_timeout: float = 30.0,
        retry_policy: Optional[RetryPolicy] = None,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        """
        Initialize the monitor.

        Args:
            request_timeout: Page request timeout in seconds
            retry_policy: Retry policy for transient fetch errors
            client_factory: Builds the HTTP client for a run (for testing)
        """
        self._request_timeout = request_timeout
        self._retry_policy = retry_policy or RetryPolicy(
            max_attempts=3,
            backoff=ExponentialBackoff(base_delay=2.0, max_delay=10.0),
            retryable_exceptions={httpx.TransportError},
        )
        self._client_factory = client_factory or self._default_client
        self._running = False
        self._run_id = 0
        self._stop_event: Optional[asyncio.Event] = None
        self._reported: Set[str] = set()

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._request_timeout,
            headers=self.DEFAULT_HEADERS,
            follow_redirects=True,
        )

    def is_running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Signal the polling loop to exit."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

    async def start(self, config: MonitorConfig, log_sink: LogSink) -> None:
        """
        Poll config.target_url until stopped.

        Args:
            config: Monitoring configuration
            log_sink: Receives human-readable progress lines
        """
        if self._running:
            raise RuntimeError("Job monitor is already running")

        self._run_id += 1
        run_id = self._run_id
        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._running = True
        self._reported = set()

        log_sink(f"👤 Using profiles: {', '.join(config.profile_selectors) or 'default'}")
        log_sink(
            f"⏱️ Checking {config.target_url} every "
            f"{config.refresh_interval_seconds:g}s"
        )

        check = 0
        try:
            async with self._client_factory() as client:
                while not stop_event.is_set():
                    check += 1
                    await self._check_once(client, config, log_sink, check)
                    if await self._wait_for_stop(stop_event, config.refresh_interval_seconds):
                        break
        finally:
            # A newer run may already own the flag
            if self._run_id == run_id:
                self._running = False
            log_sink(f"Job monitor stopped after {check} checks")

    async def _wait_for_stop(self, stop_event: asyncio.Event, timeout: float) -> bool:
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> str:
        response = await client.get(url)
        response.raise_for_status()
        return response.text

    async def _check_once(
        self,
        client: httpx.AsyncClient,
        config: MonitorConfig,
        log_sink: LogSink,
        check: int,
    ) -> List[str]:
        """Fetch the page once and report new matches."""
        try:
            html = await self._retry_policy.execute(self._fetch, client, config.target_url)
        except RetryExhaustedError as e:
            log_sink(f"⚠️ Could not load job page (check #{check}): {e.last_exception}")
            return []
        except httpx.HTTPStatusError as e:
            log_sink(f"⚠️ Job page returned HTTP {e.response.status_code} (check #{check})")
            return []

        titles = extract_job_titles(html)
        matches = match_positions(titles, config.target_positions)
        new_matches = [title for title in matches if title not in self._reported]

        for title in new_matches:
            self._reported.add(title)
            log_sink(f"🎯 Found matching position: {title}")

        if not new_matches:
            log_sink(
                f"🔄 Check #{check}: {len(titles)} listings, no new matching positions"
            )

        logger.debug("Check %d: %d titles, %d matches", check, len(titles), len(matches))
        return new_matches
