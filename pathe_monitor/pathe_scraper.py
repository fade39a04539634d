#!/usr/bin/env python3
"""
Pathé Schedule Scraper
Checks the Pathé cinema schedule for a requested movie on a given date.
Every failure mode is turned into a FetchResult so a bad response never
takes down the monitoring loop.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List, Optional

import requests
from requests.adapters import HTTPAdapter
from bs4 import BeautifulSoup, Tag

from .config import DEFAULT_MAX_WORKERS, DEFAULT_REQUEST_TIMEOUT_SECONDS
from .schema import (
    PATHE_BASE_URL,
    Availability,
    FetchResult,
    MonitorRequest,
    MovieListing,
    Showtime,
)


# CSS selectors for the schedule fragment
SCHEDULE_ITEM_SELECTOR = "div.schedule-simple__item"
TITLE_SELECTOR = "h4 a"
POSTER_SELECTOR = "div.schedule-simple__poster img"
SHOWTIME_SELECTOR = "a.schedule-time"
SHOWTIME_START_SELECTOR = "span.schedule-time__start"
SHOWTIME_END_SELECTOR = "span.schedule-time__end"
SHOWTIME_LABEL_SELECTOR = "span.schedule-time__label"


class FetchError(Exception):
    """Transient failure while checking a request"""


class PatheScraper:
    """
    Availability fetcher for the Pathé schedule endpoint with:
    - A shared HTTP session and a bounded request timeout
    - Case-insensitive title matching
    - Thread-safe statistics for parallel checks
    """

    def __init__(
        self,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self.request_timeout = request_timeout
        self.max_workers = max_workers
        self.session = session or requests.Session()
        # One pooled connection per worker thread
        adapter = HTTPAdapter(pool_connections=1, pool_maxsize=max_workers)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self.session.headers.update(
            {
                "User-Agent": (
                    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
                    "AppleWebKit/537.36"
                ),
                "Accept": "text/html",
                "X-Requested-With": "XMLHttpRequest",
            }
        )
        self.logger = logging.getLogger(__name__)
        self.stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "matches_found": 0,
        }
        self._stats_lock = threading.Lock()

    def _update_stats(self, **kwargs):
        """Thread-safe method to update statistics"""
        with self._stats_lock:
            for key, value in kwargs.items():
                if key in self.stats:
                    self.stats[key] += value

    def _fetch_schedule(self, request: MonitorRequest) -> str:
        """
        Download the schedule fragment for a request

        Raises:
            FetchError: On timeout, connection failure or a non-2xx status
        """
        url = request.api_url
        self.logger.debug(f"Fetching {url}")
        self._update_stats(total_requests=1)

        try:
            response = self.session.get(url, timeout=self.request_timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout:
            raise FetchError(f"timeout after {self.request_timeout}s calling {url}")
        except requests.exceptions.HTTPError as e:
            raise FetchError(f"HTTP {e.response.status_code} calling {url}")
        except requests.exceptions.RequestException as e:
            raise FetchError(f"error calling {url}: {e}")

        # Without a declared charset requests assumes ISO-8859-1; the site serves UTF-8
        if "charset" not in response.headers.get("Content-Type", "").lower():
            response.encoding = "utf-8"

        self._update_stats(successful_requests=1)
        return response.text

    @staticmethod
    def _text(element: Optional[Tag]) -> str:
        return element.get_text(strip=True) if element else ""

    @staticmethod
    def _absolute(path: Optional[str]) -> str:
        if not path:
            return ""
        if path.startswith("http"):
            return path
        return f"{PATHE_BASE_URL}{path}"

    def _parse_showtime(self, element: Tag) -> Showtime:
        return Showtime(
            start=self._text(element.select_one(SHOWTIME_START_SELECTOR)),
            end=self._text(element.select_one(SHOWTIME_END_SELECTOR)),
            label=self._text(element.select_one(SHOWTIME_LABEL_SELECTOR)),
            link=self._absolute(element.get("data-href")),
        )

    def _parse_listing(self, item: Tag, title_element: Tag) -> MovieListing:
        poster = item.select_one(POSTER_SELECTOR)
        showtimes = [
            self._parse_showtime(element)
            for element in item.select(SHOWTIME_SELECTOR)
        ]
        return MovieListing(
            title=self._text(title_element),
            url=self._absolute(title_element.get("href")),
            poster_url=poster.get("src", "") if poster else "",
            showtimes=showtimes,
        )

    def find_movie(self, html: str, movie: str) -> Optional[MovieListing]:
        """
        Search a schedule fragment for a movie title

        Args:
            html: Schedule HTML fragment
            movie: Title to look for (case-insensitive)

        Returns:
            MovieListing for the first matching item, or None
        """
        soup = BeautifulSoup(html, "html.parser")
        wanted = movie.strip().lower()

        items = soup.select(SCHEDULE_ITEM_SELECTOR)
        self.logger.debug(f"Found {len(items)} schedule items")

        for item in items:
            title_element = item.select_one(TITLE_SELECTOR)
            if title_element is None:
                continue
            if self._text(title_element).lower() == wanted:
                return self._parse_listing(item, title_element)

        return None

    def fetch(self, request: MonitorRequest) -> FetchResult:
        """
        Check whether tickets are listed for a request

        Returns:
            FetchResult that is available, unavailable or an error
        """
        self.logger.info(f"Processing {request}")

        try:
            html = self._fetch_schedule(request)
        except FetchError as e:
            self._update_stats(failed_requests=1)
            self.logger.warning(f"Fetch failed for {request}: {e}")
            return FetchResult.error(request, str(e))

        try:
            listing = self.find_movie(html, request.movie)
        except Exception as e:
            self.logger.error(f"Error parsing schedule for {request}: {e}", exc_info=True)
            return FetchResult.error(request, f"parsing error: {e}")

        if listing is None:
            self.logger.info(f"No tickets available for {request}")
            return FetchResult.unavailable(request)

        self._update_stats(matches_found=1)
        self.logger.info(
            f"Tickets available for {request} ({len(listing.showtimes)} showtimes)"
        )
        return FetchResult.available(request, listing)

    def fetch_all(
        self,
        monitor_requests: Iterable[MonitorRequest],
        max_workers: Optional[int] = None,
    ) -> Dict[MonitorRequest, FetchResult]:
        """
        Check all requests using a bounded thread pool

        Args:
            monitor_requests: Requests to check
            max_workers: Maximum number of concurrent fetches (default: pool size)

        Returns:
            Mapping of request to its FetchResult
        """
        if max_workers is None:
            max_workers = self.max_workers

        tasks: List[MonitorRequest] = list(monitor_requests)
        results: Dict[MonitorRequest, FetchResult] = {}
        if not tasks:
            return results

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_request = {
                executor.submit(self.fetch, request): request for request in tasks
            }

            for future in as_completed(future_to_request):
                request = future_to_request[future]
                try:
                    results[request] = future.result()
                except Exception as e:
                    self.logger.error(f"Error processing {request}: {e}", exc_info=True)
                    results[request] = FetchResult.error(
                        request, f"execution error: {e}"
                    )

        return results

    def log_stats(self, results: Dict[MonitorRequest, FetchResult]):
        """Log statistics for one round of checks"""
        counts = {availability: 0 for availability in Availability}
        for result in results.values():
            counts[result.availability] += 1

        self.logger.info(
            f"Checked {len(results)} requests: "
            f"{counts[Availability.AVAILABLE]} available, "
            f"{counts[Availability.UNAVAILABLE]} unavailable, "
            f"{counts[Availability.ERROR]} errors"
        )
        self.logger.debug(
            f"Totals: {self.stats['total_requests']} requests, "
            f"{self.stats['failed_requests']} failed, "
            f"{self.stats['matches_found']} matches"
        )

    def close(self):
        self.session.close()
