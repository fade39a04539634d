#!/usr/bin/env python3
"""
Pathé Monitor
Runs the check cycle: Fetch → Compare → Notify, once or on a fixed interval.
"""

import logging
import signal
import threading
import time
from datetime import datetime
from typing import Dict, Optional

import schedule

from .availability_state import AvailabilityTracker
from .config import Settings
from .discord_notifier import DiscordNotifier
from .pathe_scraper import PatheScraper
from .schema import Availability, MonitorConfig

# Display constants
LOG_SEPARATOR_WIDTH = 60

# Seconds between checks for pending jobs and shutdown
LOOP_TICK_SECONDS = 1


class PatheMonitor:
    """Orchestrates availability checks and notifications"""

    def __init__(
        self,
        config: MonitorConfig,
        settings: Settings,
        fetcher: Optional[PatheScraper] = None,
        notifier: Optional[DiscordNotifier] = None,
    ):
        """
        Initialize the monitor

        Args:
            config: Monitor requests to check
            settings: Runtime settings
            fetcher: Availability fetcher (default: PatheScraper)
            notifier: Webhook notifier (default: DiscordNotifier)
        """
        self.config = config
        self.settings = settings
        self.fetcher = fetcher or PatheScraper(
            request_timeout=settings.request_timeout,
            max_workers=settings.max_workers,
        )
        self.notifier = notifier or DiscordNotifier(
            settings.webhook_url, request_timeout=settings.request_timeout
        )
        self.tracker = AvailabilityTracker(config.requests)
        self.logger = logging.getLogger(__name__)

        self.run_count = 0
        self._shutdown = threading.Event()
        self._cycle_lock = threading.Lock()

    def run_cycle(self) -> Dict[str, int]:
        """
        Check every request once and notify on newly available tickets

        Returns:
            Dictionary with cycle statistics
        """
        stats = {
            "checked": 0,
            "available": 0,
            "unavailable": 0,
            "errors": 0,
            "notified": 0,
            "notify_failed": 0,
        }

        # Overlapping cycles would race on the tracker
        with self._cycle_lock:
            self.run_count += 1
            start_time = time.monotonic()
            self.logger.info(
                f"Processing {len(self.config.requests)} movie requests "
                f"(run #{self.run_count})"
            )

            results = self.fetcher.fetch_all(
                self.config.requests, max_workers=self.settings.max_workers
            )

            # Apply in config order so state updates and notifications stay sequential
            for request in self.config.requests:
                result = results.get(request)
                if result is None:
                    continue

                stats["checked"] += 1
                if result.availability == Availability.AVAILABLE:
                    stats["available"] += 1
                elif result.availability == Availability.UNAVAILABLE:
                    stats["unavailable"] += 1
                else:
                    stats["errors"] += 1
                    self.logger.error(
                        f"Something went wrong processing {request}: {result.reason}"
                    )

                event = self.tracker.apply(
                    result, now=datetime.now(self.settings.tz)
                )
                if event is None:
                    continue

                self.logger.info(f"🎟️  Tickets became available for {request}")
                if self.notifier.send(event):
                    stats["notified"] += 1
                else:
                    stats["notify_failed"] += 1

            self.fetcher.log_stats(results)
            elapsed = time.monotonic() - start_time
            self.logger.info(
                f"Cycle finished in {elapsed:.1f}s: {stats['notified']} notified, "
                f"{stats['notify_failed']} failed notifications"
            )

        return stats

    def log_overview(self):
        """Log which requests are being monitored"""
        available = set(self.tracker.available_requests())
        self.logger.info("=" * LOG_SEPARATOR_WIDTH)
        self.logger.info(f"Monitoring {len(self.tracker)} movie requests")
        for state in self.tracker.states():
            marker = "✅" if state.request in available else "⏳"
            self.logger.info(f"  {marker} {state.request}")
        self.logger.info("=" * LOG_SEPARATOR_WIDTH)

    def _run_job(self):
        """Scheduled job wrapper; a failing cycle must not stop the loop"""
        try:
            self.run_cycle()
        except Exception as e:
            self.logger.error(f"❌ Cycle failed: {e}", exc_info=True)

    def request_shutdown(self, *_):
        """Stop the server loop after the current cycle"""
        if not self._shutdown.is_set():
            self.logger.info("🛑 Shutdown signal received, stopping after current run...")
        self._shutdown.set()

    def run_server_mode(self, install_signal_handlers: bool = True):
        """
        Run checks on a fixed interval until shutdown is requested

        Cycles run on this thread via the schedule library, so a slow cycle
        postpones the next run instead of overlapping it.
        """
        interval_minutes = self.settings.interval_minutes

        if install_signal_handlers:
            signal.signal(signal.SIGINT, self.request_shutdown)
            signal.signal(signal.SIGTERM, self.request_shutdown)

        scheduler = schedule.Scheduler()
        scheduler.every(interval_minutes).minutes.do(self._run_job)
        scheduler.every().day.do(self.log_overview)

        self.logger.info("=" * LOG_SEPARATOR_WIDTH)
        self.logger.info("🚀 PATHÉ MONITOR - SERVER MODE")
        self.logger.info("=" * LOG_SEPARATOR_WIDTH)
        self.logger.info(f"⏰ Interval: Every {interval_minutes} minutes")
        self.logger.info(
            f"🕒 Time in container is: {datetime.now(self.settings.tz).isoformat()}"
        )
        self.logger.info("🔌 Press Ctrl+C to stop gracefully")
        self.logger.info("=" * LOG_SEPARATOR_WIDTH)

        self.log_overview()

        # Run immediately on startup
        self._run_job()

        while not self._shutdown.is_set():
            scheduler.run_pending()
            self._shutdown.wait(LOOP_TICK_SECONDS)

        scheduler.clear()
        self.logger.info("👋 Monitor shutting down gracefully")
        self.logger.info(f"📊 Total runs completed: {self.run_count}")

    def close(self):
        self.fetcher.close()
        self.notifier.close()
