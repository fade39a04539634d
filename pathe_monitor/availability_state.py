#!/usr/bin/env python3
"""
Availability State Tracker
Decides when a request should trigger a notification. Tickets that stay
available are only reported once; a new notification requires the movie to
disappear from the schedule first. State lives in memory only and starts
out as unavailable on every process start.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from .schema import (
    Availability,
    AvailabilityState,
    FetchResult,
    MonitorRequest,
    NotificationEvent,
)


logger = logging.getLogger(__name__)


def transition(
    state: AvailabilityState,
    result: FetchResult,
    now: Optional[datetime] = None,
) -> Tuple[AvailabilityState, Optional[NotificationEvent]]:
    """
    Compute the next state for a request from a fetch result

    Args:
        state: Current state of the request
        result: Outcome of the latest check
        now: Timestamp for a produced event (default: current local time)

    Returns:
        Tuple of (next_state, event)
        - Available after unavailable: (available, NotificationEvent)
        - Available after available: (available, None)
        - Unavailable: (unavailable, None)
        - Error: (state unchanged, None)
    """
    if result.availability == Availability.ERROR:
        return state, None

    if result.availability == Availability.UNAVAILABLE:
        if not state.last_known_available:
            return state, None
        return AvailabilityState(state.request, last_known_available=False), None

    if state.last_known_available:
        return state, None

    event = NotificationEvent(
        request=state.request,
        timestamp=now or datetime.now().astimezone(),
        listing=result.listing,
    )
    return AvailabilityState(state.request, last_known_available=True), event


class AvailabilityTracker:
    """Holds the availability state of every monitored request"""

    def __init__(self, requests: Iterable[MonitorRequest]):
        self._states: Dict[MonitorRequest, AvailabilityState] = {
            request: AvailabilityState(request) for request in requests
        }
        self._lock = threading.Lock()

    def get(self, request: MonitorRequest) -> AvailabilityState:
        return self._states[request]

    def states(self) -> List[AvailabilityState]:
        return list(self._states.values())

    def available_requests(self) -> List[MonitorRequest]:
        return [s.request for s in self._states.values() if s.last_known_available]

    def apply(
        self, result: FetchResult, now: Optional[datetime] = None
    ) -> Optional[NotificationEvent]:
        """
        Record a fetch result and return the event it produces, if any

        Raises:
            KeyError: If the request is not tracked
        """
        with self._lock:
            current = self._states[result.request]
            next_state, event = transition(current, result, now)
            self._states[result.request] = next_state

        if result.availability == Availability.ERROR:
            logger.debug(f"State unchanged for {result.request} after fetch error")
        elif current.last_known_available and not next_state.last_known_available:
            logger.info(f"Tickets no longer listed for {result.request}")
        elif event is None and next_state.last_known_available:
            logger.debug(f"Already notified for {result.request}, skipping")

        return event

    def __len__(self) -> int:
        return len(self._states)
