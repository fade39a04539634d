#!/usr/bin/env python3
"""
Schema Definitions
Centralized dataclasses and enums used across the Pathé Monitor system.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, StrEnum
from typing import Dict, List, Optional


# Date format used by the config file and the Pathé schedule endpoint
DATE_FORMAT = "%d-%m-%Y"

PATHE_BASE_URL = "https://pathe.nl"
PATHE_SCHEDULE_URL = "https://www.pathe.nl/cinema/schedules"


# Enums
class Cinema(Enum):
    """Supported Pathé cinemas, valued by their site id"""

    BUITENHOF = 7
    SPUIMARKT = 13
    DELFT = 18

    @property
    def display_name(self) -> str:
        return f"Pathé {self.name.capitalize()}"

    @classmethod
    def from_name(cls, name: str) -> "Cinema":
        """Look up a cinema by name, ignoring case"""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            known = ", ".join(c.name.capitalize() for c in cls)
            raise ValueError(f"Unknown cinema '{name}' (known: {known})")

    def __str__(self) -> str:
        return self.display_name


class Availability(StrEnum):
    """Outcome of a single availability check"""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


# Request-related dataclasses
@dataclass(frozen=True)
class MonitorRequest:
    """A (cinema, date, movie) combination to watch"""

    cinema: Cinema
    date: date
    movie: str

    @property
    def date_str(self) -> str:
        return self.date.strftime(DATE_FORMAT)

    @property
    def api_url(self) -> str:
        return (
            f"{PATHE_SCHEDULE_URL}?cinemaId={self.cinema.value}"
            f"&date={self.date_str}"
        )

    def __str__(self) -> str:
        return f"'{self.movie}' op {self.date_str} in {self.cinema}"


@dataclass(frozen=True)
class MonitorConfig:
    """Parsed contents of the config file"""

    requests: List[MonitorRequest]


# Scraper-related dataclasses
@dataclass(frozen=True)
class Showtime:
    """A single screening of a matched movie"""

    start: str
    end: str
    label: str
    link: str


@dataclass(frozen=True)
class MovieListing:
    """Schedule entry for the requested movie"""

    title: str
    url: str
    poster_url: str = ""
    showtimes: List[Showtime] = field(default_factory=list)


@dataclass(frozen=True)
class FetchResult:
    """Result of checking one request against the Pathé schedule"""

    request: MonitorRequest
    availability: Availability
    listing: Optional[MovieListing] = None
    reason: Optional[str] = None

    @classmethod
    def available(
        cls, request: MonitorRequest, listing: Optional[MovieListing] = None
    ) -> "FetchResult":
        return cls(request, Availability.AVAILABLE, listing=listing)

    @classmethod
    def unavailable(cls, request: MonitorRequest) -> "FetchResult":
        return cls(request, Availability.UNAVAILABLE)

    @classmethod
    def error(cls, request: MonitorRequest, reason: str) -> "FetchResult":
        return cls(request, Availability.ERROR, reason=reason)


# State-related dataclasses
@dataclass(frozen=True)
class AvailabilityState:
    """Last known availability of a request"""

    request: MonitorRequest
    last_known_available: bool = False


@dataclass(frozen=True)
class NotificationEvent:
    """Emitted when a request becomes available"""

    request: MonitorRequest
    timestamp: datetime
    listing: Optional[MovieListing] = None


# Notification-related dataclasses
@dataclass
class DiscordField:
    name: str
    value: str
    inline: Optional[bool] = True


@dataclass
class DiscordEmbed:
    title: str
    url: str
    fields: List[DiscordField]
    thumbnail_url: str
    footer: str
    description: Optional[str] = None

    def to_payload(self) -> Dict:
        payload = {
            "title": self.title,
            "url": self.url,
            "fields": [
                {"name": f.name, "value": f.value, "inline": f.inline}
                for f in self.fields
            ],
            "thumbnail": {"url": self.thumbnail_url},
            "footer": {"text": self.footer},
        }
        if self.description is not None:
            payload["description"] = self.description
        return payload


@dataclass
class DiscordNotification:
    """Webhook message body"""

    content: str
    embeds: List[DiscordEmbed] = field(default_factory=list)

    def to_payload(self) -> Dict:
        return {
            "content": self.content,
            "embeds": [embed.to_payload() for embed in self.embeds],
        }
