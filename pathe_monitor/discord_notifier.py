#!/usr/bin/env python3
"""Discord Webhook Notifier for Pathé ticket availability"""

import json
import logging
from typing import List, Optional

import requests

from .config import DEFAULT_REQUEST_TIMEOUT_SECONDS
from .schema import (
    DiscordEmbed,
    DiscordField,
    DiscordNotification,
    MovieListing,
    NotificationEvent,
)

# Discord API constants
DISCORD_MESSAGE_CHAR_LIMIT = 2000
MESSAGE_TRUNCATION_SUFFIX = "... (message truncated)"
EMBED_COLUMNS = 3

FOOTER_TEXT = "Generated by *pathe-monitor*"
FILLER_FIELD_NAME = ":rooster:"
FILLER_FIELD_VALUE = ":popcorn:"


class NotifyError(Exception):
    """Webhook delivery failed"""


class DiscordNotifier:
    """Discord notification service using an incoming webhook"""

    def __init__(
        self,
        webhook_url: str,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.request_timeout = request_timeout
        self.session = session or requests.Session()
        self.logger = logging.getLogger(__name__)

    def send(self, event: NotificationEvent) -> bool:
        """
        Send a notification for a request that became available

        Delivery failures are logged and reported through the return value;
        they are never raised to the caller.

        Returns:
            True if the webhook accepted the message
        """
        notification = self.build_notification(event)
        try:
            self._post(notification)
        except NotifyError as e:
            self.logger.error(f"Error calling webhook for {event.request}: {e}")
            return False

        self.logger.info(f"Discord notification sent for {event.request}")
        return True

    def _post(self, notification: DiscordNotification) -> None:
        """
        POST a notification to the webhook

        Raises:
            NotifyError: On network errors or a non-2xx response
        """
        payload = notification.to_payload()
        self.logger.debug(
            f"Calling Discord webhook with payload:\n"
            f"{json.dumps(payload, indent=2, ensure_ascii=False)}"
        )

        try:
            response = self.session.post(
                self.webhook_url, json=payload, timeout=self.request_timeout
            )
        except requests.exceptions.RequestException as e:
            raise NotifyError(str(e))

        if not 200 <= response.status_code < 300:
            raise NotifyError(f"{response.status_code} - {response.text[:200]}")

    def build_notification(self, event: NotificationEvent) -> DiscordNotification:
        """Format a webhook message for a notification event"""
        request = event.request
        content = (
            f"Er zijn tickets beschikbaar voor '**{request.movie}**' "
            f"op **{request.date_str}** in **{request.cinema}**."
        )

        embeds = []
        if event.listing is not None:
            embeds.append(self._build_embed(request.movie, event.listing))

        return DiscordNotification(content=self._truncate(content), embeds=embeds)

    def _build_embed(self, movie: str, listing: MovieListing) -> DiscordEmbed:
        fields: List[DiscordField] = [
            DiscordField(
                name=showtime.label or "Voorstelling",
                value=f"[{showtime.start} - {showtime.end}]({showtime.link})",
                inline=True,
            )
            for showtime in listing.showtimes
        ]

        # Keep the last row of the inline grid aligned
        if len(fields) > EMBED_COLUMNS and len(fields) % EMBED_COLUMNS == 2:
            fields.append(
                DiscordField(name=FILLER_FIELD_NAME, value=FILLER_FIELD_VALUE, inline=True)
            )

        return DiscordEmbed(
            title=movie,
            url=f"{listing.url}#agenda",
            fields=fields,
            thumbnail_url=listing.poster_url,
            footer=FOOTER_TEXT,
        )

    def _truncate(self, message: str) -> str:
        if len(message) <= DISCORD_MESSAGE_CHAR_LIMIT:
            return message
        allowed = DISCORD_MESSAGE_CHAR_LIMIT - len(MESSAGE_TRUNCATION_SUFFIX) - 1
        return f"{message[:allowed]}\n{MESSAGE_TRUNCATION_SUFFIX}"

    def close(self):
        self.session.close()
