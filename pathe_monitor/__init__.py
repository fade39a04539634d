"""
Pathé Monitor Package

Watches the Pathé cinema schedule for requested movies and sends a Discord
webhook notification when tickets become available.

This package contains four main modules:
- pathe_scraper: Checks the Pathé schedule for a (cinema, date, movie) request
- availability_state: Tracks availability and decides when to notify
- discord_notifier: Sends Discord webhook notifications
- monitor: Runs the check cycle on a fixed interval
"""

__version__ = "1.0.0"
__author__ = "Pathé Monitor"
