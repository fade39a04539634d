#!/usr/bin/env python3
"""
Configuration Loading
Reads monitor requests from the JSON config file and runtime settings from
the environment (optionally seeded from a .env file).
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .schema import DATE_FORMAT, Cinema, MonitorConfig, MonitorRequest


# Path constants
DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_ENV_PATH = ".env"

# Setting defaults
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_TIMEZONE = "Europe/Amsterdam"
DEFAULT_INTERVAL_MINUTES = 30
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_WORKERS = 4

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Fatal configuration problem detected at startup"""


@dataclass(frozen=True)
class Settings:
    """Runtime settings taken from the environment"""

    webhook_url: str
    log_level: str = DEFAULT_LOG_LEVEL
    timezone: str = DEFAULT_TIMEZONE
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    max_workers: int = DEFAULT_MAX_WORKERS

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_env_file(path: str = DEFAULT_ENV_PATH) -> None:
    """Load variables from a .env file without overriding the real environment"""
    env_file = Path(path)
    if not env_file.exists():
        logger.debug(f"No env file at {env_file}, using system environment")
        return

    with open(env_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, value = line.split("=", 1)
                value = value.strip().strip("\"'")
                os.environ.setdefault(key.strip(), value)
    logger.debug(f"Loaded environment from {env_file}")


def _positive_number(environ: Mapping[str, str], name: str, default, cast):
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got '{raw}'")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got '{raw}'")
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from environment variables

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        Validated Settings

    Raises:
        ConfigError: If DISCORD_WEBHOOK_URL is missing or a value is invalid
    """
    if environ is None:
        environ = os.environ

    webhook_url = environ.get("DISCORD_WEBHOOK_URL", "").strip()
    if not webhook_url:
        raise ConfigError("Missing DISCORD_WEBHOOK_URL environment variable")

    log_level = (environ.get("LOG_LEVEL", "").strip() or DEFAULT_LOG_LEVEL).upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid LOG_LEVEL '{log_level}' (expected one of {', '.join(VALID_LOG_LEVELS)})"
        )

    timezone = environ.get("TIMEZONE", DEFAULT_TIMEZONE).strip() or DEFAULT_TIMEZONE
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"Unknown TIMEZONE '{timezone}'")

    return Settings(
        webhook_url=webhook_url,
        log_level=log_level,
        timezone=timezone,
        interval_minutes=_positive_number(
            environ, "CHECK_INTERVAL_MINUTES", DEFAULT_INTERVAL_MINUTES, int
        ),
        request_timeout=_positive_number(
            environ, "REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS, float
        ),
        max_workers=_positive_number(
            environ, "MAX_WORKERS", DEFAULT_MAX_WORKERS, int
        ),
    )


def _parse_request(index: int, raw: Dict) -> MonitorRequest:
    if not isinstance(raw, dict):
        raise ConfigError(f"Request #{index} must be an object")

    missing = [key for key in ("cinema", "date", "movie") if key not in raw]
    if missing:
        raise ConfigError(f"Request #{index} is missing: {', '.join(missing)}")

    try:
        cinema = Cinema.from_name(str(raw["cinema"]))
    except ValueError as e:
        raise ConfigError(f"Request #{index}: {e}")

    try:
        request_date = datetime.strptime(str(raw["date"]), DATE_FORMAT).date()
    except ValueError:
        raise ConfigError(
            f"Request #{index}: invalid date '{raw['date']}' (expected DD-MM-YYYY)"
        )

    movie = str(raw["movie"]).strip()
    if not movie:
        raise ConfigError(f"Request #{index}: movie title is empty")

    return MonitorRequest(cinema=cinema, date=request_date, movie=movie)


def parse_config(data) -> MonitorConfig:
    """Validate decoded config JSON and build the request list"""
    if not isinstance(data, dict) or not isinstance(data.get("requests"), list):
        raise ConfigError("Config must be an object with a 'requests' list")

    requests: List[MonitorRequest] = []
    for index, raw in enumerate(data["requests"], start=1):
        request = _parse_request(index, raw)
        if request in requests:
            logger.warning(f"Ignoring duplicate request {request}")
            continue
        requests.append(request)

    return MonitorConfig(requests=requests)


def load_config(path: str = DEFAULT_CONFIG_PATH) -> MonitorConfig:
    """
    Load monitor requests from a JSON file

    Raises:
        ConfigError: If the file is missing, not valid JSON, or malformed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {e}")
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config file is not valid UTF-8: {e}")

    config = parse_config(data)
    logger.debug(f"Loaded {len(config.requests)} requests from {path}")
    return config


def write_default_config(path: str = DEFAULT_CONFIG_PATH) -> bool:
    """
    Write an empty config file if none exists

    Returns:
        True if a file was written, False if one already existed
    """
    config_path = Path(path)
    if config_path.exists():
        return False

    with open(config_path, "w", encoding="utf-8") as f:
        json.dump({"requests": []}, f, indent=2)
        f.write("\n")
    logger.info(f"Wrote fresh config to {config_path}")
    return True
