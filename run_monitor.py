#!/usr/bin/env python3
"""
Pathé Monitor Entry Point
Watches the Pathé schedule for configured movies and posts a Discord message
as soon as tickets can be booked.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pathe_monitor.config import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_ENV_PATH,
    DEFAULT_LOG_LEVEL,
    ConfigError,
    load_config,
    load_env_file,
    load_settings,
    write_default_config,
)
from pathe_monitor.monitor import PatheMonitor

PACKAGE_LOGGER = "pathe_monitor"


def setup_logging(level: str = DEFAULT_LOG_LEVEL, log_file: Optional[str] = None) -> logging.Logger:
    """Setup console and optional file logging for the package"""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.propagate = False

    # Remove existing handlers
    logger.handlers = []

    # Console handler
    console_handler = logging.StreamHandler()
    console_format = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)

    # File handler (optional)
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_format = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - "
            "%(funcName)s:%(lineno)d - %(message)s"
        )
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)

    # HTTP client internals are too chatty below WARNING
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logger


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Monitor Pathé cinemas for ticket availability"
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to config file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--env-file",
        default=DEFAULT_ENV_PATH,
        help=f"Path to env file (default: {DEFAULT_ENV_PATH})",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write detailed logs to this file",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single check cycle and exit",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write an empty config file if none exists and exit",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    args = parse_args(argv)
    logger = setup_logging(DEFAULT_LOG_LEVEL, args.log_file)

    if args.init_config:
        if not write_default_config(args.config):
            logger.info(f"Config already exists at {args.config}")
        sys.exit(0)

    try:
        load_env_file(args.env_file)
        settings = load_settings()
        logger.setLevel(settings.log_level)
        config = load_config(args.config)
    except (ConfigError, OSError) as e:
        logger.error(f"❌ Configuration error: {e}")
        sys.exit(1)

    logger.info("Pathé monitor is starting up!")
    if not config.requests:
        logger.warning(f"No movie requests configured in {args.config}")

    monitor = PatheMonitor(config, settings)
    try:
        if args.once:
            monitor.run_cycle()
        else:
            monitor.run_server_mode()
    except KeyboardInterrupt:
        logger.info("⚠️  Interrupted by user")
    finally:
        monitor.close()

    sys.exit(0)


if __name__ == "__main__":
    main()
