#!/usr/bin/env python3
"""
Test suite for configuration loading.
Tests config file parsing, settings validation and .env handling.
"""

import json
import os
import sys
import tempfile
import unittest
from datetime import date
from pathlib import Path
from unittest import mock

sys.path.insert(0, str(Path(__file__).parent.parent))

from pathe_monitor.config import (
    DEFAULT_INTERVAL_MINUTES,
    ConfigError,
    load_config,
    load_env_file,
    load_settings,
    write_default_config,
)
from pathe_monitor.schema import Cinema

WEBHOOK_URL = "https://discord.com/api/webhooks/123/abc"


class TestLoadConfig(unittest.TestCase):
    """Test cases for the JSON config file"""

    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.config_path = Path(self.tmp_dir.name) / "config.json"

    def tearDown(self):
        self.tmp_dir.cleanup()

    def _write(self, content):
        if not isinstance(content, str):
            content = json.dumps(content)
        self.config_path.write_text(content, encoding="utf-8")

    def test_valid_config(self):
        """Test that a valid config yields monitor requests"""
        self._write({"requests": [
            {"cinema": "Spuimarkt", "date": "19-08-2021", "movie": "The Green Knight"}
        ]})
        config = load_config(str(self.config_path))
        self.assertEqual(len(config.requests), 1)
        request = config.requests[0]
        self.assertEqual(request.cinema, Cinema.SPUIMARKT)
        self.assertEqual(request.date, date(2021, 8, 19))
        self.assertEqual(request.movie, "The Green Knight")
        self.assertEqual(
            request.api_url,
            "https://www.pathe.nl/cinema/schedules?cinemaId=13&date=19-08-2021",
        )

    def test_cinema_name_is_case_insensitive(self):
        """Test that cinema names match regardless of case"""
        self._write({"requests": [
            {"cinema": "delft", "date": "01-09-2021", "movie": "Dune"}
        ]})
        config = load_config(str(self.config_path))
        self.assertEqual(config.requests[0].cinema, Cinema.DELFT)

    def test_duplicate_requests_are_collapsed(self):
        """Test that identical requests are only monitored once"""
        entry = {"cinema": "Buitenhof", "date": "01-09-2021", "movie": "Dune"}
        self._write({"requests": [entry, dict(entry)]})
        config = load_config(str(self.config_path))
        self.assertEqual(len(config.requests), 1)

    def test_missing_file(self):
        """Test that a missing config file is fatal"""
        with self.assertRaises(ConfigError):
            load_config(str(self.config_path))

    def test_malformed_json(self):
        """Test that invalid JSON is fatal"""
        self._write('{"requests": [')
        with self.assertRaises(ConfigError):
            load_config(str(self.config_path))

    def test_file_not_utf8(self):
        """Test that undecodable bytes are reported as a config error"""
        self.config_path.write_bytes(b'{"requests": ["\xff"]}')
        with self.assertRaises(ConfigError):
            load_config(str(self.config_path))

    def test_invalid_entries(self):
        """Test that structurally wrong configs are rejected"""
        invalid = [
            [],
            {"requests": "nope"},
            {"requests": [{"cinema": "Spuimarkt", "date": "19-08-2021"}]},
            {"requests": [{"cinema": "Tuschinski", "date": "19-08-2021", "movie": "X"}]},
            {"requests": [{"cinema": "Spuimarkt", "date": "2021-08-19", "movie": "X"}]},
            {"requests": [{"cinema": "Spuimarkt", "date": "19-08-2021", "movie": "  "}]},
        ]
        for content in invalid:
            with self.subTest(content=content):
                self._write(content)
                with self.assertRaises(ConfigError):
                    load_config(str(self.config_path))

    def test_write_default_config(self):
        """Test that a fresh config is written once and is loadable"""
        self.assertTrue(write_default_config(str(self.config_path)))
        self.assertFalse(write_default_config(str(self.config_path)))
        config = load_config(str(self.config_path))
        self.assertEqual(config.requests, [])


class TestLoadSettings(unittest.TestCase):
    """Test cases for environment settings"""

    def test_defaults(self):
        """Test that only the webhook URL is required"""
        settings = load_settings({"DISCORD_WEBHOOK_URL": WEBHOOK_URL})
        self.assertEqual(settings.webhook_url, WEBHOOK_URL)
        self.assertEqual(settings.log_level, "INFO")
        self.assertEqual(settings.timezone, "Europe/Amsterdam")
        self.assertEqual(settings.interval_minutes, DEFAULT_INTERVAL_MINUTES)

    def test_missing_webhook_url(self):
        """Test that a missing webhook URL is fatal"""
        with self.assertRaises(ConfigError):
            load_settings({})
        with self.assertRaises(ConfigError):
            load_settings({"DISCORD_WEBHOOK_URL": "   "})

    def test_overrides(self):
        """Test that optional settings are read from the environment"""
        settings = load_settings({
            "DISCORD_WEBHOOK_URL": WEBHOOK_URL,
            "LOG_LEVEL": "debug",
            "TIMEZONE": "UTC",
            "CHECK_INTERVAL_MINUTES": "5",
            "REQUEST_TIMEOUT_SECONDS": "2.5",
            "MAX_WORKERS": "8",
        })
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertEqual(settings.timezone, "UTC")
        self.assertEqual(settings.interval_minutes, 5)
        self.assertEqual(settings.request_timeout, 2.5)
        self.assertEqual(settings.max_workers, 8)

    def test_invalid_values(self):
        """Test that invalid optional settings are fatal"""
        invalid = [
            {"LOG_LEVEL": "LOUD"},
            {"TIMEZONE": "Mars/Olympus_Mons"},
            {"CHECK_INTERVAL_MINUTES": "soon"},
            {"CHECK_INTERVAL_MINUTES": "0"},
            {"MAX_WORKERS": "-1"},
        ]
        for overrides in invalid:
            with self.subTest(overrides=overrides):
                with self.assertRaises(ConfigError):
                    load_settings({"DISCORD_WEBHOOK_URL": WEBHOOK_URL, **overrides})


class TestLoadEnvFile(unittest.TestCase):
    """Test cases for .env loading"""

    def test_env_file_does_not_override_environment(self):
        """Test that .env values fill gaps but never replace real variables"""
        with tempfile.TemporaryDirectory() as tmp_dir:
            env_path = Path(tmp_dir) / ".env"
            env_path.write_text(
                "# comment\n"
                'DISCORD_WEBHOOK_URL="https://example.invalid/hook"\n'
                "TIMEZONE=UTC\n",
                encoding="utf-8",
            )
            with mock.patch.dict(os.environ, {"TIMEZONE": "Europe/Amsterdam"}, clear=True):
                load_env_file(str(env_path))
                self.assertEqual(os.environ["DISCORD_WEBHOOK_URL"], "https://example.invalid/hook")
                self.assertEqual(os.environ["TIMEZONE"], "Europe/Amsterdam")

    def test_missing_env_file_is_ignored(self):
        """Test that a missing .env file is not an error"""
        with mock.patch.dict(os.environ, {}, clear=True):
            load_env_file("/nonexistent/.env")
            self.assertNotIn("DISCORD_WEBHOOK_URL", os.environ)


if __name__ == "__main__":
    unittest.main()
