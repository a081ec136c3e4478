"""Shared fixtures for ics_ingest tests."""

import logging
import os
from collections.abc import Generator
from typing import Any, Callable

import pytest

from ics_ingest.calendar.time_normalizer import TimeNormalizer
from ics_ingest.core.logging_config import INGEST_LOGGERS, NOISY_LOGGERS
from ics_ingest.core.timezone_utils import DEFAULT_CANONICAL_TIMEZONE

INGEST_ENV_KEYS = (
    "ICS_INGEST_CANONICAL_TIMEZONE",
    "ICS_INGEST_MAX_ICS_SIZE_BYTES",
    "ICS_INGEST_MAX_TITLE_LENGTH",
    "ICS_INGEST_DEBUG",
    "ICS_INGEST_LOG_LEVEL",
)


def pytest_configure(config: Any) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "fast: Tests that need no I/O")
    config.addinivalue_line("markers", "integration: End-to-end ingestion tests")


def wrap_calendar(*bodies: str, timezones: str = "") -> str:
    """Wrap VEVENT bodies (and optional VTIMEZONE text) into a VCALENDAR."""
    events = "".join(f"BEGIN:VEVENT\n{body.strip()}\nEND:VEVENT\n" for body in bodies)
    return (
        "BEGIN:VCALENDAR\n"
        "VERSION:2.0\n"
        "PRODID:-//ics_ingest Test//EN\n"
        "CALSCALE:GREGORIAN\n"
        f"{timezones}"
        f"{events}"
        "END:VCALENDAR\n"
    )


@pytest.fixture
def make_ics() -> Callable[..., str]:
    """Return a helper that builds VCALENDAR text from VEVENT bodies."""
    return wrap_calendar


@pytest.fixture
def normalizer() -> TimeNormalizer:
    """Normalizer bound to the default canonical zone (Asia/Seoul, UTC+9, no DST)."""
    return TimeNormalizer(DEFAULT_CANONICAL_TIMEZONE)


@pytest.fixture
def utc_normalizer() -> TimeNormalizer:
    return TimeNormalizer("UTC")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Keep ICS_INGEST_* variables from leaking into or between tests."""
    for key in INGEST_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    yield
    # ConfigManager.load_env_file writes os.environ directly
    for key in INGEST_ENV_KEYS:
        os.environ.pop(key, None)


@pytest.fixture
def restore_logging_levels() -> Generator[None, Any, None]:
    """Restore logger levels changed by logging configuration tests."""
    names = ["", *INGEST_LOGGERS, *NOISY_LOGGERS]
    saved = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def sample_ics_all_day() -> str:
    """
    Return a calendar with one all-day event and no end.

    - Event: "New Year" on 2024-01-01
    """
    return wrap_calendar(
        """
UID:all-day-001@ics-ingest.test
DTSTART;VALUE=DATE:20240101
SUMMARY:New Year
DTSTAMP:20231201T090000Z
"""
    )


@pytest.fixture
def sample_ics_recurring_with_override() -> str:
    """
    Return a calendar with a weekly series, one EXDATE and one moved occurrence.

    - Series: Mondays 01:00Z (10:00 in Seoul) starting 2024-01-01
    - EXDATE: 2024-01-15 occurrence
    - Override: 2024-01-08 occurrence moved to 2024-01-09
    """
    return wrap_calendar(
        """
UID:series-001@ics-ingest.test
DTSTART:20240101T010000Z
DTEND:20240101T020000Z
RRULE:FREQ=WEEKLY;BYDAY=MO
EXDATE:20240115T010000Z
SUMMARY:Weekly Sync
DTSTAMP:20231201T090000Z
""",
        """
UID:series-001@ics-ingest.test
RECURRENCE-ID:20240108T010000Z
DTSTART:20240109T010000Z
DTEND:20240109T020000Z
SUMMARY:Weekly Sync (moved)
DTSTAMP:20231201T090000Z
""",
    )
