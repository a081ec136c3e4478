"""Timezone name resolution utilities for ics_ingest."""

from __future__ import annotations

import datetime
import logging
import zoneinfo
from functools import lru_cache

logger = logging.getLogger(__name__)

# Zone every ingested date and clock time is expressed in unless configured otherwise
DEFAULT_CANONICAL_TIMEZONE = "Asia/Seoul"

# Marker used by iCalendar DATE-TIME values ending in "Z"
UTC_MARKER = "Z"

# Windows timezone names to IANA identifier mapping
# Common Windows timezones used in ICS files from Outlook/Exchange
# https://docs.microsoft.com/en-us/windows-hardware/manufacture/desktop/default-time-zones
WINDOWS_TZ_MAP: dict[str, str] = {
    # US Timezones
    "Pacific Standard Time": "America/Los_Angeles",
    "Mountain Standard Time": "America/Denver",
    "Central Standard Time": "America/Chicago",
    "Eastern Standard Time": "America/New_York",
    "Alaskan Standard Time": "America/Anchorage",
    "Hawaiian Standard Time": "Pacific/Honolulu",
    "US Mountain Standard Time": "America/Phoenix",
    "Atlantic Standard Time": "America/Halifax",
    # Europe
    "GMT Standard Time": "Europe/London",
    "Central European Standard Time": "Europe/Warsaw",
    "W. Europe Standard Time": "Europe/Berlin",
    "E. Europe Standard Time": "Europe/Bucharest",
    "Romance Standard Time": "Europe/Paris",
    "Russian Standard Time": "Europe/Moscow",
    # Asia
    "China Standard Time": "Asia/Shanghai",
    "Tokyo Standard Time": "Asia/Tokyo",
    "Korea Standard Time": "Asia/Seoul",
    "Singapore Standard Time": "Asia/Singapore",
    "Taipei Standard Time": "Asia/Taipei",
    "India Standard Time": "Asia/Kolkata",
    "SE Asia Standard Time": "Asia/Bangkok",
    "Arabian Standard Time": "Asia/Dubai",
    "Israel Standard Time": "Asia/Jerusalem",
    # Australia & Pacific
    "AUS Eastern Standard Time": "Australia/Sydney",
    "W. Australia Standard Time": "Australia/Perth",
    "New Zealand Standard Time": "Pacific/Auckland",
    # South America & Africa
    "E. South America Standard Time": "America/Sao_Paulo",
    "Argentina Standard Time": "America/Argentina/Buenos_Aires",
    "South Africa Standard Time": "Africa/Johannesburg",
    "Egypt Standard Time": "Africa/Cairo",
}

# Timezone aliases mapping (obsolete/deprecated IANA names to current names)
TZ_ALIAS_MAP: dict[str, str] = {
    "US/Pacific": "America/Los_Angeles",
    "US/Mountain": "America/Denver",
    "US/Central": "America/Chicago",
    "US/Eastern": "America/New_York",
    "US/Alaska": "America/Anchorage",
    "US/Hawaii": "Pacific/Honolulu",
    "GMT": "UTC",
    "Etc/UTC": "UTC",
    "Etc/GMT": "UTC",
    "Universal": "UTC",
    "Zulu": "UTC",
    "Asia/Rangoon": "Asia/Yangon",
    "America/Godthab": "America/Nuuk",
}


def windows_tz_to_iana(windows_tz: str) -> str | None:
    """Convert Windows timezone name to IANA timezone identifier.

    Args:
        windows_tz: Windows timezone name (e.g., "Mountain Standard Time")

    Returns:
        IANA timezone identifier (e.g., "America/Denver") or None if not found
    """
    return WINDOWS_TZ_MAP.get(windows_tz)


def resolve_timezone_alias(tz_name: str) -> str:
    """Resolve timezone alias to canonical IANA timezone identifier.

    Examples:
        >>> resolve_timezone_alias("US/Pacific")
        'America/Los_Angeles'
        >>> resolve_timezone_alias("Asia/Seoul")
        'Asia/Seoul'
    """
    return TZ_ALIAS_MAP.get(tz_name, tz_name)


@lru_cache(maxsize=64)
def normalize_timezone_name(tz_str: str) -> str | None:
    """Normalize timezone string to canonical IANA timezone identifier.

    Resolution order:
    1. Windows timezone name
    2. Timezone alias
    3. Validation with zoneinfo

    Args:
        tz_str: Timezone string (Windows name, alias, or IANA identifier)

    Returns:
        Canonical IANA timezone identifier or None if it cannot be resolved

    Examples:
        >>> normalize_timezone_name("Pacific Standard Time")
        'America/Los_Angeles'
        >>> normalize_timezone_name("Invalid/Timezone") is None
        True
    """
    if not tz_str:
        return None

    candidate = windows_tz_to_iana(tz_str) or resolve_timezone_alias(tz_str.strip())
    try:
        zoneinfo.ZoneInfo(candidate)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.debug("Timezone %r is not a known IANA identifier", tz_str)
        return None
    return candidate


def is_valid_timezone(tz_str: str) -> bool:
    """Return True when tz_str resolves to a known timezone."""
    return normalize_timezone_name(tz_str) is not None


def get_timezone(tz_str: str) -> datetime.tzinfo:
    """Return a tzinfo for a timezone name, resolving Windows names and aliases.

    Raises:
        zoneinfo.ZoneInfoNotFoundError: If the name cannot be resolved
    """
    iana_tz = normalize_timezone_name(tz_str)
    if iana_tz is None:
        raise zoneinfo.ZoneInfoNotFoundError(f"Unknown timezone: {tz_str!r}")
    if iana_tz == "UTC":
        return datetime.UTC
    return zoneinfo.ZoneInfo(iana_tz)


def now_utc() -> datetime.datetime:
    """Return current UTC time with tzinfo."""
    return datetime.datetime.now(datetime.UTC)
