"""Time normalization for iCalendar DATE and DATE-TIME values.

Every date and clock time emitted by ics_ingest is expressed in a single
canonical zone. Values are interpreted in their source zone (the TZID
parameter, UTC for values ending in "Z", or the canonical zone itself for
floating values) and then converted. DATE values carry no zone semantics and
are never shifted.
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, tzinfo
from typing import Any, Optional, Union
from zoneinfo import ZoneInfoNotFoundError

from dateutil.parser import isoparse

from ics_ingest.calendar.exceptions import IcsFormatError
from ics_ingest.core.timezone_utils import DEFAULT_CANONICAL_TIMEZONE, UTC_MARKER, get_timezone

logger = logging.getLogger(__name__)

# Clock time reported for DATE values
ALL_DAY_TIME = "00:00"

_DATE_ONLY_RE = re.compile(r"^\d{8}$|^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class IcsInstant:
    """A raw iCalendar DATE/DATE-TIME value with its zone context.

    Attributes:
        value: Wall-clock text as written in the calendar (e.g. "20240101T090000")
        zone_name: TZID parameter, "Z" for UTC values, None for floating values
        is_date: True for DATE (all-day) values
    """

    value: str
    zone_name: Optional[str] = None
    is_date: bool = False

    @classmethod
    def from_property(cls, prop: Any) -> "IcsInstant":
        """Build an instant from an icalendar DATE/DATE-TIME property.

        Accepts vDDDTypes as well as vDDDLists (EXDATE), in which case only the
        first value of the list is used.

        Raises:
            IcsFormatError: If the property does not hold a date or date-time
        """
        params = getattr(prop, "params", None) or {}
        dts = getattr(prop, "dts", None)
        if dts is not None:
            if not dts:
                raise IcsFormatError("Empty date list property")
            prop = dts[0]

        dt = getattr(prop, "dt", None)
        if not isinstance(dt, date):
            raise IcsFormatError(f"Property does not hold a date or date-time: {prop!r}")

        # Read TZID before serializing; to_ical() may rewrite the parameter
        zone_name = params.get("TZID") or (getattr(prop, "params", None) or {}).get("TZID")

        raw = prop.to_ical() if hasattr(prop, "to_ical") else str(prop)
        value = raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)

        if not isinstance(dt, datetime):
            return cls(value=value, zone_name=None, is_date=True)

        if not zone_name and value.endswith(UTC_MARKER):
            zone_name = UTC_MARKER
        return cls(value=value, zone_name=str(zone_name) if zone_name else None, is_date=False)


def is_date_only(timestamp: str) -> bool:
    """Return True when the timestamp is a DATE value (no time component)."""
    return bool(_DATE_ONLY_RE.match(timestamp.strip()))


def parse_timestamp(timestamp: str) -> datetime:
    """Parse an iCalendar or ISO 8601 timestamp.

    Returns a naive datetime for wall-clock values and an aware one when the
    text carries "Z" or an explicit offset.

    Raises:
        IcsFormatError: If the timestamp cannot be parsed
    """
    try:
        return isoparse(timestamp.strip())
    except (ValueError, OverflowError, TypeError) as e:
        raise IcsFormatError(f"Unable to parse timestamp: {timestamp!r}") from e


def format_clock_time(dt: datetime) -> str:
    """Format a clock time as HH:MM, adding seconds only when they are non-zero."""
    if dt.second:
        return dt.strftime("%H:%M:%S")
    return dt.strftime("%H:%M")


class TimeNormalizer:
    """Convert iCalendar values into canonical-zone dates and clock times."""

    def __init__(
        self,
        canonical_timezone: str = DEFAULT_CANONICAL_TIMEZONE,
        zone_definitions: Optional[Mapping[str, tzinfo]] = None,
    ):
        """Initialize normalizer.

        Args:
            canonical_timezone: Zone all output is expressed in
            zone_definitions: Zones declared by VTIMEZONE components of the
                calendar being ingested, keyed by TZID. Consulted before the
                IANA database.

        Raises:
            IcsFormatError: If the canonical timezone is unknown
        """
        self.canonical_timezone = canonical_timezone
        self.zone_definitions: dict[str, tzinfo] = dict(zone_definitions or {})
        try:
            self._canonical_tz = get_timezone(canonical_timezone)
        except ZoneInfoNotFoundError as e:
            raise IcsFormatError(f"Unknown canonical timezone: {canonical_timezone!r}") from e

    @property
    def canonical_tz(self) -> tzinfo:
        return self._canonical_tz

    def resolve_zone(self, zone_name: Optional[str]) -> tzinfo:
        """Resolve a zone name to a tzinfo.

        Empty names mean the canonical zone and "Z" means UTC.

        Raises:
            IcsFormatError: If the zone is neither declared nor known
        """
        if not zone_name:
            return self._canonical_tz
        if zone_name == UTC_MARKER:
            return UTC
        if zone_name in self.zone_definitions:
            return self.zone_definitions[zone_name]
        try:
            return get_timezone(zone_name)
        except ZoneInfoNotFoundError as e:
            raise IcsFormatError(f"Unknown timezone: {zone_name!r}") from e

    def localize(self, timestamp: str, zone_name: Optional[str]) -> datetime:
        """Interpret a timestamp in the named zone and return an aware datetime.

        Timestamps that carry their own UTC marker or offset keep it.
        """
        parsed = parse_timestamp(timestamp)
        if parsed.tzinfo is not None:
            return parsed

        zone = self.resolve_zone(zone_name)
        # pytz zones need localize() to pick the right offset
        if hasattr(zone, "localize"):
            return zone.localize(parsed)
        return parsed.replace(tzinfo=zone)

    def to_canonical(self, timestamp: str, zone_name: Optional[str]) -> datetime:
        """Return the timestamp as an aware datetime in the canonical zone."""
        return self.localize(timestamp, zone_name).astimezone(self._canonical_tz)

    def to_canonical_date(
        self,
        value: Union[IcsInstant, str],
        zone_name: Optional[str] = None,
    ) -> date:
        """Return the canonical-zone calendar date of an instant or timestamp.

        Args:
            value: An IcsInstant (its own zone is used) or a raw timestamp
            zone_name: Zone of a raw timestamp; ignored for IcsInstant values
        """
        instant = self._coerce(value, zone_name)
        if instant.is_date:
            return parse_timestamp(instant.value).date()
        return self.to_canonical(instant.value, instant.zone_name).date()

    def to_canonical_time(
        self,
        value: Union[IcsInstant, str],
        zone_name: Optional[str] = None,
    ) -> str:
        """Return the canonical-zone clock time of an instant or timestamp.

        DATE values always yield "00:00".
        """
        instant = self._coerce(value, zone_name)
        if instant.is_date:
            return ALL_DAY_TIME
        return format_clock_time(self.to_canonical(instant.value, instant.zone_name))

    def _coerce(self, value: Union[IcsInstant, str], zone_name: Optional[str]) -> IcsInstant:
        if isinstance(value, IcsInstant):
            return value
        return IcsInstant(value=value, zone_name=zone_name, is_date=is_date_only(value))
