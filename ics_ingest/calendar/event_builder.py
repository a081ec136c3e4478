"""Conversion of VEVENT components into canonical candidate records.

A component with an RRULE becomes a recurring candidate; anything else
becomes a single-occurrence candidate. Candidates are plain dicts keyed by
the canonical schema field names; they are validated later, after the
recurrence reconciler has had a chance to extend their skip dates.
"""

import logging
from datetime import date, timedelta
from typing import Any, Optional

from dateutil.rrule import rrulestr
from icalendar import Event as ICalEvent
from icalendar.prop import vRecur

from ics_ingest.calendar.exceptions import IcsFormatError
from ics_ingest.calendar.rrule_adjuster import adjust_rrule_weekdays, strip_rrule_prefix
from ics_ingest.calendar.time_normalizer import (
    IcsInstant,
    TimeNormalizer,
    parse_timestamp,
)
from ics_ingest.core.config_manager import MAX_EVENT_TITLE_LENGTH
from ics_ingest.core.timezone_utils import UTC_MARKER

logger = logging.getLogger(__name__)

SINGLE_EVENT_TYPE = "single"
RECURRING_EVENT_TYPE = "rrule"

# Properties whose values feed a candidate record
CONVERTED_PROPERTIES = frozenset({"DTSTART", "DTEND", "DURATION", "RRULE", "EXDATE"})


def single_event_id(uid: str, event_date: date) -> str:
    return f"{uid}::{event_date.isoformat()}::single"


def recurring_event_id(uid: str, start_date: date) -> str:
    return f"{uid}::{start_date.isoformat()}::recurring"


def component_uid(component: ICalEvent) -> str:
    """Return the UID of a component, or an empty string when it has none."""
    uid = component.get("UID")
    return str(uid) if uid is not None else ""


def specifies_end(component: ICalEvent) -> bool:
    """Return True when the component has an explicit DTEND or DURATION."""
    return component.get("DTEND") is not None or component.get("DURATION") is not None


def shift_instant(instant: IcsInstant, delta: timedelta) -> IcsInstant:
    """Return instant moved by delta in its own wall-clock time."""
    shifted = parse_timestamp(instant.value) + delta
    if instant.is_date:
        return IcsInstant(value=shifted.strftime("%Y%m%d"), zone_name=None, is_date=True)
    value = shifted.strftime("%Y%m%dT%H%M%S")
    if instant.zone_name == UTC_MARKER:
        value += UTC_MARKER
    return IcsInstant(value=value, zone_name=instant.zone_name, is_date=False)


def event_instants(component: ICalEvent) -> tuple[IcsInstant, IcsInstant]:
    """Return the start and end instants of a VEVENT.

    Without DTEND, the end is derived from DURATION; without either it is the
    following day for DATE starts and the start itself otherwise (RFC 5545).

    Raises:
        IcsFormatError: If DTSTART is missing or a value is not a date/date-time
    """
    dtstart = component.get("DTSTART")
    if dtstart is None:
        raise IcsFormatError("Event missing DTSTART")
    start = IcsInstant.from_property(dtstart)

    dtend = component.get("DTEND")
    if dtend is not None:
        return start, IcsInstant.from_property(dtend)

    duration = component.get("DURATION")
    if duration is not None:
        delta = getattr(duration, "dt", None)
        if not isinstance(delta, timedelta):
            raise IcsFormatError(f"Invalid DURATION: {duration!r}")
        return start, shift_instant(start, delta)

    if start.is_date:
        return start, shift_instant(start, timedelta(days=1))
    return start, start


def collect_exdate_props(component: ICalEvent) -> list[Any]:
    """Return every EXDATE property of a component as a list."""
    exdates = component.get("EXDATE")
    if exdates is None:
        return []
    if isinstance(exdates, list):
        return list(exdates)
    return [exdates]


def property_parse_errors(component: ICalEvent) -> list[tuple[str, str]]:
    """Return parse errors icalendar recorded for converted properties.

    icalendar parses VEVENTs leniently: a property whose value fails to parse
    is left out of the component and noted in ``component.errors``.
    """
    return [(name, message) for name, message in component.errors if name in CONVERTED_PROPERTIES]


def canonicalize_rrule(rule: str, start: IcsInstant) -> str:
    """Validate an RRULE value and serialize it in canonical part order.

    Raises:
        IcsFormatError: If the rule cannot be parsed
    """
    try:
        canonical = vRecur.from_ical(rule).to_ical().decode("utf-8")
        # dateutil rejects rules that cannot produce occurrences (bad FREQ, BYxxx values)
        dtstart = parse_timestamp(start.value).replace(tzinfo=None)
        rrulestr(canonical, dtstart=dtstart, ignoretz=True)
    except (ValueError, TypeError, KeyError) as e:
        raise IcsFormatError(f"Invalid RRULE {rule!r}: {e}") from e
    return canonical


class IcsEventBuilder:
    """Builds canonical candidate records from VEVENT components."""

    def __init__(self, normalizer: TimeNormalizer, max_title_length: int = MAX_EVENT_TITLE_LENGTH):
        """Initialize event builder.

        Args:
            normalizer: Time normalizer bound to the canonical zone and the
                calendar's declared zones
            max_title_length: Titles longer than this are truncated
        """
        self.normalizer = normalizer
        self.max_title_length = max_title_length

    def convert(self, component: ICalEvent) -> dict[str, Any]:
        """Convert one VEVENT component into a candidate record.

        Raises:
            IcsFormatError: If a date, time, zone or rule of the component is malformed
        """
        errors = property_parse_errors(component)
        if errors:
            name, message = errors[0]
            raise IcsFormatError(f"Invalid {name}: {message}")
        if component.get("RRULE") is not None:
            return self._convert_recurring(component)
        return self._convert_single(component)

    def _convert_recurring(self, component: ICalEvent) -> dict[str, Any]:
        uid = component_uid(component)
        start, end = event_instants(component)
        all_day = start.is_date

        # NOTE: Only the date of an exclusion is kept, so series with more than
        # one occurrence per day cannot exclude them individually.
        skip_dates = [
            self.normalizer.to_canonical_date(IcsInstant.from_property(prop))
            for prop in collect_exdate_props(component)
        ]

        raw_rule = self._raw_rrule(component)
        adjusted_rule = adjust_rrule_weekdays(raw_rule, start, self.normalizer)
        rrule = canonicalize_rrule(adjusted_rule, start)

        start_date = self.normalizer.to_canonical_date(start)
        record: dict[str, Any] = {
            "type": RECURRING_EVENT_TYPE,
            "id": recurring_event_id(uid, start_date),
            "title": self._title(component),
            "start_date": start_date,
            "rrule": rrule,
            "skip_dates": skip_dates,
            "url": self._url(component),
        }
        record.update(self._clock_fields(start, end))
        return record

    def _convert_single(self, component: ICalEvent) -> dict[str, Any]:
        uid = component_uid(component)
        start, end = event_instants(component)

        event_date = self.normalizer.to_canonical_date(start)
        end_date: Optional[date] = None
        if specifies_end(component):
            end_date = self.normalizer.to_canonical_date(end)

        record: dict[str, Any] = {
            "type": SINGLE_EVENT_TYPE,
            "id": single_event_id(uid, event_date),
            "title": self._title(component),
            "date": event_date,
            "end_date": end_date if end_date != event_date else None,
            "url": self._url(component),
        }
        record.update(self._clock_fields(start, end))
        return record

    def _clock_fields(self, start: IcsInstant, end: IcsInstant) -> dict[str, Any]:
        """Return all-day flag and clock times.

        Both times are read in the start's zone so every occurrence keeps the
        same duration, even when DTEND names a different zone.
        """
        if start.is_date:
            return {"all_day": True}
        return {
            "all_day": False,
            "start_time": self.normalizer.to_canonical_time(start),
            "end_time": self.normalizer.to_canonical_time(end.value, start.zone_name),
        }

    def _raw_rrule(self, component: ICalEvent) -> str:
        rrule_prop = component.get("RRULE")
        if isinstance(rrule_prop, list):
            rrule_prop = rrule_prop[0]
        if hasattr(rrule_prop, "to_ical"):
            return strip_rrule_prefix(rrule_prop.to_ical().decode("utf-8"))
        return strip_rrule_prefix(str(rrule_prop))

    def _title(self, component: ICalEvent) -> Optional[str]:
        summary = component.get("SUMMARY")
        if summary is None:
            return None
        title = str(summary)
        if len(title) > self.max_title_length:
            logger.debug("Truncating title of %s to %d chars", component_uid(component), self.max_title_length)
            return title[: self.max_title_length]
        return title

    def _url(self, component: ICalEvent) -> str:
        url = component.get("URL")
        return str(url) if url is not None else ""
