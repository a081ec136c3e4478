"""End-to-end tests: raw ICS text in, canonical events out."""

import logging
from datetime import date
from typing import Callable

import pytest

from ics_ingest import (
    AnomalyKind,
    IcsFormatError,
    IcsIngestor,
    IngestDiagnostics,
    RecurringEvent,
    SingleEvent,
    get_events_from_ics,
)

pytestmark = pytest.mark.integration


class TestSingleEvents:
    """End-to-end tests for single events."""

    def test_all_day_without_end_when_ingested_then_single_all_day(self, sample_ics_all_day: str) -> None:
        """Test a DATE event without end becomes one all-day single event."""
        events = get_events_from_ics(sample_ics_all_day)

        assert len(events) == 1
        event = events[0]
        assert isinstance(event, SingleEvent)
        assert event.id == "all-day-001@ics-ingest.test::2024-01-01::single"
        assert event.title == "New Year"
        assert event.date == date(2024, 1, 1)
        assert event.all_day is True
        assert event.end_date is None
        assert event.start_time is None
        assert event.end_time is None

    def test_timed_event_when_ingested_then_times_in_seoul(self, make_ics: Callable[..., str]) -> None:
        """Test timed events report Seoul clock times."""
        ics = make_ics(
            """
UID:timed-1
DTSTART:20240115T100000Z
DURATION:PT90M
SUMMARY:Design review
URL:https://example.com/review
"""
        )

        [event] = get_events_from_ics(ics)

        assert isinstance(event, SingleEvent)
        assert event.date == date(2024, 1, 15)
        assert (event.start_time, event.end_time) == ("19:00", "20:30")
        assert event.url == "https://example.com/review"

    def test_canonical_zone_when_configured_then_output_uses_it(self, make_ics: Callable[..., str]) -> None:
        """Test a configured canonical zone is honored."""
        ics = make_ics(
            """
UID:timed-2
DTSTART:20240115T100000Z
DTEND:20240115T110000Z
SUMMARY:Standup
"""
        )

        [event] = get_events_from_ics(ics, settings={"canonical_timezone": "UTC"})

        assert (event.start_time, event.end_time) == ("10:00", "11:00")

    def test_windows_tzid_when_ingested_then_mapped_to_iana(self, make_ics: Callable[..., str]) -> None:
        """Test Outlook-style TZIDs are resolved."""
        ics = make_ics(
            """
UID:outlook-1
DTSTART;TZID=Eastern Standard Time:20240115T090000
DTEND;TZID=Eastern Standard Time:20240115T093000
SUMMARY:Outlook meeting
"""
        )

        [event] = get_events_from_ics(ics, settings={"canonical_timezone": "UTC"})

        assert (event.start_time, event.end_time) == ("14:00", "14:30")

    def test_vtimezone_when_declared_then_used_for_tzid(self, make_ics: Callable[..., str]) -> None:
        """Test in-calendar VTIMEZONE definitions are used."""
        vtimezone = """BEGIN:VTIMEZONE
TZID:Custom/Fixed
BEGIN:STANDARD
DTSTART:19700101T000000
TZOFFSETFROM:+0530
TZOFFSETTO:+0530
TZNAME:CFT
END:STANDARD
END:VTIMEZONE
"""
        ics = make_ics(
            """
UID:custom-tz-1
DTSTART;TZID=Custom/Fixed:20240101T100000
DTEND;TZID=Custom/Fixed:20240101T110000
SUMMARY:Custom zone
""",
            timezones=vtimezone,
        )

        [event] = get_events_from_ics(ics)

        assert (event.start_time, event.end_time) == ("13:30", "14:30")


class TestRecurringEvents:
    """End-to-end tests for series and overrides."""

    def test_weekly_series_when_start_crosses_utc_day_then_byday_rotated(
        self, make_ics: Callable[..., str]
    ) -> None:
        """Test BYDAY follows the UTC weekday of the start."""
        ics = make_ics(
            """
UID:la-weekly
DTSTART;TZID=America/Los_Angeles:20240101T200000
DTEND;TZID=America/Los_Angeles:20240101T210000
RRULE:FREQ=WEEKLY;BYDAY=MO
SUMMARY:Monday evening in LA
"""
        )

        [event] = get_events_from_ics(ics)

        assert isinstance(event, RecurringEvent)
        assert event.rrule == "FREQ=WEEKLY;BYDAY=TU"
        assert event.start_date == date(2024, 1, 2)
        assert event.id == "la-weekly::2024-01-02::recurring"
        assert (event.start_time, event.end_time) == ("13:00", "14:00")

    def test_override_when_matching_series_then_skip_date_and_standalone_single(
        self, sample_ics_recurring_with_override: str
    ) -> None:
        """Test an override is skipped in the series and emitted on its own."""
        diagnostics = IngestDiagnostics()

        events = get_events_from_ics(sample_ics_recurring_with_override, diagnostics=diagnostics)

        assert [type(event) for event in events] == [RecurringEvent, SingleEvent]
        series, moved = events
        assert series.rrule == "FREQ=WEEKLY;BYDAY=MO"
        assert series.skip_dates == [date(2024, 1, 15), date(2024, 1, 9)]
        assert moved.id == "series-001@ics-ingest.test::2024-01-09::single"
        assert moved.title == "Weekly Sync (moved)"
        assert (moved.start_time, moved.end_time) == ("10:00", "11:00")
        assert not diagnostics.has_anomalies

    def test_override_when_base_missing_then_emitted_without_error(self, make_ics: Callable[..., str]) -> None:
        """Test an override without a series is kept."""
        ics = make_ics(
            """
UID:lonely
RECURRENCE-ID:20240108T010000Z
DTSTART:20240109T010000Z
DTEND:20240109T020000Z
SUMMARY:Moved occurrence
"""
        )
        diagnostics = IngestDiagnostics()

        events = get_events_from_ics(ics, diagnostics=diagnostics)

        assert [event.id for event in events] == ["lonely::2024-01-09::single"]
        assert diagnostics.count(AnomalyKind.ORPHAN_OVERRIDE) == 1

    def test_override_when_base_not_recurring_then_warning_and_both_kept(
        self, make_ics: Callable[..., str], caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test an override of a single event logs a warning."""
        ics = make_ics(
            """
UID:plain
DTSTART:20240101T010000Z
DTEND:20240101T020000Z
SUMMARY:Plain event
""",
            """
UID:plain
RECURRENCE-ID:20240101T010000Z
DTSTART:20240102T010000Z
DTEND:20240102T020000Z
SUMMARY:Exception
""",
        )
        diagnostics = IngestDiagnostics()

        with caplog.at_level(logging.WARNING, logger="ics_ingest"):
            events = get_events_from_ics(ics, diagnostics=diagnostics)

        assert [event.id for event in events] == ["plain::2024-01-01::single", "plain::2024-01-02::single"]
        assert diagnostics.count(AnomalyKind.MISMATCHED_OVERRIDE) == 1
        assert "base event was not recurring" in caplog.text


class TestRecoverableAnomalies:
    """End-to-end tests for per-event failures."""

    def test_unknown_tzid_when_ingested_then_only_that_event_dropped(
        self, make_ics: Callable[..., str]
    ) -> None:
        """Test an unresolvable start drops only its event."""
        ics = make_ics(
            """
UID:mars
DTSTART;TZID=Mars/Olympus_Mons:20240101T100000
SUMMARY:Unreachable
""",
            """
UID:earth
DTSTART:20240101T010000Z
DTEND:20240101T020000Z
SUMMARY:Reachable
""",
        )
        diagnostics = IngestDiagnostics()

        events = get_events_from_ics(ics, diagnostics=diagnostics)

        assert [event.id for event in events] == ["earth::2024-01-01::single"]
        assert diagnostics.count(AnomalyKind.UNRESOLVABLE_INSTANT) == 1
        assert diagnostics.by_kind(AnomalyKind.UNRESOLVABLE_INSTANT)[0].uid == "mars"

    def test_missing_dtstart_when_ingested_then_dropped(self, make_ics: Callable[..., str]) -> None:
        """Test events without DTSTART are dropped."""
        ics = make_ics("UID:nostart\nSUMMARY:No start")
        diagnostics = IngestDiagnostics()

        assert get_events_from_ics(ics, diagnostics=diagnostics) == []
        assert diagnostics.count(AnomalyKind.UNRESOLVABLE_INSTANT) == 1

    def test_missing_summary_when_ingested_then_rejected_by_validator(
        self, make_ics: Callable[..., str]
    ) -> None:
        """Test untitled events are rejected."""
        ics = make_ics("UID:untitled\nDTSTART:20240101T010000Z")
        diagnostics = IngestDiagnostics()

        assert get_events_from_ics(ics, diagnostics=diagnostics) == []
        rejected = diagnostics.by_kind(AnomalyKind.VALIDATION_REJECTED)
        assert [anomaly.event_id for anomaly in rejected] == ["untitled::2024-01-01::single"]

    def test_duplicate_uid_when_ingested_then_later_base_wins(self, make_ics: Callable[..., str]) -> None:
        """Test the later duplicate base event wins."""
        ics = make_ics(
            """
UID:dup
DTSTART:20240101T010000Z
DTEND:20240101T020000Z
SUMMARY:First copy
""",
            """
UID:dup
DTSTART:20240102T010000Z
DTEND:20240102T020000Z
SUMMARY:Second copy
""",
        )
        diagnostics = IngestDiagnostics()

        events = get_events_from_ics(ics, diagnostics=diagnostics)

        assert [event.title for event in events] == ["Second copy"]
        assert diagnostics.count(AnomalyKind.DUPLICATE_UID) == 1

    def test_malformed_field_when_start_valid_then_only_that_event_dropped(
        self, make_ics: Callable[..., str]
    ) -> None:
        """Test a bad RRULE or EXDATE zone drops only its own event."""
        ics = make_ics(
            """
UID:bad-rule
DTSTART:20240101T010000Z
DTEND:20240101T020000Z
RRULE:FREQ=SOMETIMES
SUMMARY:Unparseable rule
""",
            """
UID:bad-exdate
DTSTART:20240101T010000Z
DTEND:20240101T020000Z
RRULE:FREQ=WEEKLY
EXDATE;TZID=Nowhere/Land:20240108T100000
SUMMARY:Exclusion in unknown zone
""",
            """
UID:ok
DTSTART:20240101T010000Z
DTEND:20240101T020000Z
SUMMARY:Valid
""",
        )
        diagnostics = IngestDiagnostics()

        events = get_events_from_ics(ics, diagnostics=diagnostics)

        assert [event.id for event in events] == ["ok::2024-01-01::single"]
        assert diagnostics.count(AnomalyKind.MALFORMED_COMPONENT) == 2
        malformed = diagnostics.by_kind(AnomalyKind.MALFORMED_COMPONENT)
        assert [anomaly.uid for anomaly in malformed] == ["bad-rule", "bad-exdate"]

    def test_custom_validator_when_rejects_then_event_dropped(self, sample_ics_all_day: str) -> None:
        """Test a custom validator can reject events."""
        events = get_events_from_ics(sample_ics_all_day, validator=lambda candidate: None)

        assert events == []


class TestIngestContract:
    """End-to-end tests for the ingestion contract."""

    def test_malformed_calendar_when_ingested_then_format_error(self) -> None:
        """Test malformed calendars raise IcsFormatError."""
        with pytest.raises(IcsFormatError):
            get_events_from_ics("BEGIN:NOTHING-USEFUL")

    def test_empty_calendar_when_ingested_then_no_events(self, make_ics: Callable[..., str]) -> None:
        """Test a calendar without events yields none."""
        assert get_events_from_ics(make_ics()) == []

    def test_ingest_when_repeated_then_identical_output(self, sample_ics_recurring_with_override: str) -> None:
        """Test ingestion is idempotent."""
        first = [event.model_dump() for event in get_events_from_ics(sample_ics_recurring_with_override)]
        second = [event.model_dump() for event in get_events_from_ics(sample_ics_recurring_with_override)]

        assert first == second

    def test_ingest_result_when_calendar_named_then_statistics_reported(self, make_ics: Callable[..., str]) -> None:
        """Test result metadata and statistics."""
        ics = make_ics(
            """
UID:a
DTSTART;VALUE=DATE:20240101
SUMMARY:Holiday
"""
        ).replace("CALSCALE:GREGORIAN\n", "CALSCALE:GREGORIAN\nX-WR-CALNAME:Team\n")

        result = IcsIngestor().ingest(ics)

        assert result.calendar_name == "Team"
        assert result.canonical_timezone == "Asia/Seoul"
        assert (result.vevent_count, result.base_event_count, result.override_event_count) == (1, 1, 0)
        assert result.as_records()[0]["date"] == "2024-01-01"
