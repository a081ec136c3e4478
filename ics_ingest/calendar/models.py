"""Data models for ICS ingestion - canonical events, diagnostics and results."""

from datetime import date as CalendarDate, datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from ics_ingest.core.timezone_utils import now_utc

CLOCK_TIME_PATTERN = r"^\d{2}:\d{2}(:\d{2})?$"


class _CanonicalEventBase(BaseModel):
    """Fields shared by both canonical event variants."""

    id: str = Field(..., min_length=1, description="Derived, stable event identifier")
    title: str = Field(..., description="Event title")
    all_day: bool = Field(..., description="All-day event flag")
    start_time: Optional[str] = Field(
        default=None, pattern=CLOCK_TIME_PATTERN, description="Start clock time (canonical zone)"
    )
    end_time: Optional[str] = Field(
        default=None, pattern=CLOCK_TIME_PATTERN, description="End clock time (canonical zone)"
    )
    url: str = Field(default="", description="Event URL from the VEVENT URL property")

    model_config = ConfigDict(extra="forbid")

    @field_validator("title")
    @classmethod
    def _require_title(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value

    @model_validator(mode="after")
    def _check_clock_times(self) -> "_CanonicalEventBase":
        if self.all_day and (self.start_time is not None or self.end_time is not None):
            raise ValueError("all-day events must not carry clock times")
        if not self.all_day and (self.start_time is None or self.end_time is None):
            raise ValueError("timed events require both start_time and end_time")
        return self


class SingleEvent(_CanonicalEventBase):
    """A single, non-repeating occurrence."""

    type: Literal["single"] = "single"
    date: CalendarDate = Field(..., description="Calendar date in the canonical zone")
    end_date: Optional[CalendarDate] = Field(
        default=None, description="End date, present only when it differs from date"
    )

    @model_validator(mode="after")
    def _check_end_date(self) -> "SingleEvent":
        if self.end_date is not None and self.end_date < self.date:
            raise ValueError("end_date must not precede date")
        return self


class RecurringEvent(_CanonicalEventBase):
    """A recurring series described by an RRULE."""

    type: Literal["rrule"] = "rrule"
    start_date: CalendarDate = Field(..., description="Series start date in the canonical zone")
    rrule: str = Field(..., min_length=1, description="RRULE value in RFC 5545 grammar")
    skip_dates: list[CalendarDate] = Field(
        default_factory=list, description="Dates on which an occurrence is suppressed"
    )


CanonicalEvent = Annotated[Union[SingleEvent, RecurringEvent], Field(discriminator="type")]


class AnomalyKind(str, Enum):
    """Kinds of recoverable per-event anomalies."""

    UNRESOLVABLE_INSTANT = "unresolvable_instant"
    MALFORMED_COMPONENT = "malformed_component"
    ORPHAN_OVERRIDE = "orphan_override"
    MISMATCHED_OVERRIDE = "mismatched_override"
    VALIDATION_REJECTED = "validation_rejected"
    DUPLICATE_UID = "duplicate_uid"


class IngestAnomaly(BaseModel):
    """A single recoverable anomaly observed during ingestion."""

    kind: AnomalyKind
    uid: Optional[str] = None
    event_id: Optional[str] = None
    message: str = ""

    model_config = ConfigDict(use_enum_values=True)


class IngestDiagnostics(BaseModel):
    """Collector for recoverable anomalies.

    Callers may pass their own instance into an ingestion call to inspect
    anomaly counts afterwards without parsing log text.
    """

    anomalies: list[IngestAnomaly] = Field(default_factory=list)

    def record(
        self,
        kind: AnomalyKind,
        uid: Optional[str] = None,
        message: str = "",
        event_id: Optional[str] = None,
    ) -> None:
        """Record an anomaly."""
        self.anomalies.append(IngestAnomaly(kind=kind, uid=uid, event_id=event_id, message=message))

    def count(self, kind: AnomalyKind) -> int:
        """Return how many anomalies of the given kind were recorded."""
        return sum(1 for anomaly in self.anomalies if anomaly.kind == kind)

    def by_kind(self, kind: AnomalyKind) -> list[IngestAnomaly]:
        return [anomaly for anomaly in self.anomalies if anomaly.kind == kind]

    @property
    def has_anomalies(self) -> bool:
        return bool(self.anomalies)


class IcsIngestResult(BaseModel):
    """Result of one ingestion call."""

    events: list[CanonicalEvent] = Field(default_factory=list)
    diagnostics: IngestDiagnostics = Field(default_factory=IngestDiagnostics)
    canonical_timezone: str
    calendar_name: Optional[str] = None

    # Parse statistics
    vevent_count: int = 0
    base_event_count: int = 0
    override_event_count: int = 0

    parse_time: datetime = Field(default_factory=now_utc)

    @field_serializer("parse_time")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()

    def as_records(self) -> list[dict[str, Any]]:
        """Return events as JSON-compatible dicts."""
        return [event.model_dump(mode="json") for event in self.events]
