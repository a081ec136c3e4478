"""ICS ingestion entry point: parse, partition, convert, reconcile, validate."""

import logging
from datetime import tzinfo
from typing import Any, Optional

from icalendar import Calendar, Event as ICalEvent

from ics_ingest.calendar.event_builder import IcsEventBuilder, component_uid, event_instants
from ics_ingest.calendar.event_validator import EventValidator, validate_event
from ics_ingest.calendar.exceptions import (
    IcsContentTooLargeError,
    IcsFormatError,
    UnresolvableInstantError,
)
from ics_ingest.calendar.models import (
    AnomalyKind,
    CanonicalEvent,
    IcsIngestResult,
    IngestDiagnostics,
)
from ics_ingest.calendar.recurrence_reconciler import RecurrenceReconciler
from ics_ingest.calendar.time_normalizer import TimeNormalizer
from ics_ingest.core.config_manager import IngestSettings, get_config_value

logger = logging.getLogger(__name__)


def parse_calendar(ics_content: str) -> Calendar:
    """Parse raw text into a VCALENDAR component tree.

    Raises:
        IcsFormatError: If the text is empty or not a single VCALENDAR
    """
    if not ics_content or not ics_content.strip():
        raise IcsFormatError("Empty ICS content")

    try:
        calendar = Calendar.from_ical(ics_content)
    except (ValueError, IndexError, KeyError) as e:
        raise IcsFormatError(f"Malformed ICS content: {e}") from e

    if getattr(calendar, "name", None) != "VCALENDAR":
        raise IcsFormatError(f"Expected VCALENDAR, got {getattr(calendar, 'name', None)!r}")
    return calendar


def subcomponents(calendar: Calendar, name: str) -> list[Any]:
    """Return direct subcomponents of the calendar with the given name."""
    return [component for component in calendar.subcomponents if component.name == name]


def build_zone_registry(calendar: Calendar) -> dict[str, tzinfo]:
    """Convert the calendar's VTIMEZONE components into tzinfo objects keyed by TZID.

    The registry belongs to a single ingestion call; nothing is registered
    process-wide.
    """
    registry: dict[str, tzinfo] = {}
    for vtimezone in subcomponents(calendar, "VTIMEZONE"):
        tzid = str(vtimezone.get("TZID", "")).strip()
        if not tzid:
            logger.warning("Ignoring VTIMEZONE without TZID")
            continue
        try:
            registry[tzid] = vtimezone.to_tz()
        except Exception:
            # Falls back to IANA lookup of the TZID during normalization
            logger.warning("Failed to build timezone from VTIMEZONE %r", tzid, exc_info=True)
            continue
        logger.debug("Registered VTIMEZONE %s", tzid)
    return registry


def ensure_instants_resolvable(component: ICalEvent, normalizer: TimeNormalizer) -> None:
    """Check that a VEVENT's start and end resolve to concrete points in time.

    Raises:
        UnresolvableInstantError: If either instant cannot be resolved
    """
    try:
        start, end = event_instants(component)
        for instant in (start, end):
            normalizer.localize(instant.value, instant.zone_name)
    except IcsFormatError as e:
        raise UnresolvableInstantError(component_uid(component), str(e)) from e


def is_override(component: ICalEvent) -> bool:
    """Return True when the component overrides one occurrence of a series."""
    return component.get("RECURRENCE-ID") is not None


class IcsIngestor:
    """Converts raw iCalendar text into canonical events."""

    def __init__(
        self,
        settings: Any = None,
        validator: Optional[EventValidator] = None,
    ) -> None:
        """Initialize ingestor.

        Args:
            settings: IngestSettings, a mapping, or any object exposing the
                IngestSettings fields as attributes. Defaults apply when None.
            validator: Candidate validator; defaults to validate_event
        """
        self.settings = self._coerce_settings(settings)
        self.validator: EventValidator = validator or validate_event
        logger.debug("ICS ingestor initialized (canonical zone %s)", self.settings.canonical_timezone)

    @staticmethod
    def _coerce_settings(settings: Any) -> IngestSettings:
        if settings is None:
            return IngestSettings()
        if isinstance(settings, IngestSettings):
            return settings
        values = {
            field: get_config_value(settings, field)
            for field in IngestSettings.model_fields
        }
        return IngestSettings.model_validate(
            {key: value for key, value in values.items() if value is not None}
        )

    def _validate_ics_size(self, ics_content: str) -> None:
        """Validate ICS content size before processing.

        Raises:
            IcsContentTooLargeError: If content exceeds maximum size limit
        """
        size_bytes = len(ics_content.encode("utf-8"))

        if size_bytes > self.settings.max_ics_size_bytes:
            logger.error(
                "ICS content too large: %s bytes exceeds %s limit",
                size_bytes,
                self.settings.max_ics_size_bytes,
            )
            raise IcsContentTooLargeError(
                f"ICS content too large: {size_bytes} bytes exceeds "
                f"{self.settings.max_ics_size_bytes} limit"
            )

        if size_bytes > self.settings.max_ics_size_warning_bytes:
            logger.warning(
                "Large ICS content detected: %s bytes (threshold: %s)",
                size_bytes,
                self.settings.max_ics_size_warning_bytes,
            )

    def ingest(
        self,
        ics_content: str,
        diagnostics: Optional[IngestDiagnostics] = None,
    ) -> IcsIngestResult:
        """Convert ICS text into validated canonical events.

        Args:
            ics_content: Raw RFC 5545 text
            diagnostics: Optional collector for recoverable anomalies

        Returns:
            Result with events (base events first, then overrides, each in
            source order) and the diagnostics collected along the way

        Raises:
            IcsFormatError: If the text is not a parseable VCALENDAR
        """
        if diagnostics is None:
            diagnostics = IngestDiagnostics()

        if ics_content is None:
            raise IcsFormatError("ICS content cannot be None")
        self._validate_ics_size(ics_content)
        calendar = parse_calendar(ics_content)

        normalizer = TimeNormalizer(self.settings.canonical_timezone, build_zone_registry(calendar))
        builder = IcsEventBuilder(normalizer, max_title_length=self.settings.max_title_length)

        vevents = subcomponents(calendar, "VEVENT")
        resolvable = self._resolvable_vevents(vevents, normalizer, diagnostics)
        base_components = [c for c in resolvable if not is_override(c)]
        override_components = [c for c in resolvable if is_override(c)]

        base_events: dict[str, dict[str, Any]] = {}
        for component in base_components:
            uid = component_uid(component)
            candidate = self._convert(builder, component, diagnostics)
            if candidate is None:
                continue
            if uid in base_events:
                logger.warning("Duplicate UID %s among base events; keeping the later one", uid)
                diagnostics.record(AnomalyKind.DUPLICATE_UID, uid=uid, message="Duplicate base event")
            base_events[uid] = candidate

        overrides: list[tuple[str, dict[str, Any]]] = []
        for component in override_components:
            candidate = self._convert(builder, component, diagnostics)
            if candidate is not None:
                overrides.append((component_uid(component), candidate))

        candidates = RecurrenceReconciler(diagnostics).reconcile(base_events, overrides)
        events = self._validate_candidates(candidates, diagnostics)

        logger.debug(
            "Ingested %d events from %d VEVENTs (%d base, %d overrides, %d anomalies)",
            len(events),
            len(vevents),
            len(base_components),
            len(override_components),
            len(diagnostics.anomalies),
        )

        calendar_name = calendar.get("X-WR-CALNAME")
        return IcsIngestResult(
            events=events,
            diagnostics=diagnostics,
            canonical_timezone=self.settings.canonical_timezone,
            calendar_name=str(calendar_name) if calendar_name is not None else None,
            vevent_count=len(vevents),
            base_event_count=len(base_components),
            override_event_count=len(override_components),
        )

    def _resolvable_vevents(
        self,
        vevents: list[ICalEvent],
        normalizer: TimeNormalizer,
        diagnostics: IngestDiagnostics,
    ) -> list[ICalEvent]:
        resolvable = []
        for component in vevents:
            try:
                ensure_instants_resolvable(component, normalizer)
            except UnresolvableInstantError as e:
                logger.warning("Skipping event with invalid time: %s", e)
                diagnostics.record(AnomalyKind.UNRESOLVABLE_INSTANT, uid=e.uid, message=e.reason)
                continue
            resolvable.append(component)
        return resolvable

    def _convert(
        self,
        builder: IcsEventBuilder,
        component: ICalEvent,
        diagnostics: IngestDiagnostics,
    ) -> Optional[dict[str, Any]]:
        try:
            return builder.convert(component)
        except IcsFormatError as e:
            uid = component_uid(component)
            logger.warning("Event %s could not be converted, skipping: %s", uid, e)
            diagnostics.record(AnomalyKind.MALFORMED_COMPONENT, uid=uid, message=str(e))
            return None

    def _validate_candidates(
        self,
        candidates: list[dict[str, Any]],
        diagnostics: IngestDiagnostics,
    ) -> list[CanonicalEvent]:
        events: list[CanonicalEvent] = []
        for candidate in candidates:
            event = self.validator(candidate)
            if event is None:
                diagnostics.record(
                    AnomalyKind.VALIDATION_REJECTED,
                    event_id=candidate.get("id"),
                    message="Rejected by validator",
                )
                continue
            events.append(event)
        return events


def get_events_from_ics(
    ics_content: str,
    *,
    settings: Any = None,
    validator: Optional[EventValidator] = None,
    diagnostics: Optional[IngestDiagnostics] = None,
) -> list[CanonicalEvent]:
    """Convert ICS text into canonical events.

    Args:
        ics_content: Raw RFC 5545 text
        settings: Optional settings (see IcsIngestor)
        validator: Optional candidate validator
        diagnostics: Optional collector for recoverable anomalies

    Returns:
        Validated canonical events in output order

    Raises:
        IcsFormatError: If the text is not a parseable VCALENDAR
    """
    ingestor = IcsIngestor(settings=settings, validator=validator)
    return ingestor.ingest(ics_content, diagnostics=diagnostics).events

