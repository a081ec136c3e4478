"""ICS calendar conversion: parsing, normalization, reconciliation and validation."""

from ics_ingest.calendar.exceptions import (
    IcsContentTooLargeError,
    IcsFormatError,
    IcsIngestError,
    UnresolvableInstantError,
)
from ics_ingest.calendar.ics_parser import IcsIngestor, get_events_from_ics
from ics_ingest.calendar.models import (
    AnomalyKind,
    CanonicalEvent,
    IcsIngestResult,
    IngestDiagnostics,
    RecurringEvent,
    SingleEvent,
)

__all__ = [
    "AnomalyKind",
    "CanonicalEvent",
    "IcsContentTooLargeError",
    "IcsFormatError",
    "IcsIngestError",
    "IcsIngestResult",
    "IcsIngestor",
    "IngestDiagnostics",
    "RecurringEvent",
    "SingleEvent",
    "UnresolvableInstantError",
    "get_events_from_ics",
]
