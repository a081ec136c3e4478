"""ics_ingest - converts iCalendar text into canonical calendar events.

Raw RFC 5545 text (as served by CalDAV servers or read from .ics files) is
turned into single and recurring event records expressed in one canonical
timezone, with EXDATE exclusions and RECURRENCE-ID overrides reconciled.
"""

__version__ = "0.1.0"

import logging
import os
from typing import Optional

from ics_ingest.calendar import (
    AnomalyKind,
    CanonicalEvent,
    IcsFormatError,
    IcsIngestError,
    IcsIngestor,
    IcsIngestResult,
    IngestDiagnostics,
    RecurringEvent,
    SingleEvent,
    get_events_from_ics,
)
from ics_ingest.core.logging_config import configure_ingest_logging, install_console_handler


def init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console at the given level.

    Honors the ICS_INGEST_DEBUG environment variable (truthy values: "1",
    "true", "yes", "on"), which forces DEBUG verbosity.
    """
    debug_env = os.environ.get("ICS_INGEST_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    install_console_handler()

    level = logging.INFO
    if isinstance(level_name, str):
        resolved = logging.getLevelName(level_name.upper())
        if isinstance(resolved, int):
            level = resolved
    logging.getLogger().setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


__all__ = [
    "AnomalyKind",
    "CanonicalEvent",
    "IcsFormatError",
    "IcsIngestError",
    "IcsIngestResult",
    "IcsIngestor",
    "IngestDiagnostics",
    "RecurringEvent",
    "SingleEvent",
    "configure_ingest_logging",
    "get_events_from_ics",
    "init_logging",
]
