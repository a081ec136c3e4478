"""Folding of RECURRENCE-ID overrides into their recurring series.

An override describes one modified occurrence of a series. The canonical
model has no notion of an edited occurrence: the original slot is excluded
from the series through its skip dates and the override is kept as a
standalone single event.
"""

import logging
from typing import Any

from ics_ingest.calendar.event_builder import RECURRING_EVENT_TYPE, SINGLE_EVENT_TYPE
from ics_ingest.calendar.models import AnomalyKind, IngestDiagnostics

logger = logging.getLogger(__name__)


class RecurrenceReconciler:
    """Merges override candidates into base candidates as skip dates."""

    def __init__(self, diagnostics: IngestDiagnostics):
        self.diagnostics = diagnostics

    def reconcile(
        self,
        base_events: dict[str, dict[str, Any]],
        overrides: list[tuple[str, dict[str, Any]]],
    ) -> list[dict[str, Any]]:
        """Apply overrides to their base series and return all candidates.

        Args:
            base_events: Base candidates keyed by UID, in source order
            overrides: (UID, candidate) pairs for RECURRENCE-ID components, in source order

        Returns:
            Base candidates followed by override candidates. Skip dates of
            matching recurring base candidates are extended in place, in
            override order.
        """
        for uid, override in overrides:
            base_event = base_events.get(uid)
            if base_event is None:
                logger.debug("Override %s references no known series, ignoring", override.get("id"))
                self.diagnostics.record(
                    AnomalyKind.ORPHAN_OVERRIDE,
                    uid=uid,
                    message="Override references no base event",
                )
                continue

            if (
                base_event.get("type") != RECURRING_EVENT_TYPE
                or override.get("type") != SINGLE_EVENT_TYPE
            ):
                logger.warning(
                    "Recurrence exception was recurring or base event was not recurring: "
                    "base=%s override=%s",
                    base_event.get("id"),
                    override.get("id"),
                )
                self.diagnostics.record(
                    AnomalyKind.MISMATCHED_OVERRIDE,
                    uid=uid,
                    message=(
                        f"base type {base_event.get('type')!r}, "
                        f"override type {override.get('type')!r}"
                    ),
                )
                continue

            base_event["skip_dates"].append(override["date"])

        return [*base_events.values(), *(override for _, override in overrides)]
