"""Validation of candidate records against the canonical event schema."""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Optional

from pydantic import TypeAdapter, ValidationError

from ics_ingest.calendar.models import CanonicalEvent

logger = logging.getLogger(__name__)

# Accepts a loosely-typed candidate record; returns None to reject it
EventValidator = Callable[[Mapping[str, Any]], Optional[CanonicalEvent]]

_canonical_event_adapter = TypeAdapter(CanonicalEvent)


def validate_event(candidate: Mapping[str, Any]) -> Optional[CanonicalEvent]:
    """Validate a candidate record into a SingleEvent or RecurringEvent.

    Keys whose value is None are treated as absent.

    Args:
        candidate: Candidate record produced by the event builder

    Returns:
        The validated event, or None when the candidate is rejected
    """
    data = {key: value for key, value in candidate.items() if value is not None}
    try:
        return _canonical_event_adapter.validate_python(data)
    except ValidationError as e:
        logger.warning(
            "Rejected event %s: %d validation error(s): %s",
            candidate.get("id"),
            e.error_count(),
            "; ".join(error["msg"] for error in e.errors()),
        )
        return None
