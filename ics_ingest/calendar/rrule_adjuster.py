"""BYDAY adjustment for recurrence rules whose start crosses a day boundary.

BYDAY tokens are authored against the weekday of the series start in its
source zone. When that start falls on a different weekday in UTC, each
token is rotated by the same number of days so occurrences keep landing on
the intended day after zone normalization.
"""

import logging
import re
from datetime import UTC, datetime
from typing import Optional

from ics_ingest.calendar.time_normalizer import IcsInstant, TimeNormalizer

logger = logging.getLogger(__name__)

# Monday-start weekday cycle used for token rotation
WEEK_DAYS = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")

_BYDAY_TOKEN_RE = re.compile(r"^([+-]?\d{0,2})(MO|TU|WE|TH|FR|SA|SU)$")


def _sunday_based_weekday(dt: datetime) -> int:
    """Weekday index with 0=Sunday."""
    return dt.isoweekday() % 7


def compute_day_shift(start_local: datetime) -> int:
    """Return how many days the UTC weekday of start_local is ahead of its local weekday.

    Args:
        start_local: Aware datetime in the source zone of the series start

    Returns:
        Shift in the range 0..6
    """
    start_utc = start_local.astimezone(UTC)
    return (_sunday_based_weekday(start_utc) - _sunday_based_weekday(start_local)) % 7


def rotate_weekday_token(token: str, day_shift: int) -> str:
    """Rotate one BYDAY token (optionally with an ordinal prefix) forward by day_shift days."""
    match = _BYDAY_TOKEN_RE.match(token.strip().upper())
    if match is None:
        logger.warning("Unrecognized BYDAY token %r left unchanged", token)
        return token
    ordinal, weekday = match.groups()
    index = (WEEK_DAYS.index(weekday) + day_shift + 7) % 7
    return f"{ordinal}{WEEK_DAYS[index]}"


def rotate_byday(rule: str, day_shift: int) -> str:
    """Rewrite the BYDAY part of an RRULE value, leaving every other part untouched.

    No rewrite happens when the shift is zero or the rule has no BYDAY part.
    """
    if day_shift % 7 == 0:
        return rule

    parts = rule.split(";")
    rewritten = False
    for i, part in enumerate(parts):
        key, sep, value = part.partition("=")
        if sep and key.strip().upper() == "BYDAY" and value:
            tokens = [rotate_weekday_token(token, day_shift) for token in value.split(",")]
            parts[i] = f"{key}={','.join(tokens)}"
            rewritten = True

    return ";".join(parts) if rewritten else rule


def adjust_rrule_weekdays(
    rule: str,
    start: IcsInstant,
    normalizer: TimeNormalizer,
) -> str:
    """Rotate BYDAY tokens of rule to compensate for the start's UTC day shift.

    Args:
        rule: Raw RRULE value (without the "RRULE:" prefix)
        start: Series start instant
        normalizer: Normalizer used to localize the start in its source zone

    Returns:
        The rule, rewritten when the start's weekday differs between its
        source zone and UTC
    """
    if start.is_date:
        return rule

    day_shift = compute_day_shift(normalizer.localize(start.value, start.zone_name))
    if day_shift == 0:
        return rule

    adjusted = rotate_byday(rule, day_shift)
    if adjusted != rule:
        logger.debug("Rotated BYDAY by %d day(s): %s -> %s", day_shift, rule, adjusted)
    return adjusted


def strip_rrule_prefix(rule: Optional[str]) -> str:
    """Return an RRULE value without a leading "RRULE:" name."""
    if not rule:
        return ""
    rule = rule.strip()
    if rule.upper().startswith("RRULE:"):
        return rule[len("RRULE:") :]
    return rule
