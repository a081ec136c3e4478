"""Exception hierarchy for ICS ingestion errors.

Fatal errors (malformed calendar text, oversized input) propagate out of an
ingestion call. Per-event errors are raised internally and caught at the
component boundary, where they are recorded as diagnostics instead.
"""


class IcsIngestError(Exception):
    """Base exception for all ICS ingestion errors."""


class IcsFormatError(IcsIngestError):
    """Calendar text, a timestamp, or a zone name could not be parsed.

    Raised when:
    - The top-level VCALENDAR text is malformed
    - A DATE/DATE-TIME value does not match any accepted format
    - A TZID names a zone that is neither declared in the calendar nor known
      to the IANA database
    """


class IcsContentTooLargeError(IcsFormatError):
    """Raised when ICS content exceeds the configured size limit."""


class UnresolvableInstantError(IcsIngestError):
    """A VEVENT start or end cannot be resolved to a concrete point in time.

    Only the offending VEVENT is dropped; ingestion of the calendar continues.
    """

    def __init__(self, uid: str, reason: str):
        super().__init__(f"Event {uid} has an unresolvable instant: {reason}")
        self.uid = uid
        self.reason = reason
