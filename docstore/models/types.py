"""
docstore — Custom Column Types
===============================

What:  `UTCDateTime`, a timestamp column stored as ISO-8601 text with an
       explicit UTC offset (e.g. 2026-10-19T08:30:00.000000+00:00).
How:   Writes reject naive datetimes; reads parse strictly and raise
       DataCorruptionError on anything that is not a zone-qualified timestamp.

All values are rendered in UTC with fixed microsecond precision, so the
text sorts in chronological order and ORDER BY on the column is correct.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator

from docstore.exceptions import DataCorruptionError


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime persisted as fixed-width ISO-8601 UTC text."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, datetime):
            raise TypeError(f"UTCDateTime expects a datetime, got {type(value).__name__}")
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("Naive datetime cannot be stored; attach a timezone first")
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")

    def process_result_value(self, value: Optional[str], dialect) -> Optional[datetime]:
        if value is None:
            return None
        try:
            parsed = datetime.fromisoformat(value)
        except (TypeError, ValueError):
            raise DataCorruptionError(
                message="A stored timestamp could not be parsed.",
                context={"raw_value": value},
            )
        if parsed.tzinfo is None:
            raise DataCorruptionError(
                message="A stored timestamp has no timezone.",
                context={"raw_value": value},
            )
        return parsed.astimezone(timezone.utc)
