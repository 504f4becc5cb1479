from __future__ import annotations

import datetime
import logging

from dateutil.parser import isoparse

# e.g. "2017-01-11 01:55:33 +0000" as found in the channel release listings
RELEASE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def parse_release_date(date_str: str | None) -> datetime.datetime | None:
    """
    Parse a release date from a listing entry. Both the listing format ("YYYY-MM-DD HH:MM:SS ±ZZZZ")
    and ISO-8601 are accepted, nothing looser. Dates without an offset are taken to be UTC. Returns None for
    missing or unparseable input.
    """
    if not date_str or not isinstance(date_str, str):
        return None

    parsed: datetime.datetime | None = None
    try:
        parsed = datetime.datetime.strptime(date_str, RELEASE_DATE_FORMAT)
    except ValueError:
        try:
            parsed = isoparse(date_str)
        except (ValueError, OverflowError) as e:
            logging.warning(f"failed to parse release date {date_str!r}: {e}")
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.UTC)
    return parsed
