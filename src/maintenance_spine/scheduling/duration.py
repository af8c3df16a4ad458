"""Duration-string parsing.

Maintenance durations are entered by people, so a few spellings are
accepted and normalized to whole minutes:

    ""          -> 0
    "90"        -> 90
    "1h30m"     -> 90
    "2d 4h"     -> 3120
    "45M"       -> 45
"""

from __future__ import annotations

import re

from maintenance_spine.core.errors import DurationParseError

_PLAIN_MINUTES = re.compile(r"^\s*(\d+)\s*$")
_UNIT_PARTS = re.compile(
    r"^\s*(?:(?P<days>\d+)\s*d)?\s*(?:(?P<hours>\d+)\s*h)?\s*(?:(?P<minutes>\d+)\s*m)?\s*$",
    re.IGNORECASE,
)


def parse_duration(text: str | None) -> int:
    """Parse *text* into a non-negative number of minutes.

    Raises:
        DurationParseError: If the text is neither a plain minute count nor
            a combination of ``<n>d``, ``<n>h`` and ``<n>m`` parts.
    """
    if text is None or not text.strip():
        return 0

    plain = _PLAIN_MINUTES.match(text)
    if plain:
        return int(plain.group(1))

    parts = _UNIT_PARTS.match(text)
    if parts is None or not any(parts.groupdict().values()):
        raise DurationParseError(text)

    days = int(parts.group("days") or 0)
    hours = int(parts.group("hours") or 0)
    minutes = int(parts.group("minutes") or 0)
    return days * 1440 + hours * 60 + minutes
