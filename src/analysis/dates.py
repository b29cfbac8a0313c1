"""Lenient parsing of the free-text dates found in statements and evidence."""

import re
from datetime import datetime, timezone
from typing import Optional

_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%d %B, %Y",
    "%B %Y",
    "%b %Y",
    "%B, %Y",
    "%Y",
)

_ORDINAL = re.compile(r"(\d{1,2})(st|nd|rd|th)\b", re.IGNORECASE)
_YEAR = re.compile(r"\b\d{4}\b")


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_event_date(raw: Optional[str]) -> Optional[datetime]:
    """Parse ``raw`` into a naive UTC datetime, or ``None`` when it is not a real date.

    Vague expressions ("unknown", "early 2024", "last spring") deliberately
    return ``None`` so such events sort after every dated event.
    """
    if not raw:
        return None
    text = raw.strip()
    if not text or text.lower() == "unknown" or not _YEAR.search(text):
        return None

    try:
        return _naive_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    text = _ORDINAL.sub(r"\1", text)
    text = re.sub(r"\bsept\b", "sep", text, flags=re.IGNORECASE)
    text = re.sub(r"\s+", " ", text)
    for fmt in _FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None
