"""Deterministic timeline building and merging.

Events come from three places: the reasoning service's reconstruction,
dated ``event`` facts extracted from each party's statement, and dates
found in evidence entities. ``merge_timeline_events`` folds them into one
chronological list.
"""

import math
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from src.analysis.schemas import (
    EvidenceSummary,
    ExtractedFact,
    FactCategory,
    TimelineEvent,
    TimelineSource,
)

DEDUP_PREFIX_LENGTH = 50
EVIDENCE_DETAILS_LIMIT = 200


def _dedup_key(event: TimelineEvent) -> Tuple[str, str]:
    return event.date, event.event[:DEDUP_PREFIX_LENGTH].lower()


def _sort_key(event: TimelineEvent):
    # Dated events first, in date order; undated ones after, by raw date text.
    if event.parsed_date is not None:
        return (0, event.parsed_date, "")
    return (1, datetime.min, event.date)


def merge_timeline_events(*sources: Iterable[TimelineEvent]) -> List[TimelineEvent]:
    """Concatenate, deduplicate (first occurrence wins) and sort ``sources``.

    The merge is idempotent: merging a list with itself gives the same result
    as merging it alone, since duplicates are dropped before the stable sort.
    """
    seen = set()
    unique: List[TimelineEvent] = []
    for source in sources:
        for event in source:
            key = _dedup_key(event)
            if key in seen:
                continue
            seen.add(key)
            unique.append(event)
    return sorted(unique, key=_sort_key)


def extract_events_from_facts(
    claimant_facts: Sequence[ExtractedFact],
    respondent_facts: Sequence[ExtractedFact],
) -> List[TimelineEvent]:
    events: List[TimelineEvent] = []
    for party, facts in (
        (TimelineSource.CLAIMANT, claimant_facts),
        (TimelineSource.RESPONDENT, respondent_facts),
    ):
        dated = [f for f in facts if f.date and f.category == FactCategory.EVENT]
        for n, fact in enumerate(dated, start=1):
            events.append(TimelineEvent(
                id=f"{party.value}_event_{n}",
                date=fact.date,
                event=fact.statement,
                source=party,
                source_id=fact.id,
            ))
    return events


def extract_events_from_evidence(evidence_summaries: Sequence[EvidenceSummary]) -> List[TimelineEvent]:
    events: List[TimelineEvent] = []
    for i, evidence in enumerate(evidence_summaries, start=1):
        dates = evidence.entities.dates if evidence.entities else []
        details = evidence.summary[:EVIDENCE_DETAILS_LIMIT] if evidence.summary else None
        for j, date in enumerate(dates, start=1):
            if not date or not date.strip():
                continue
            events.append(TimelineEvent(
                id=f"evidence_{i}_date_{j}",
                date=date,
                event=f"Date referenced in {evidence.file_name}",
                source=TimelineSource.EVIDENCE,
                source_id=evidence.id,
                details=details,
            ))
    return events


def mark_disputed_events(events: Sequence[TimelineEvent], disputed_topics: Sequence[str]) -> List[TimelineEvent]:
    """Flag events whose text mentions any disputed topic."""
    topics = [t.lower() for t in disputed_topics if t]
    marked = []
    for event in events:
        if not event.disputed and any(topic in event.event.lower() for topic in topics):
            event = event.model_copy(update={"disputed": True})
        marked.append(event)
    return marked


def timeline_span_days(events: Sequence[TimelineEvent]) -> Optional[int]:
    """Whole days between the earliest and latest dated events; None with fewer than two."""
    dates = [e.parsed_date for e in events if e.parsed_date is not None]
    if len(dates) < 2:
        return None
    return math.ceil((max(dates) - min(dates)).total_seconds() / 86400)


def format_timeline_for_display(events: Sequence[TimelineEvent]) -> str:
    if not events:
        return "No timeline events identified."
    return "\n".join(
        f"{e.date}: {e.event} ({e.source.value}){' [DISPUTED]' if e.disputed else ''}"
        for e in events
    )
