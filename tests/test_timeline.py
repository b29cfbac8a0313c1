"""Tests for date parsing and deterministic timeline building."""
from datetime import datetime

import pytest

from src.analysis.dates import parse_event_date
from src.analysis.schemas import (
    EvidenceEntities,
    EvidenceSummary,
    ExtractedFact,
    FactCategory,
    PartySource,
    TimelineEvent,
    TimelineSource,
)
from src.analysis.timeline import (
    extract_events_from_evidence,
    extract_events_from_facts,
    format_timeline_for_display,
    mark_disputed_events,
    merge_timeline_events,
    timeline_span_days,
)


def _event(event_id: str, date: str, text: str, **kwargs) -> TimelineEvent:
    return TimelineEvent(id=event_id, date=date, event=text, **kwargs)


# ---------------------------------------------------------------------------
# parse_event_date
# ---------------------------------------------------------------------------

class TestParseEventDate:
    @pytest.mark.parametrize("raw,expected", [
        ("2024-01-15", datetime(2024, 1, 15)),
        ("01/15/2024", datetime(2024, 1, 15)),
        ("January 15, 2024", datetime(2024, 1, 15)),
        ("Jan 15th, 2024", datetime(2024, 1, 15)),
        ("15 January 2024", datetime(2024, 1, 15)),
        ("March 2024", datetime(2024, 3, 1)),
        ("Sept 3, 2024", datetime(2024, 9, 3)),
        ("2024", datetime(2024, 1, 1)),
        ("2024-01-15T12:00:00Z", datetime(2024, 1, 15, 12, 0)),
    ])
    def test_supported_formats(self, raw, expected):
        assert parse_event_date(raw) == expected

    @pytest.mark.parametrize("raw", ["unknown", "early 2024", "last spring", "", None, "the 5th"])
    def test_vague_dates_are_unparsed(self, raw):
        assert parse_event_date(raw) is None


# ---------------------------------------------------------------------------
# merge_timeline_events
# ---------------------------------------------------------------------------

class TestMergeTimelineEvents:
    def test_sorts_dated_before_undated(self):
        merged = merge_timeline_events([
            _event("u", "unknown", "Phone call"),
            _event("b", "2024-03-01", "Deadline"),
            _event("a", "January 2, 2024", "Contract signed"),
            _event("v", "early 2024", "Site visit"),
        ])

        assert [e.id for e in merged] == ["a", "b", "v", "u"]

    def test_deduplicates_on_date_and_text_prefix(self):
        long_text = "Contractor arrived on site and started the demolition of the old kitchen"
        first = _event("first", "2024-01-20", long_text)
        second = _event("second", "2024-01-20", long_text.upper() + " (per invoice)")
        other_day = _event("third", "2024-01-21", long_text)

        merged = merge_timeline_events([first], [second, other_day])

        assert [e.id for e in merged] == ["first", "third"]

    def test_merge_is_idempotent(self):
        events = [
            _event("a", "2024-02-01", "Work began"),
            _event("b", "unknown", "Dispute arose"),
            _event("c", "2024-01-01", "Deposit paid"),
        ]
        once = merge_timeline_events(events)

        assert merge_timeline_events(events, events) == once
        assert merge_timeline_events(once) == once

    def test_stable_for_equal_dates(self):
        merged = merge_timeline_events([
            _event("x", "2024-01-01", "First thing"),
            _event("y", "2024-01-01", "Second thing"),
        ])
        assert [e.id for e in merged] == ["x", "y"]


# ---------------------------------------------------------------------------
# Deterministic event sources
# ---------------------------------------------------------------------------

class TestEventSources:
    def test_only_dated_event_facts_become_events(self):
        claimant = [
            ExtractedFact(id="c1", statement="Deposit paid", category=FactCategory.EVENT, date="2024-01-15"),
            ExtractedFact(id="c2", statement="Wants refund", category=FactCategory.CLAIM, date="2024-02-01"),
            ExtractedFact(id="c3", statement="Work started", category=FactCategory.EVENT),
        ]
        respondent = [
            ExtractedFact(id="r1", statement="Order changed", category=FactCategory.EVENT, date="February 2024"),
        ]

        events = extract_events_from_facts(claimant, respondent)

        assert [(e.id, e.source, e.source_id) for e in events] == [
            ("claimant_event_1", TimelineSource.CLAIMANT, "c1"),
            ("respondent_event_1", TimelineSource.RESPONDENT, "r1"),
        ]

    def test_evidence_dates_become_events(self):
        evidence = [
            EvidenceSummary(
                id="ev_1",
                file_name="invoice.pdf",
                summary="x" * 300,
                entities=EvidenceEntities(dates=["2024-01-15", "  ", "2024-02-01"]),
                submitted_by=PartySource.CLAIMANT,
            ),
            EvidenceSummary(id="ev_2", file_name="photo.jpg", submitted_by=PartySource.RESPONDENT),
        ]

        events = extract_events_from_evidence(evidence)

        assert [e.id for e in events] == ["evidence_1_date_1", "evidence_1_date_3"]
        assert events[0].event == "Date referenced in invoice.pdf"
        assert events[0].source == TimelineSource.EVIDENCE
        assert len(events[0].details) == 200

    def test_mark_disputed_is_case_insensitive(self):
        events = [_event("a", "2024-01-01", "Cabinet Delivery failed"), _event("b", "2024-01-02", "Invoice")]
        marked = mark_disputed_events(events, ["cabinet delivery"])

        assert [e.disputed for e in marked] == [True, False]


class TestTimelineHelpers:
    def test_span_days(self):
        events = [
            _event("a", "2024-01-01", "Start"),
            _event("b", "2024-01-31", "End"),
            _event("c", "unknown", "Sometime"),
        ]
        assert timeline_span_days(events) == 30

    def test_span_needs_two_dated_events(self):
        assert timeline_span_days([_event("a", "2024-01-01", "Only")]) is None

    def test_display_flags_disputed_events(self):
        text = format_timeline_for_display([_event("a", "2024-01-01", "Start", disputed=True)])
        assert text == "2024-01-01: Start (claimant) [DISPUTED]"
