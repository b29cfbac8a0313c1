"""Parsing and validation of reasoning-service responses.

Every ``parse_*`` function here returns a ``ParseResult`` and never raises:
on malformed output the phase's empty default is returned together with an
error message, and the failure is logged with a short preview of the raw
text (length and hash only, never the full content).
"""

import hashlib
import json
import logging
import re
from typing import Any, Dict, Generic, Iterable, List, NamedTuple, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from src.analysis.exceptions import ResponseParseError
from src.analysis.schemas import (
    Contradiction,
    ContradictionResult,
    ContradictionSeverity,
    CredibilityFactors,
    CredibilityResult,
    DisputedFact,
    ExtractedFact,
    FactComparisonResult,
    ParsedClaim,
    PartyCredibilityScore,
    TimelineEvent,
    TimelineResult,
    UndisputedFact,
    clamp_unit,
)
from src.analysis.scoring import weighted_overall
from src.analysis.timeline import mark_disputed_events

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)


class ParseResult(NamedTuple, Generic[T]):
    value: T
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def preview(raw: Optional[str]) -> str:
    """Safe log representation of raw model output."""
    raw = raw or ""
    digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()[:12]
    return f"len={len(raw)} sha256={digest}"


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```), if any."""
    text = (text or "").strip()
    match = _FENCE.match(text)
    if match:
        return match.group(1).strip()
    return text


_JSON_NAMES = {list: "array", dict: "object"}


def load_json_payload(raw: str, expected: type) -> Any:
    """Decode ``raw`` and check it is a JSON array (``list``) or object (``dict``).

    Raises ``ResponseParseError``; callers at the phase boundary turn that
    into the phase default.
    """
    text = strip_code_fence(raw)
    if not text:
        raise ResponseParseError("Empty response")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Response is not valid JSON: {e.msg}") from e
    if not isinstance(data, expected):
        raise ResponseParseError(
            f"Expected a JSON {_JSON_NAMES[expected]}, got {type(data).__name__}"
        )
    return data


def validate_records(
    items: Iterable[Any],
    model: Type[M],
    fallback_id: str,
    start: int = 1,
) -> List[M]:
    """Validate each dict in ``items`` against ``model``; invalid records are dropped.

    ``fallback_id`` is a format string taking the 1-based record position and
    is used when the record has no id of its own.
    """
    records: List[M] = []
    for index, item in enumerate(items, start=start):
        if not isinstance(item, dict):
            continue
        data = dict(item)
        record_id = data.get("id")
        if record_id is None or isinstance(record_id, (dict, list)) or not str(record_id).strip():
            data["id"] = fallback_id.format(n=index)
        else:
            data["id"] = str(record_id).strip()
        try:
            records.append(model.model_validate(data))
        except ValidationError as e:
            logger.debug("Dropping invalid %s record %s: %s", model.__name__, data["id"], e.error_count())
    return records


def _list_field(data: Dict[str, Any], *keys: str) -> List[Any]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, list):
            return value
    return []


def _failed(phase: str, raw: str, error: Exception, default: T) -> ParseResult[T]:
    logger.warning("Failed to parse %s response (%s): %s", phase, preview(raw), error)
    return ParseResult(default, str(error))


# ---------------------------------------------------------------------------
# Fact extraction
# ---------------------------------------------------------------------------

def parse_extracted_facts(raw: str, party: str) -> ParseResult[List[ExtractedFact]]:
    try:
        data = load_json_payload(raw, list)
        return ParseResult(validate_records(data, ExtractedFact, f"{party}_fact_{{n}}"))
    except ResponseParseError as e:
        return _failed("fact extraction", raw, e, [])


# ---------------------------------------------------------------------------
# Claim inference
# ---------------------------------------------------------------------------

def parse_claims(raw: str) -> ParseResult[List[ParsedClaim]]:
    try:
        data = load_json_payload(raw, list)
        return ParseResult(validate_records(data, ParsedClaim, "claim_{n}"))
    except ResponseParseError as e:
        return _failed("claim", raw, e, [])


# ---------------------------------------------------------------------------
# Fact comparison
# ---------------------------------------------------------------------------

def parse_fact_comparison(raw: str) -> ParseResult[FactComparisonResult]:
    try:
        data = load_json_payload(raw, dict)
        return ParseResult(FactComparisonResult(
            disputed=validate_records(
                _list_field(data, "disputed", "disputedFacts"), DisputedFact, "dispute_{n}"
            ),
            undisputed=validate_records(
                _list_field(data, "undisputed", "undisputedFacts"), UndisputedFact, "agreed_{n}"
            ),
        ))
    except ResponseParseError as e:
        return _failed("fact comparison", raw, e, FactComparisonResult())


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------

def parse_timeline(raw: str, disputed_topics: Sequence[str] = ()) -> ParseResult[TimelineResult]:
    try:
        data = load_json_payload(raw, dict)
    except ResponseParseError as e:
        return _failed("timeline", raw, e, TimelineResult())

    events = validate_records(_list_field(data, "events"), TimelineEvent, "event_{n}")
    undated_items = [
        {**item, "date": "unknown"} for item in _list_field(data, "undatedEvents", "undated_events")
        if isinstance(item, dict)
    ]
    undated = validate_records(undated_items, TimelineEvent, "undated_{n}")

    flagged = mark_disputed_events(events, disputed_topics)

    start_date = data.get("startDate")
    end_date = data.get("endDate")
    return ParseResult(TimelineResult(
        events=flagged,
        undated_events=undated,
        start_date=start_date if isinstance(start_date, str) else None,
        end_date=end_date if isinstance(end_date, str) else None,
    ))


# ---------------------------------------------------------------------------
# Contradictions
# ---------------------------------------------------------------------------

CONTRADICTION_PARSE_FAILED = "Failed to parse contradiction analysis."


def summarize_contradictions(contradictions: Sequence[Contradiction]) -> str:
    if not contradictions:
        return "No direct contradictions identified between the parties."

    parts = []
    for severity in (ContradictionSeverity.MAJOR, ContradictionSeverity.MODERATE, ContradictionSeverity.MINOR):
        count = sum(1 for c in contradictions if c.severity == severity)
        if count:
            parts.append(f"{count} {severity.value} contradiction{'s' if count > 1 else ''}")
    return f"Identified {', '.join(parts)} between the parties' accounts."


def parse_contradictions(raw: str) -> ParseResult[ContradictionResult]:
    try:
        data = load_json_payload(raw, dict)
    except ResponseParseError as e:
        return _failed("contradiction", raw, e, ContradictionResult(summary=CONTRADICTION_PARSE_FAILED))

    contradictions = validate_records(
        _list_field(data, "contradictions"), Contradiction, "contradiction_{n}"
    )
    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        summary = summarize_contradictions(contradictions)
    return ParseResult(ContradictionResult(contradictions=contradictions, summary=summary.strip()))


# ---------------------------------------------------------------------------
# Credibility
# ---------------------------------------------------------------------------

def _party_score(data: Any) -> PartyCredibilityScore:
    if not isinstance(data, dict):
        data = {}
    factors = CredibilityFactors.model_validate(data.get("factors") if isinstance(data.get("factors"), dict) else {})
    # Missing or non-numeric overall scores fall back to the factor weighting.
    overall = clamp_unit(data.get("overall"), default=None)
    if overall is None:
        overall = weighted_overall(factors)
    return PartyCredibilityScore(
        overall=overall,
        factors=factors,
        reasoning=data.get("reasoning"),
        strengths=data.get("strengths"),
        weaknesses=data.get("weaknesses"),
    )


def parse_credibility(raw: str, default: CredibilityResult) -> ParseResult[CredibilityResult]:
    try:
        data = load_json_payload(raw, dict)
    except ResponseParseError as e:
        return _failed("credibility", raw, e, default)
    comparison = data.get("comparison")
    return ParseResult(CredibilityResult(
        claimant=_party_score(data.get("claimant")),
        respondent=_party_score(data.get("respondent")),
        comparison=comparison if isinstance(comparison, str) else "",
    ))
