"""Domain model for the case analysis pipeline.

Every record crossing a phase boundary (reasoning-service output, job
checkpoints, API payloads) is validated through these models. Scores are
clamped into [0, 1] and enum fields are coerced into their closed sets, so
the invariants hold no matter which path built the record.
"""

import math
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.analysis.dates import parse_event_date
from src.analysis.exceptions import InputError

MIN_STATEMENT_LENGTH = 50


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PartySource(str, Enum):
    CLAIMANT = "claimant"
    RESPONDENT = "respondent"


class FactCategory(str, Enum):
    EVENT = "event"
    CLAIM = "claim"
    ADMISSION = "admission"
    DENIAL = "denial"
    ALLEGATION = "allegation"


class ClaimType(str, Enum):
    DAMAGES = "damages"
    BREACH = "breach"
    PERFORMANCE = "performance"
    REFUND = "refund"
    COMPENSATION = "compensation"
    OTHER = "other"


class ContradictionSeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"


class TimelineSource(str, Enum):
    CLAIMANT = "claimant"
    RESPONDENT = "respondent"
    EVIDENCE = "evidence"


class AnalysisStatus(str, Enum):
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class AnalysisPhase(str, Enum):
    QUEUED = "queued"
    EXTRACTING_FACTS = "extracting_facts"
    COMPARING_FACTS = "comparing_facts"
    BUILDING_TIMELINE = "building_timeline"
    DETECTING_CONTRADICTIONS = "detecting_contradictions"
    SCORING_CREDIBILITY = "scoring_credibility"
    COMPLETED = "completed"
    FAILED = "failed"


def phase_to_status(phase: AnalysisPhase) -> AnalysisStatus:
    if phase == AnalysisPhase.QUEUED:
        return AnalysisStatus.QUEUED
    if phase == AnalysisPhase.COMPLETED:
        return AnalysisStatus.COMPLETED
    if phase == AnalysisPhase.FAILED:
        return AnalysisStatus.FAILED
    return AnalysisStatus.PROCESSING


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def clamp_unit(value: Any, default: Optional[float] = 0.5) -> Optional[float]:
    """Clamp ``value`` into [0, 1]; missing or non-numeric input becomes ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return min(1.0, max(0.0, number))


def coerce_enum(enum_cls, value: Any, default):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            return default
    return default


def coerce_amount(value: Any) -> Optional[float]:
    """Accept numbers and numeric strings like ``"$1,250.00"``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else float(value)
    if isinstance(value, str):
        cleaned = re.sub(r"[,$\s]", "", value)
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def _required_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


RequiredText = Annotated[str, AfterValidator(_required_text)]


def _optional_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    value = str(value).strip()
    return value or None


def _string_list(value: Any) -> Optional[List[str]]:
    """Keep the non-empty scalar items of a list as strings; a non-list becomes ``None``."""
    if not isinstance(value, list):
        return None
    items: List[str] = []
    for item in value:
        if item is None or isinstance(item, (dict, list)):
            continue
        text = str(item).strip()
        if text:
            items.append(text)
    return items


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class EvidenceEntities(CamelModel):
    dates: List[str] = Field(default_factory=list)
    amounts: List[float] = Field(default_factory=list)
    parties: List[str] = Field(default_factory=list)


class EvidenceSummary(CamelModel):
    id: str
    file_name: str
    document_type: Optional[str] = None
    extracted_text: Optional[str] = None
    summary: Optional[str] = None
    key_points: Optional[List[str]] = None
    entities: Optional[EvidenceEntities] = None
    submitted_by: PartySource


class AnalysisInput(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    case_id: str
    case_description: str = ""
    dispute_type: str = ""
    claimed_amount: Optional[float] = None
    claimant_statement: str
    claimant_claim_items: Optional[Any] = None
    respondent_statement: Optional[str] = None
    respondent_claim_items: Optional[Any] = None
    evidence_summaries: List[EvidenceSummary] = Field(default_factory=list)

    @property
    def has_respondent_statement(self) -> bool:
        return bool(self.respondent_statement) and len(self.respondent_statement.strip()) > MIN_STATEMENT_LENGTH

    def evidence_for(self, party: PartySource) -> List[EvidenceSummary]:
        return [e for e in self.evidence_summaries if e.submitted_by == party]


def ensure_runnable(analysis_input: AnalysisInput) -> AnalysisInput:
    """Reject inputs the orchestrator must never be started with."""
    if not analysis_input.claimant_statement or not analysis_input.claimant_statement.strip():
        raise InputError(f"Case {analysis_input.case_id} has no claimant statement")
    return analysis_input


class AnalysisOptions(CamelModel):
    skip_fact_extraction: bool = False
    skip_fact_comparison: bool = False
    skip_timeline: bool = False
    skip_contradictions: bool = False
    skip_credibility: bool = False
    force: bool = False


# ---------------------------------------------------------------------------
# Phase outputs
# ---------------------------------------------------------------------------

class ExtractedFact(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    statement: RequiredText
    category: FactCategory = FactCategory.CLAIM
    date: Optional[str] = None
    amount: Optional[float] = None
    supporting_evidence: Optional[List[str]] = None
    confidence: float = 0.5
    context: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, v):
        return coerce_enum(FactCategory, v, FactCategory.CLAIM)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v):
        return clamp_unit(v)

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, v):
        return coerce_amount(v)

    @field_validator("date", "context", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        return _optional_text(v)

    @field_validator("supporting_evidence", mode="before")
    @classmethod
    def _evidence_ids(cls, v):
        return _string_list(v)


class ExtractedFactsResult(CamelModel):
    claimant: List[ExtractedFact] = Field(default_factory=list)
    respondent: List[ExtractedFact] = Field(default_factory=list)
    tokens_used: int = 0


class ParsedClaim(CamelModel):
    id: str
    type: ClaimType = ClaimType.OTHER
    description: RequiredText
    amount: Optional[float] = None
    basis: Optional[str] = None
    supporting_fact_ids: Optional[List[str]] = None

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v):
        return coerce_enum(ClaimType, v, ClaimType.OTHER)

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, v):
        return coerce_amount(v)

    @field_validator("basis", mode="before")
    @classmethod
    def _basis_text(cls, v):
        return _optional_text(v)

    @field_validator("supporting_fact_ids", mode="before")
    @classmethod
    def _fact_ids(cls, v):
        return _string_list(v)


class DisputedFact(CamelModel):
    id: str
    topic: RequiredText
    claimant_position: RequiredText
    respondent_position: RequiredText
    relevant_evidence: List[str] = Field(default_factory=list)
    materiality_score: float = 0.5
    analysis: Optional[str] = None

    @field_validator("materiality_score", mode="before")
    @classmethod
    def _clamp_materiality(cls, v):
        return clamp_unit(v)

    @field_validator("relevant_evidence", mode="before")
    @classmethod
    def _list_or_empty(cls, v):
        return _string_list(v) or []

    @field_validator("analysis", mode="before")
    @classmethod
    def _analysis_text(cls, v):
        return _optional_text(v)


class UndisputedFact(CamelModel):
    id: str
    fact: RequiredText
    agreed_by: List[PartySource] = Field(default_factory=lambda: [PartySource.CLAIMANT])
    supporting_evidence: Optional[List[str]] = None
    materiality_score: float = 0.5

    @field_validator("materiality_score", mode="before")
    @classmethod
    def _clamp_materiality(cls, v):
        return clamp_unit(v)

    @field_validator("agreed_by", mode="before")
    @classmethod
    def _known_parties(cls, v):
        if not isinstance(v, list):
            return [PartySource.CLAIMANT]
        parties: List[PartySource] = []
        for item in v:
            party = coerce_enum(PartySource, item, None)
            if party is not None and party not in parties:
                parties.append(party)
        return parties

    @field_validator("supporting_evidence", mode="before")
    @classmethod
    def _evidence_ids(cls, v):
        return _string_list(v)


class FactComparisonResult(CamelModel):
    disputed: List[DisputedFact] = Field(default_factory=list)
    undisputed: List[UndisputedFact] = Field(default_factory=list)
    tokens_used: int = 0


class TimelineEvent(CamelModel):
    id: str
    date: str = "unknown"
    parsed_date: Optional[datetime] = None
    event: RequiredText
    source: TimelineSource = TimelineSource.CLAIMANT
    source_id: str = "statement"
    disputed: bool = False
    details: Optional[str] = None

    @field_validator("source", mode="before")
    @classmethod
    def _coerce_source(cls, v):
        return coerce_enum(TimelineSource, v, TimelineSource.CLAIMANT)

    @field_validator("date", mode="before")
    @classmethod
    def _date_or_unknown(cls, v):
        return _optional_text(v) or "unknown"

    @field_validator("disputed", mode="before")
    @classmethod
    def _truthy(cls, v):
        if isinstance(v, str):
            return v.strip().lower() in ("true", "yes", "1")
        return bool(v)

    @field_validator("source_id", mode="before")
    @classmethod
    def _source_id_text(cls, v):
        return _optional_text(v) or "statement"

    @field_validator("details", mode="before")
    @classmethod
    def _details_text(cls, v):
        return _optional_text(v)

    @field_validator("parsed_date", mode="before")
    @classmethod
    def _parseable_or_none(cls, v):
        # An unreadable value is re-derived from ``date`` below.
        if v is None or isinstance(v, datetime):
            return v
        if isinstance(v, str):
            try:
                return datetime.fromisoformat(v.strip())
            except ValueError:
                return parse_event_date(v)
        return None

    @field_validator("parsed_date")
    @classmethod
    def _naive_utc(cls, v):
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @model_validator(mode="after")
    def _fill_parsed_date(self):
        if self.parsed_date is None:
            self.parsed_date = parse_event_date(self.date)
        return self


class TimelineResult(CamelModel):
    events: List[TimelineEvent] = Field(default_factory=list)
    undated_events: List[TimelineEvent] = Field(default_factory=list)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    tokens_used: int = 0


class Contradiction(CamelModel):
    id: str
    topic: RequiredText
    claimant_claim: RequiredText
    respondent_claim: RequiredText
    severity: ContradictionSeverity = ContradictionSeverity.MODERATE
    analysis: str = ""
    related_fact_ids: Optional[List[str]] = None
    case_impact: Optional[str] = None

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, v):
        return coerce_enum(ContradictionSeverity, v, ContradictionSeverity.MODERATE)

    @field_validator("analysis", mode="before")
    @classmethod
    def _analysis_text(cls, v):
        return _optional_text(v) or ""

    @field_validator("case_impact", mode="before")
    @classmethod
    def _impact_text(cls, v):
        return _optional_text(v)

    @field_validator("related_fact_ids", mode="before")
    @classmethod
    def _fact_ids(cls, v):
        return _string_list(v)


class ContradictionResult(CamelModel):
    contradictions: List[Contradiction] = Field(default_factory=list)
    summary: str = ""
    tokens_used: int = 0


class CredibilityFactors(CamelModel):
    evidence_support: float = 0.5
    internal_consistency: float = 0.5
    external_consistency: float = 0.5
    specificity: float = 0.5
    plausibility: float = 0.5

    @field_validator("*", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_unit(v)

    @classmethod
    def zeros(cls) -> "CredibilityFactors":
        return cls(
            evidence_support=0.0,
            internal_consistency=0.0,
            external_consistency=0.0,
            specificity=0.0,
            plausibility=0.0,
        )


class PartyCredibilityScore(CamelModel):
    overall: float = 0.5
    factors: CredibilityFactors = Field(default_factory=CredibilityFactors)
    reasoning: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)

    @field_validator("overall", mode="before")
    @classmethod
    def _clamp_overall(cls, v):
        return clamp_unit(v)

    @field_validator("reasoning", mode="before")
    @classmethod
    def _reasoning_text(cls, v):
        return _optional_text(v) or ""

    @field_validator("strengths", "weaknesses", mode="before")
    @classmethod
    def _notes(cls, v):
        return _string_list(v) or []

    @classmethod
    def not_assessed(cls, reasoning: str, weaknesses: Optional[List[str]] = None) -> "PartyCredibilityScore":
        return cls(
            overall=0.0,
            factors=CredibilityFactors.zeros(),
            reasoning=reasoning,
            strengths=[],
            weaknesses=weaknesses or [],
        )


class CredibilityResult(CamelModel):
    claimant: PartyCredibilityScore = Field(default_factory=PartyCredibilityScore)
    respondent: PartyCredibilityScore = Field(default_factory=PartyCredibilityScore)
    comparison: str = ""
    tokens_used: int = 0


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

T = TypeVar("T")


class PhaseOutcome(BaseModel, Generic[T]):
    """Result of one phase: the value (possibly a default) plus whether it degraded."""

    succeeded: bool = True
    value: T
    tokens_used: int = 0
    diagnostic: Optional[str] = None

    @classmethod
    def ok(cls, value, tokens_used: int = 0) -> "PhaseOutcome":
        return cls(succeeded=True, value=value, tokens_used=tokens_used)

    @classmethod
    def degraded(cls, value, diagnostic: str) -> "PhaseOutcome":
        return cls(succeeded=False, value=value, tokens_used=0, diagnostic=diagnostic)


class AnalysisProgress(CamelModel):
    case_id: str
    job_id: str
    phase: AnalysisPhase
    progress: int = Field(ge=0, le=100)
    message: Optional[str] = None


class AnalysisResult(CamelModel):
    case_id: str
    job_id: str
    status: str
    extracted_facts: ExtractedFactsResult = Field(default_factory=ExtractedFactsResult)
    disputed_facts: List[DisputedFact] = Field(default_factory=list)
    undisputed_facts: List[UndisputedFact] = Field(default_factory=list)
    timeline: List[TimelineEvent] = Field(default_factory=list)
    contradictions: List[Contradiction] = Field(default_factory=list)
    credibility_scores: CredibilityResult = Field(default_factory=CredibilityResult)
    phase_diagnostics: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None
    processing_time_ms: int = 0
    total_tokens_used: int = 0
    estimated_cost: float = 0.0


class AnalysisJobRecord(CamelModel):
    """Read model of a persisted job; checkpoints are re-validated on load."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: UUID
    case_id: str
    status: AnalysisStatus
    progress: int = 0
    phase: Optional[str] = None
    queued_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    tokens_used: int = 0
    processing_time_ms: Optional[int] = None
    estimated_cost: Optional[float] = None
    extracted_facts: Optional[ExtractedFactsResult] = None
    disputed_facts: Optional[List[DisputedFact]] = None
    undisputed_facts: Optional[List[UndisputedFact]] = None
    timeline: Optional[List[TimelineEvent]] = None
    contradictions: Optional[List[Contradiction]] = None
    credibility_scores: Optional[CredibilityResult] = None
    phase_diagnostics: Optional[Dict[str, str]] = None

    @field_validator("tokens_used", mode="before")
    @classmethod
    def _zero_if_null(cls, v):
        return v or 0


class AnalysisStatusResponse(CamelModel):
    case_id: str
    status: str
    progress: int = 0
    phase: Optional[str] = None
    failure_reason: Optional[str] = None
    job: Optional[AnalysisJobRecord] = None
