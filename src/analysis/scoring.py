"""Deterministic scoring over phase outputs."""

from typing import Dict, List, Sequence

from src.analysis.schemas import (
    Contradiction,
    ContradictionSeverity,
    CredibilityFactors,
    CredibilityResult,
    DisputedFact,
    EvidenceSummary,
    ExtractedFact,
    UndisputedFact,
)

SEVERITY_WEIGHTS: Dict[ContradictionSeverity, float] = {
    ContradictionSeverity.MAJOR: 1.0,
    ContradictionSeverity.MODERATE: 0.5,
    ContradictionSeverity.MINOR: 0.2,
}
# Five major contradictions saturate the score.
CONTRADICTION_SATURATION = 5.0

CREDIBILITY_WEIGHTS: Dict[str, float] = {
    "evidence_support": 0.30,
    "internal_consistency": 0.20,
    "external_consistency": 0.20,
    "specificity": 0.15,
    "plausibility": 0.15,
}

EQUAL_CREDIBILITY_MARGIN = 0.1


# ---------------------------------------------------------------------------
# Contradictions
# ---------------------------------------------------------------------------

def calculate_contradiction_score(contradictions: Sequence[Contradiction]) -> float:
    """0..1, higher means more (and more severe) contradictions."""
    if not contradictions:
        return 0.0
    total = sum(SEVERITY_WEIGHTS[c.severity] for c in contradictions)
    return min(1.0, total / CONTRADICTION_SATURATION)


def contradictions_by_severity(
    contradictions: Sequence[Contradiction], severity: ContradictionSeverity
) -> List[Contradiction]:
    return [c for c in contradictions if c.severity == severity]


def major_contradictions(contradictions: Sequence[Contradiction]) -> List[Contradiction]:
    return contradictions_by_severity(contradictions, ContradictionSeverity.MAJOR)


def analyze_contradiction_pattern(contradictions: Sequence[Contradiction]) -> Dict[str, object]:
    if not contradictions:
        return {
            "dominant_severity": ContradictionSeverity.MINOR,
            "topics_covered": [],
            "overall_assessment": "No significant contradictions between parties.",
        }

    counts = {severity: len(contradictions_by_severity(contradictions, severity)) for severity in ContradictionSeverity}
    if counts[ContradictionSeverity.MAJOR]:
        dominant = ContradictionSeverity.MAJOR
    elif counts[ContradictionSeverity.MODERATE]:
        dominant = ContradictionSeverity.MODERATE
    else:
        dominant = ContradictionSeverity.MINOR

    topics: List[str] = []
    for c in contradictions:
        if c.topic not in topics:
            topics.append(c.topic)

    if counts[ContradictionSeverity.MAJOR] >= 2:
        assessment = (
            "The parties give fundamentally different accounts of key events; "
            "the credibility assessment will be decisive."
        )
    elif counts[ContradictionSeverity.MAJOR] == 1:
        assessment = "One major contradiction separates the parties and will be a key issue to resolve."
    elif counts[ContradictionSeverity.MODERATE] >= 2:
        assessment = "Several moderate contradictions exist; documentary evidence should help resolve them."
    else:
        assessment = "Contradictions are minor; the parties largely agree on the main facts."

    return {
        "dominant_severity": dominant,
        "topics_covered": topics,
        "overall_assessment": assessment,
    }


# ---------------------------------------------------------------------------
# Fact comparison
# ---------------------------------------------------------------------------

def high_materiality_disputes(disputed: Sequence[DisputedFact], threshold: float = 0.7) -> List[DisputedFact]:
    return sorted(
        (d for d in disputed if d.materiality_score >= threshold),
        key=lambda d: d.materiality_score,
        reverse=True,
    )


def calculate_dispute_score(disputed: Sequence[DisputedFact], undisputed: Sequence[UndisputedFact]) -> float:
    """Materiality-weighted share of the facts that are disputed."""
    disputed_weight = sum(d.materiality_score for d in disputed)
    total = disputed_weight + sum(u.materiality_score for u in undisputed)
    if total == 0:
        return 0.0
    return disputed_weight / total


# ---------------------------------------------------------------------------
# Credibility
# ---------------------------------------------------------------------------

def weighted_overall(factors: CredibilityFactors) -> float:
    return sum(getattr(factors, name) * weight for name, weight in CREDIBILITY_WEIGHTS.items())


def calculate_specificity_score(facts: Sequence[ExtractedFact]) -> float:
    """Average per-fact detail score: dates, amounts, cited evidence and length."""
    if not facts:
        return 0.0
    total = 0.0
    for fact in facts:
        score = 0.0
        if fact.date:
            score += 0.2
        if fact.amount:
            score += 0.2
        if fact.supporting_evidence:
            score += 0.3
        if len(fact.statement) > 100:
            score += 0.1
        total += score
    return min(1.0, total / len(facts))


def calculate_credibility_adjustments(
    facts: Sequence[ExtractedFact],
    evidence: Sequence[EvidenceSummary],
    contradictions: Sequence[Contradiction],
) -> Dict[str, float]:
    """Heuristic nudges that can be applied on top of a model assessment."""
    specifics = sum(1 for f in facts if f.date) + sum(1 for f in facts if f.amount)
    return {
        "evidence_bonus": min(0.1, len(evidence) * 0.02),
        "contradiction_penalty": min(0.2, len(major_contradictions(contradictions)) * 0.1),
        "specifics_bonus": min(0.1, specifics * 0.02),
    }


def compare_credibility(result: CredibilityResult) -> str:
    """Return ``claimant``, ``respondent`` or ``equal``."""
    diff = result.claimant.overall - result.respondent.overall
    if abs(diff) < EQUAL_CREDIBILITY_MARGIN:
        return "equal"
    return "claimant" if diff > 0 else "respondent"
