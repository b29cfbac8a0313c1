"""Plain-text renderings of phase outputs, used in prompts and reports."""

from typing import Optional, Sequence

from src.analysis.schemas import (
    AnalysisInput,
    Contradiction,
    CredibilityResult,
    DisputedFact,
    EvidenceSummary,
    ExtractedFact,
    ParsedClaim,
    PartyCredibilityScore,
    UndisputedFact,
)

CASE_DESCRIPTION_LIMIT = 500


def format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return f"${int(amount):,}"
    return f"${amount:,.2f}"


def build_case_context(analysis_input: AnalysisInput) -> str:
    """Shared context block prepended to every phase prompt."""
    lines = [f"Dispute Type: {analysis_input.dispute_type}"]
    if analysis_input.claimed_amount:
        lines.append(f"Claimed Amount: {format_amount(analysis_input.claimed_amount)}")
    lines.append(f"Case Description: {analysis_input.case_description[:CASE_DESCRIPTION_LIMIT]}")
    return "\n".join(lines)


def _join(parts: Sequence[Optional[str]]) -> str:
    return "\n".join(p for p in parts if p)


def format_evidence_summaries(evidence: Sequence[EvidenceSummary]) -> str:
    if not evidence:
        return "No documentary evidence provided."

    blocks = []
    for i, e in enumerate(evidence, start=1):
        entities = e.entities
        blocks.append(_join([
            f"Evidence {i}: {e.file_name} (id: {e.id})",
            f"Type: {e.document_type}" if e.document_type else None,
            f"Submitted by: {e.submitted_by.value}",
            f"Summary: {e.summary}" if e.summary else None,
            f"Key points: {'; '.join(e.key_points)}" if e.key_points else None,
            f"Dates mentioned: {', '.join(entities.dates)}" if entities and entities.dates else None,
            f"Amounts mentioned: {', '.join(format_amount(a) for a in entities.amounts)}"
            if entities and entities.amounts else None,
        ]))
    return "\n\n".join(blocks)


def format_facts_for_prompt(facts: Sequence[ExtractedFact]) -> str:
    if not facts:
        return "No facts extracted."

    return "\n\n".join(
        _join([
            f"{i}. [{fact.category.value.upper()}] {fact.statement} (id: {fact.id})",
            f"   Date: {fact.date}" if fact.date else None,
            f"   Amount: {format_amount(fact.amount)}" if fact.amount else None,
            f"   Evidence: {', '.join(fact.supporting_evidence)}" if fact.supporting_evidence else None,
        ])
        for i, fact in enumerate(facts, start=1)
    )


def format_claims_for_prompt(claims: Sequence[ParsedClaim]) -> str:
    if not claims:
        return "No specific claims identified."

    return "\n\n".join(
        _join([
            f"{i}. [{claim.type.value.upper()}] {claim.description}",
            f"   Amount: {format_amount(claim.amount)}" if claim.amount else None,
            f"   Basis: {claim.basis}" if claim.basis else None,
        ])
        for i, claim in enumerate(claims, start=1)
    )


def format_disputed_facts_for_prompt(disputed: Sequence[DisputedFact]) -> str:
    if not disputed:
        return "No disputed facts identified."

    return "\n\n".join(
        _join([
            f"{i}. {d.topic}",
            f"   Claimant: {d.claimant_position}",
            f"   Respondent: {d.respondent_position}",
            f"   Materiality: {d.materiality_score * 100:.0f}%",
            f"   Analysis: {d.analysis}" if d.analysis else None,
        ])
        for i, d in enumerate(disputed, start=1)
    )


def format_undisputed_facts_for_prompt(undisputed: Sequence[UndisputedFact]) -> str:
    if not undisputed:
        return "No undisputed facts identified."

    return "\n".join(
        f"{i}. {u.fact} (Agreed by: {', '.join(p.value for p in u.agreed_by)})"
        for i, u in enumerate(undisputed, start=1)
    )


def format_contradictions_for_prompt(contradictions: Sequence[Contradiction]) -> str:
    if not contradictions:
        return "No contradictions identified."

    return "\n\n".join(
        _join([
            f"{i}. [{c.severity.value.upper()}] {c.topic}",
            f"   Claimant says: {c.claimant_claim}",
            f"   Respondent says: {c.respondent_claim}",
            f"   Analysis: {c.analysis}",
            f"   Case Impact: {c.case_impact}" if c.case_impact else None,
        ])
        for i, c in enumerate(contradictions, start=1)
    )


_FACTOR_LABELS = {
    "evidence_support": "Evidence Support",
    "internal_consistency": "Internal Consistency",
    "external_consistency": "External Consistency",
    "specificity": "Specificity",
    "plausibility": "Plausibility",
}


def _format_party(name: str, score: PartyCredibilityScore) -> str:
    factors = score.factors.model_dump()
    return "\n".join([
        f"{name}:",
        f"  Overall: {score.overall * 100:.0f}%",
        *(f"  {label}: {factors[key] * 100:.0f}%" for key, label in _FACTOR_LABELS.items()),
        f"  Strengths: {', '.join(score.strengths) or 'None identified'}",
        f"  Weaknesses: {', '.join(score.weaknesses) or 'None identified'}",
    ])


def format_credibility_for_display(result: CredibilityResult) -> str:
    return "\n".join([
        _format_party("Claimant", result.claimant),
        "",
        _format_party("Respondent", result.respondent),
        "",
        f"Comparison: {result.comparison}",
    ])
