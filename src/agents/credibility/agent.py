"""Credibility scoring agent.

With both statements on file the reasoning tier scores each party on five
factors. A claimant-only case gets a heuristic, clearly provisional score
computed from the claimant's facts and evidence, with no service call.
"""

import logging
from typing import Any, Dict, Sequence

from src.agents.base import BaseAgent
from src.agents.credibility.prompts import CREDIBILITY_USER_PROMPT
from src.agents.prompts import ANALYST_SYSTEM_PROMPT
from src.analysis.formatting import (
    format_contradictions_for_prompt,
    format_facts_for_prompt,
    format_undisputed_facts_for_prompt,
)
from src.analysis.parsing import parse_credibility
from src.analysis.schemas import (
    AnalysisInput,
    Contradiction,
    CredibilityFactors,
    CredibilityResult,
    ExtractedFactsResult,
    PartyCredibilityScore,
    PartySource,
    PhaseOutcome,
    UndisputedFact,
)
from src.analysis.scoring import calculate_specificity_score
from src.llm.schemas import QualityTier

logger = logging.getLogger(__name__)

MAX_STATEMENT_CHARS = 6000

# Claimant-only heuristic
EVIDENCE_WEIGHT_PER_DOCUMENT = 0.2
UNTESTED_INTERNAL_CONSISTENCY = 0.7
UNTESTED_EXTERNAL_CONSISTENCY = 0.5
UNTESTED_PLAUSIBILITY = 0.6


def not_assessed_result() -> CredibilityResult:
    """All-zero result for cases where nothing could be assessed."""
    return CredibilityResult(
        claimant=PartyCredibilityScore.not_assessed("Credibility was not assessed."),
        respondent=PartyCredibilityScore.not_assessed("Credibility was not assessed."),
        comparison="Credibility was not assessed.",
    )


def neutral_result() -> CredibilityResult:
    return CredibilityResult(
        claimant=PartyCredibilityScore(reasoning="Unable to complete credibility assessment."),
        respondent=PartyCredibilityScore(reasoning="Unable to complete credibility assessment."),
        comparison="Credibility assessment could not be completed.",
    )


def claimant_only_result(analysis_input: AnalysisInput, facts: ExtractedFactsResult) -> CredibilityResult:
    evidence = analysis_input.evidence_for(PartySource.CLAIMANT)
    evidence_support = min(1.0, EVIDENCE_WEIGHT_PER_DOCUMENT * len(evidence))
    specificity = calculate_specificity_score(facts.claimant)

    claimant = PartyCredibilityScore(
        overall=(evidence_support + specificity + 0.5) / 3,
        factors=CredibilityFactors(
            evidence_support=evidence_support,
            internal_consistency=UNTESTED_INTERNAL_CONSISTENCY,
            external_consistency=UNTESTED_EXTERNAL_CONSISTENCY,
            specificity=specificity,
            plausibility=UNTESTED_PLAUSIBILITY,
        ),
        reasoning=(
            "Limited assessment based on claimant submission only. "
            "Full credibility analysis requires respondent statement."
        ),
        strengths=["Has supporting documentation"] if evidence else [],
        weaknesses=["Respondent has not yet responded for comparison"],
    )
    return CredibilityResult(
        claimant=claimant,
        respondent=PartyCredibilityScore.not_assessed(
            "Respondent has not submitted a statement.", ["No statement submitted"]
        ),
        comparison="Cannot compare parties until respondent submits statement.",
    )


class CredibilityAgent(BaseAgent):
    name = "credibility"
    tier = QualityTier.REASONING
    max_tokens = 2048

    async def run(
        self,
        analysis_input: AnalysisInput,
        facts: ExtractedFactsResult,
        undisputed: Sequence[UndisputedFact],
        contradictions: Sequence[Contradiction],
        case_context: str,
    ) -> PhaseOutcome:
        if not analysis_input.has_respondent_statement:
            return PhaseOutcome.ok(claimant_only_result(analysis_input, facts), 0)

        system_prompt, user_prompt = self.render(
            ANALYST_SYSTEM_PROMPT,
            CREDIBILITY_USER_PROMPT,
            case_context=case_context,
            claimant_statement=analysis_input.claimant_statement[:MAX_STATEMENT_CHARS],
            respondent_statement=analysis_input.respondent_statement[:MAX_STATEMENT_CHARS],
            claimant_facts=format_facts_for_prompt(facts.claimant),
            respondent_facts=format_facts_for_prompt(facts.respondent),
            undisputed_facts=format_undisputed_facts_for_prompt(undisputed),
            contradictions=format_contradictions_for_prompt(contradictions),
            claimant_evidence_count=len(analysis_input.evidence_for(PartySource.CLAIMANT)),
            respondent_evidence_count=len(analysis_input.evidence_for(PartySource.RESPONDENT)),
        )
        default = neutral_result()
        outcome = await self._generate(
            system_prompt,
            user_prompt,
            lambda raw: parse_credibility(raw, default),
            default=default,
        )
        outcome.value.tokens_used = outcome.tokens_used
        logger.info(
            "Case %s credibility: claimant %.2f, respondent %.2f",
            analysis_input.case_id, outcome.value.claimant.overall, outcome.value.respondent.overall,
        )
        return outcome

    async def invoke(self, state: Dict[str, Any]) -> PhaseOutcome:
        comparison = state.get("comparison")
        contradictions = state.get("contradictions")
        return await self.run(
            state["input"],
            state["extracted_facts"],
            comparison.undisputed if comparison else [],
            contradictions.contradictions if contradictions else [],
            state["case_context"],
        )
