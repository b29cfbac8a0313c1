import logging
from typing import Any, Dict, Sequence

from src.agents.base import BaseAgent
from src.agents.contradictions.prompts import CONTRADICTION_USER_PROMPT
from src.agents.prompts import ANALYST_SYSTEM_PROMPT
from src.analysis.formatting import format_disputed_facts_for_prompt
from src.analysis.parsing import parse_contradictions
from src.analysis.schemas import (
    AnalysisInput,
    ContradictionResult,
    DisputedFact,
    PhaseOutcome,
    TimelineEvent,
)
from src.analysis.timeline import format_timeline_for_display
from src.llm.schemas import QualityTier

logger = logging.getLogger(__name__)

MAX_STATEMENT_CHARS = 8000

NO_RESPONDENT_SUMMARY = "Cannot analyze contradictions without respondent statement."
NO_DISPUTES_SUMMARY = "No disputed facts identified between parties."
FAILED_SUMMARY = "Contradiction analysis failed due to an error."


class ContradictionAgent(BaseAgent):
    """Finds statements of the two parties that cannot both be true."""

    name = "contradictions"
    tier = QualityTier.REASONING
    max_tokens = 2048

    async def run(
        self,
        analysis_input: AnalysisInput,
        disputed: Sequence[DisputedFact],
        timeline: Sequence[TimelineEvent],
        case_context: str,
    ) -> PhaseOutcome:
        if not analysis_input.has_respondent_statement:
            return PhaseOutcome.ok(ContradictionResult(summary=NO_RESPONDENT_SUMMARY), 0)
        if not disputed:
            return PhaseOutcome.ok(ContradictionResult(summary=NO_DISPUTES_SUMMARY), 0)

        system_prompt, user_prompt = self.render(
            ANALYST_SYSTEM_PROMPT,
            CONTRADICTION_USER_PROMPT,
            case_context=case_context,
            claimant_statement=analysis_input.claimant_statement[:MAX_STATEMENT_CHARS],
            respondent_statement=analysis_input.respondent_statement[:MAX_STATEMENT_CHARS],
            disputed_facts=format_disputed_facts_for_prompt(disputed),
            timeline=format_timeline_for_display(timeline) if timeline else "No timeline available",
        )
        outcome = await self._generate(
            system_prompt,
            user_prompt,
            parse_contradictions,
            default=ContradictionResult(summary=FAILED_SUMMARY),
        )
        outcome.value.tokens_used = outcome.tokens_used
        logger.info(
            "Case %s: %d contradictions detected", analysis_input.case_id, len(outcome.value.contradictions)
        )
        return outcome

    async def invoke(self, state: Dict[str, Any]) -> PhaseOutcome:
        comparison = state.get("comparison")
        return await self.run(
            state["input"],
            comparison.disputed if comparison else [],
            state.get("timeline") or [],
            state["case_context"],
        )
