"""Timeline reconstruction agent.

The model's reconstruction is merged with events derived without any model
call (dated ``event`` facts and dates found in evidence), so a failed call
still leaves the deterministic part of the timeline.
"""

import logging
from typing import Any, Dict, Sequence

from src.agents.base import BaseAgent
from src.agents.prompts import ANALYST_SYSTEM_PROMPT
from src.agents.timeline.prompts import (
    NO_RESPONDENT_STATEMENT,
    RESPONDENT_STATEMENT_BLOCK,
    TIMELINE_USER_PROMPT,
)
from src.analysis.formatting import format_evidence_summaries
from src.analysis.parsing import parse_timeline
from src.analysis.schemas import (
    AnalysisInput,
    DisputedFact,
    ExtractedFactsResult,
    PhaseOutcome,
    TimelineResult,
)
from src.analysis.timeline import (
    extract_events_from_evidence,
    extract_events_from_facts,
    mark_disputed_events,
    merge_timeline_events,
)
from src.llm.schemas import QualityTier

logger = logging.getLogger(__name__)

MAX_STATEMENT_CHARS = 8000


class TimelineAgent(BaseAgent):
    name = "timeline"
    tier = QualityTier.FAST
    max_tokens = 2048

    async def run(
        self,
        analysis_input: AnalysisInput,
        facts: ExtractedFactsResult,
        disputed: Sequence[DisputedFact],
        case_context: str,
    ) -> PhaseOutcome:
        if analysis_input.respondent_statement:
            respondent_block = RESPONDENT_STATEMENT_BLOCK.replace(
                "{statement}", analysis_input.respondent_statement[:MAX_STATEMENT_CHARS]
            )
        else:
            respondent_block = NO_RESPONDENT_STATEMENT

        system_prompt, user_prompt = self.render(
            ANALYST_SYSTEM_PROMPT,
            TIMELINE_USER_PROMPT,
            case_context=case_context,
            claimant_statement=analysis_input.claimant_statement[:MAX_STATEMENT_CHARS],
            respondent_block=respondent_block,
            evidence=format_evidence_summaries(analysis_input.evidence_summaries),
        )
        topics = [d.topic for d in disputed]
        outcome = await self._generate(
            system_prompt,
            user_prompt,
            lambda raw: parse_timeline(raw, topics),
            default=TimelineResult(),
        )

        reconstructed: TimelineResult = outcome.value
        events = merge_timeline_events(
            reconstructed.events,
            reconstructed.undated_events,
            extract_events_from_facts(facts.claimant, facts.respondent),
            extract_events_from_evidence(analysis_input.evidence_summaries),
        )
        events = mark_disputed_events(events, topics)
        logger.info(
            "Timeline for case %s has %d events (%d from the model)",
            analysis_input.case_id, len(events), len(reconstructed.events) + len(reconstructed.undated_events),
        )
        return outcome.model_copy(update={"value": events})

    async def invoke(self, state: Dict[str, Any]) -> PhaseOutcome:
        comparison = state.get("comparison")
        return await self.run(
            state["input"],
            state.get("extracted_facts") or ExtractedFactsResult(),
            comparison.disputed if comparison else [],
            state["case_context"],
        )
