"""Fact extraction agent.

Extracts categorized facts from each party's statement. The claimant and
respondent calls are independent and run concurrently; the respondent is only
processed when their statement is more than a trivial placeholder.
"""

import asyncio
import logging
from typing import Any, Dict, List, Sequence

from src.agents.base import BaseAgent
from src.agents.facts.prompts import FACT_EXTRACTION_USER_PROMPT
from src.agents.prompts import ANALYST_SYSTEM_PROMPT
from src.analysis.formatting import format_evidence_summaries
from src.analysis.parsing import parse_extracted_facts
from src.analysis.schemas import (
    AnalysisInput,
    EvidenceSummary,
    ExtractedFact,
    ExtractedFactsResult,
    PartySource,
    PhaseOutcome,
)
from src.llm.schemas import QualityTier

logger = logging.getLogger(__name__)

MAX_STATEMENT_CHARS = 12000


class FactExtractionAgent(BaseAgent):
    name = "fact_extraction"
    tier = QualityTier.FAST
    max_tokens = 2048

    async def extract_party(
        self,
        party: PartySource,
        statement: str,
        case_context: str,
        evidence: Sequence[EvidenceSummary],
    ) -> PhaseOutcome:
        system_prompt, user_prompt = self.render(
            ANALYST_SYSTEM_PROMPT,
            FACT_EXTRACTION_USER_PROMPT,
            case_context=case_context,
            party_label=party.value,
            statement=statement[:MAX_STATEMENT_CHARS],
            evidence=format_evidence_summaries(evidence),
        )
        outcome = await self._generate(
            system_prompt,
            user_prompt,
            lambda raw: parse_extracted_facts(raw, party.value),
            default=[],
            label=f"{party.value} fact extraction",
        )
        logger.info("Extracted %d %s facts", len(outcome.value), party.value)
        return outcome

    async def run(self, analysis_input: AnalysisInput, case_context: str) -> PhaseOutcome:
        parties = [(PartySource.CLAIMANT, analysis_input.claimant_statement)]
        if analysis_input.has_respondent_statement:
            parties.append((PartySource.RESPONDENT, analysis_input.respondent_statement))

        outcomes = await asyncio.gather(*(
            self.extract_party(party, statement, case_context, analysis_input.evidence_for(party))
            for party, statement in parties
        ))

        facts: Dict[PartySource, List[ExtractedFact]] = {PartySource.CLAIMANT: [], PartySource.RESPONDENT: []}
        tokens = 0
        diagnostics = []
        for (party, _), outcome in zip(parties, outcomes):
            facts[party] = outcome.value
            tokens += outcome.tokens_used
            if not outcome.succeeded:
                diagnostics.append(outcome.diagnostic)

        result = ExtractedFactsResult(
            claimant=facts[PartySource.CLAIMANT],
            respondent=facts[PartySource.RESPONDENT],
            tokens_used=tokens,
        )
        return PhaseOutcome(
            succeeded=not diagnostics,
            value=result,
            tokens_used=tokens,
            diagnostic="; ".join(diagnostics) or None,
        )

    async def invoke(self, state: Dict[str, Any]) -> PhaseOutcome:
        return await self.run(state["input"], state["case_context"])
