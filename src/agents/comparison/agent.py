from typing import Any, Dict, Sequence

from src.agents.base import BaseAgent
from src.agents.comparison.prompts import FACT_COMPARISON_USER_PROMPT
from src.agents.prompts import ANALYST_SYSTEM_PROMPT
from src.analysis.formatting import format_facts_for_prompt
from src.analysis.parsing import parse_fact_comparison
from src.analysis.schemas import ExtractedFact, FactComparisonResult, PhaseOutcome
from src.llm.schemas import QualityTier


class FactComparisonAgent(BaseAgent):
    """Splits the parties' facts into disputed and undisputed sets."""

    name = "fact_comparison"
    tier = QualityTier.REASONING
    max_tokens = 2048

    async def run(
        self,
        claimant_facts: Sequence[ExtractedFact],
        respondent_facts: Sequence[ExtractedFact],
        case_context: str,
    ) -> PhaseOutcome:
        # Nothing to compare against until the respondent has stated facts.
        if not claimant_facts or not respondent_facts:
            return PhaseOutcome.ok(FactComparisonResult(), 0)

        system_prompt, user_prompt = self.render(
            ANALYST_SYSTEM_PROMPT,
            FACT_COMPARISON_USER_PROMPT,
            case_context=case_context,
            claimant_facts=format_facts_for_prompt(claimant_facts),
            respondent_facts=format_facts_for_prompt(respondent_facts),
        )
        outcome = await self._generate(
            system_prompt, user_prompt, parse_fact_comparison, default=FactComparisonResult()
        )
        outcome.value.tokens_used = outcome.tokens_used
        return outcome

    async def invoke(self, state: Dict[str, Any]) -> PhaseOutcome:
        facts = state["extracted_facts"]
        return await self.run(facts.claimant, facts.respondent, state["case_context"])
