"""Claim parsing agent.

Party-provided itemized claims are preferred: they are normalized and linked
to the claimant's ``claim`` facts without any reasoning-service call. Only
when no usable items exist is the service asked to infer claims from the
statement.
"""

import logging
from typing import Any, Dict, List, Sequence

from pydantic import ValidationError

from src.agents.base import BaseAgent
from src.agents.claims.prompts import CLAIM_INFERENCE_USER_PROMPT
from src.agents.prompts import ANALYST_SYSTEM_PROMPT
from src.analysis.formatting import format_amount
from src.analysis.parsing import parse_claims
from src.analysis.schemas import (
    ClaimType,
    ExtractedFact,
    FactCategory,
    ParsedClaim,
    PhaseOutcome,
    coerce_amount,
)
from src.llm.schemas import QualityTier

logger = logging.getLogger(__name__)

MAX_STATEMENT_CHARS = 8000
AMOUNT_TOLERANCE = 0.01
MIN_SHARED_WORDS = 2

# Checked in order; first match wins.
_TYPE_KEYWORDS = (
    (ClaimType.REFUND, ("refund", "return")),
    (ClaimType.DAMAGES, ("damage", "loss", "harm")),
    (ClaimType.BREACH, ("breach", "violat", "fail")),
    (ClaimType.PERFORMANCE, ("perform", "complet", "deliver")),
    (ClaimType.COMPENSATION, ("compensat", "reimburse", "pay")),
)


def infer_claim_type(description: str) -> ClaimType:
    lower = description.lower()
    for claim_type, keywords in _TYPE_KEYWORDS:
        if any(k in lower for k in keywords):
            return claim_type
    return ClaimType.OTHER


def _first_text(item: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str):
            return value
    return ""


def parse_structured_claim_items(claim_items: Any) -> List[ParsedClaim]:
    """Normalize party-provided claim items; anything unusable is skipped."""
    if not isinstance(claim_items, list):
        return []

    claims: List[ParsedClaim] = []
    for index, item in enumerate(claim_items, start=1):
        if not isinstance(item, dict):
            continue
        description = _first_text(item, "description", "item", "claim").strip()
        if not description:
            continue

        raw_type = item.get("type")
        if isinstance(raw_type, str) and raw_type.strip().lower() in ClaimType._value2member_map_:
            claim_type = ClaimType(raw_type.strip().lower())
        else:
            claim_type = infer_claim_type(description)

        basis = item.get("basis")
        try:
            claims.append(ParsedClaim(
                id=f"claim_{index}",
                type=claim_type,
                description=description,
                amount=coerce_amount(item.get("amount")),
                basis=basis if isinstance(basis, str) else None,
            ))
        except ValidationError as e:
            logger.debug("Skipping claim item %d: %s", index, e.error_count())
    return claims


def _shared_word_count(description: str, statement: str) -> int:
    claim_words = description.lower().split()
    fact_words = statement.lower().split()
    return sum(1 for w in claim_words if any(w in fw or fw in w for fw in fact_words))


def link_claims_to_facts(claims: Sequence[ParsedClaim], facts: Sequence[ExtractedFact]) -> List[ParsedClaim]:
    """Attach ids of ``claim`` facts matching each claim by amount or by shared words."""
    claim_facts = [f for f in facts if f.category == FactCategory.CLAIM]
    linked = []
    for claim in claims:
        supporting = []
        for fact in claim_facts:
            if claim.amount and fact.amount and abs(claim.amount - fact.amount) < AMOUNT_TOLERANCE:
                supporting.append(fact.id)
            elif _shared_word_count(claim.description, fact.statement) >= MIN_SHARED_WORDS:
                supporting.append(fact.id)
        if supporting:
            claim = claim.model_copy(update={"supporting_fact_ids": supporting})
        linked.append(claim)
    return linked


def calculate_total_claimed_amount(claims: Sequence[ParsedClaim]) -> float:
    return sum(claim.amount or 0 for claim in claims)


def _format_claim_facts(facts: Sequence[ExtractedFact]) -> str:
    lines = [
        f"- {f.statement} (id: {f.id})" + (f" ({format_amount(f.amount)})" if f.amount else "")
        for f in facts
        if f.category == FactCategory.CLAIM
    ]
    return "\n".join(lines) or "None identified"


class ClaimParsingAgent(BaseAgent):
    name = "claim_parsing"
    tier = QualityTier.FAST
    max_tokens = 1024

    async def run(
        self,
        statement: str,
        claim_items: Any,
        facts: Sequence[ExtractedFact],
        case_context: str,
    ) -> PhaseOutcome:
        structured = parse_structured_claim_items(claim_items)
        if structured:
            return PhaseOutcome.ok(link_claims_to_facts(structured, facts), 0)

        system_prompt, user_prompt = self.render(
            ANALYST_SYSTEM_PROMPT,
            CLAIM_INFERENCE_USER_PROMPT,
            case_context=case_context,
            statement=(statement or "")[:MAX_STATEMENT_CHARS],
            claim_facts=_format_claim_facts(facts),
        )
        return await self._generate(system_prompt, user_prompt, parse_claims, default=[])

    async def invoke(self, state: Dict[str, Any]) -> PhaseOutcome:
        analysis_input = state["input"]
        facts = state.get("extracted_facts")
        return await self.run(
            analysis_input.claimant_statement,
            analysis_input.claimant_claim_items,
            facts.claimant if facts else [],
            state["case_context"],
        )
