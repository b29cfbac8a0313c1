"""Tests for the individual analysis agents, driven by a scripted reasoning service."""
import asyncio
import json

import pytest

from src.agents.claims.agent import (
    ClaimParsingAgent,
    calculate_total_claimed_amount,
    infer_claim_type,
    link_claims_to_facts,
    parse_structured_claim_items,
)
from src.agents.comparison.agent import FactComparisonAgent
from src.agents.contradictions.agent import (
    FAILED_SUMMARY,
    NO_DISPUTES_SUMMARY,
    NO_RESPONDENT_SUMMARY,
    ContradictionAgent,
)
from src.agents.credibility.agent import CredibilityAgent, claimant_only_result
from src.agents.facts.agent import FactExtractionAgent
from src.agents.timeline.agent import TimelineAgent
from src.analysis.exceptions import ConfigurationError, ExternalServiceError
from src.analysis.formatting import build_case_context, format_claims_for_prompt
from src.analysis.parsing import parse_fact_comparison
from src.analysis.schemas import (
    ClaimType,
    ExtractedFact,
    ExtractedFactsResult,
    FactCategory,
    TimelineSource,
)
from src.llm.schemas import QualityTier

from tests.conftest import (
    CLAIMANT_FACTS,
    COMPARISON,
    CONTRADICTIONS,
    CREDIBILITY,
    RESPONDENT_FACTS,
    TIMELINE,
    TOKENS_PER_CALL,
    FakeReasoningService,
    make_input,
)


def _facts() -> ExtractedFactsResult:
    return ExtractedFactsResult(
        claimant=[
            ExtractedFact(id="claimant_fact_1", statement="Claimant paid $2,400", category=FactCategory.EVENT,
                          date="2024-01-15", amount=2400),
            ExtractedFact(id="claimant_fact_2", statement="Claimant seeks a refund of the deposit",
                          category=FactCategory.CLAIM, amount=2400),
        ],
        respondent=[
            ExtractedFact(id="respondent_fact_1", statement="Order changed twice", category=FactCategory.EVENT,
                          date="February 2024"),
        ],
    )


# ---------------------------------------------------------------------------
# Fact extraction
# ---------------------------------------------------------------------------

class TestFactExtractionAgent:
    @pytest.mark.asyncio
    async def test_extracts_both_parties(self, analysis_input):
        reasoning = FakeReasoningService({"facts:claimant": CLAIMANT_FACTS, "facts:respondent": RESPONDENT_FACTS})
        outcome = await FactExtractionAgent(reasoning).run(analysis_input, build_case_context(analysis_input))

        assert outcome.succeeded
        assert len(outcome.value.claimant) == 3
        assert len(outcome.value.respondent) == 2
        assert outcome.value.claimant[1].id == "claimant_fact_2"
        assert outcome.value.respondent[0].id == "respondent_fact_1"
        assert outcome.tokens_used == 2 * TOKENS_PER_CALL
        assert {c["tier"] for c in reasoning.calls} == {QualityTier.FAST}

    @pytest.mark.asyncio
    async def test_only_party_evidence_is_in_prompt(self, analysis_input):
        reasoning = FakeReasoningService({"facts:claimant": "[]", "facts:respondent": "[]"})
        await FactExtractionAgent(reasoning).run(analysis_input, "ctx")

        prompts = {c["phase"]: c["prompt"] for c in reasoning.calls}
        assert "invoice.pdf" in prompts["facts:claimant"]
        assert "change_order.pdf" not in prompts["facts:claimant"]
        assert "change_order.pdf" in prompts["facts:respondent"]

    @pytest.mark.asyncio
    async def test_trivial_respondent_statement_is_not_processed(self):
        analysis_input = make_input(respondent="No comment.")
        reasoning = FakeReasoningService({"facts:claimant": CLAIMANT_FACTS})

        outcome = await FactExtractionAgent(reasoning).run(analysis_input, "ctx")

        assert reasoning.phases_called() == ["facts:claimant"]
        assert outcome.value.respondent == []
        assert outcome.succeeded

    @pytest.mark.asyncio
    async def test_failed_party_degrades_alone(self, analysis_input):
        reasoning = FakeReasoningService({
            "facts:claimant": CLAIMANT_FACTS,
            "facts:respondent": ExternalServiceError("timed out"),
        })
        outcome = await FactExtractionAgent(reasoning).run(analysis_input, "ctx")

        assert not outcome.succeeded
        assert len(outcome.value.claimant) == 3
        assert outcome.value.respondent == []
        assert outcome.tokens_used == TOKENS_PER_CALL
        assert "respondent fact extraction" in outcome.diagnostic

    @pytest.mark.asyncio
    async def test_result_does_not_depend_on_completion_order(self, analysis_input):
        class SlowClaimant(FakeReasoningService):
            async def generate(self, system_prompt, user_prompt, max_tokens, tier):
                if "Statement of the claimant" in user_prompt:
                    await asyncio.sleep(0.01)
                return await super().generate(system_prompt, user_prompt, max_tokens, tier)

        script = {"facts:claimant": CLAIMANT_FACTS, "facts:respondent": RESPONDENT_FACTS}
        fast = await FactExtractionAgent(FakeReasoningService(script)).run(analysis_input, "ctx")
        slow = await FactExtractionAgent(SlowClaimant(script)).run(analysis_input, "ctx")

        assert fast.value == slow.value

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self, analysis_input):
        reasoning = FakeReasoningService({"facts:claimant": ConfigurationError("no key")})
        with pytest.raises(ConfigurationError):
            await FactExtractionAgent(reasoning).run(make_input(respondent=None), "ctx")


# ---------------------------------------------------------------------------
# Claim parsing
# ---------------------------------------------------------------------------

class TestClaimParsing:
    @pytest.mark.parametrize("description,expected", [
        ("Full refund of the deposit", ClaimType.REFUND),
        ("Water damage to the floor", ClaimType.DAMAGES),
        ("Breach of the warranty", ClaimType.BREACH),
        ("Complete the installation", ClaimType.PERFORMANCE),
        ("Reimburse travel costs", ClaimType.COMPENSATION),
        ("Written apology", ClaimType.OTHER),
    ])
    def test_infer_claim_type(self, description, expected):
        assert infer_claim_type(description) == expected

    def test_structured_items_are_normalised(self):
        items = [
            {"description": "Refund of deposit", "amount": "$1,200", "type": "refund"},
            {"item": "Cost of repairs", "amount": 350.5},
            {"claim": "Apology", "type": "nonsense"},
            {"amount": 10},
            "not a dict",
        ]
        claims = parse_structured_claim_items(items)

        assert [c.id for c in claims] == ["claim_1", "claim_2", "claim_3"]
        assert claims[0].amount == 1200
        assert claims[1].type == ClaimType.OTHER
        assert claims[2].type == ClaimType.OTHER
        assert calculate_total_claimed_amount(claims) == pytest.approx(1550.5)

    def test_non_list_items_are_ignored(self):
        assert parse_structured_claim_items({"description": "x"}) == []

    def test_links_by_amount_or_shared_words(self):
        claims = parse_structured_claim_items([
            {"description": "Deposit refund", "amount": 2400},
            {"description": "Unrelated", "amount": 5},
        ])
        linked = link_claims_to_facts(claims, _facts().claimant)

        assert linked[0].supporting_fact_ids == ["claimant_fact_2"]
        assert linked[1].supporting_fact_ids is None

    @pytest.mark.asyncio
    async def test_structured_claims_skip_the_service(self, analysis_input):
        reasoning = FakeReasoningService()
        outcome = await ClaimParsingAgent(reasoning).run(
            analysis_input.claimant_statement, [{"description": "Refund", "amount": 2400}], _facts().claimant, "ctx"
        )

        assert reasoning.calls == []
        assert outcome.tokens_used == 0
        assert outcome.value[0].supporting_fact_ids == ["claimant_fact_2"]

    @pytest.mark.asyncio
    async def test_claims_inferred_from_statement(self, analysis_input):
        reasoning = FakeReasoningService({"claims": json.dumps([
            {"type": "refund", "description": "Refund of $2,400", "amount": 2400, "basis": "Work not done"},
        ])})
        outcome = await ClaimParsingAgent(reasoning).run(analysis_input.claimant_statement, None, _facts().claimant, "ctx")

        assert outcome.succeeded
        assert outcome.tokens_used == TOKENS_PER_CALL
        assert reasoning.calls[0]["tier"] == QualityTier.FAST
        assert "claimant_fact_2" in reasoning.calls[0]["prompt"]
        assert "[REFUND] Refund of $2,400" in format_claims_for_prompt(outcome.value)


# ---------------------------------------------------------------------------
# Fact comparison
# ---------------------------------------------------------------------------

class TestFactComparisonAgent:
    @pytest.mark.asyncio
    async def test_claimant_only_yields_empty_sets_without_call(self):
        reasoning = FakeReasoningService()
        outcome = await FactComparisonAgent(reasoning).run(_facts().claimant, [], "ctx")

        assert outcome.succeeded
        assert outcome.value.disputed == []
        assert outcome.value.undisputed == []
        assert reasoning.calls == []

    @pytest.mark.asyncio
    async def test_uses_reasoning_tier(self):
        reasoning = FakeReasoningService({"comparison": COMPARISON})
        facts = _facts()
        outcome = await FactComparisonAgent(reasoning).run(facts.claimant, facts.respondent, "ctx")

        assert reasoning.calls[0]["tier"] == QualityTier.REASONING
        assert outcome.value.disputed[0].topic == "cabinet installation"
        assert outcome.value.tokens_used == TOKENS_PER_CALL

    @pytest.mark.asyncio
    async def test_unparseable_response_degrades_with_zero_tokens(self):
        reasoning = FakeReasoningService({"comparison": "I think they disagree."})
        facts = _facts()
        outcome = await FactComparisonAgent(reasoning).run(facts.claimant, facts.respondent, "ctx")

        assert not outcome.succeeded
        assert outcome.tokens_used == 0
        assert outcome.value.disputed == []
        assert "unparseable response" in outcome.diagnostic


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------

class TestTimelineAgent:
    @pytest.mark.asyncio
    async def test_merges_model_and_deterministic_events(self, analysis_input):
        reasoning = FakeReasoningService({"timeline": TIMELINE})
        disputed = parse_fact_comparison(COMPARISON).value.disputed

        outcome = await TimelineAgent(reasoning).run(analysis_input, _facts(), disputed, "ctx")
        events = outcome.value

        assert outcome.succeeded
        dated = [e for e in events if e.parsed_date is not None]
        assert dated == sorted(dated, key=lambda e: e.parsed_date)
        assert events[-1].date == "unknown"
        assert any(e.source == TimelineSource.EVIDENCE and e.source_id == "ev_2" for e in events)
        assert any(e.id == "claimant_event_1" for e in events)
        # "Cabinet installation never happened" mentions the disputed topic
        assert events[-1].disputed is True

    @pytest.mark.asyncio
    async def test_failure_keeps_deterministic_events(self, analysis_input):
        reasoning = FakeReasoningService({"timeline": ExternalServiceError("overloaded")})

        outcome = await TimelineAgent(reasoning).run(analysis_input, _facts(), [], "ctx")

        assert not outcome.succeeded
        assert outcome.tokens_used == 0
        assert {e.id for e in outcome.value} == {
            "claimant_event_1", "respondent_event_1", "evidence_1_date_1", "evidence_2_date_1",
        }

    @pytest.mark.asyncio
    async def test_missing_respondent_is_stated_in_prompt(self, claimant_only_input):
        reasoning = FakeReasoningService({"timeline": '{"events": []}'})
        await TimelineAgent(reasoning).run(claimant_only_input, ExtractedFactsResult(), [], "ctx")

        assert "The respondent has not submitted a statement." in reasoning.calls[0]["prompt"]


# ---------------------------------------------------------------------------
# Contradictions
# ---------------------------------------------------------------------------

class TestContradictionAgent:
    @pytest.mark.asyncio
    async def test_skips_without_respondent(self, claimant_only_input):
        reasoning = FakeReasoningService()
        disputed = parse_fact_comparison(COMPARISON).value.disputed

        outcome = await ContradictionAgent(reasoning).run(claimant_only_input, disputed, [], "ctx")

        assert outcome.value.summary == NO_RESPONDENT_SUMMARY
        assert reasoning.calls == []

    @pytest.mark.asyncio
    async def test_skips_without_disputes(self, analysis_input):
        reasoning = FakeReasoningService()
        outcome = await ContradictionAgent(reasoning).run(analysis_input, [], [], "ctx")

        assert outcome.value.summary == NO_DISPUTES_SUMMARY
        assert outcome.value.contradictions == []

    @pytest.mark.asyncio
    async def test_detects_contradictions(self, analysis_input):
        reasoning = FakeReasoningService({"contradictions": CONTRADICTIONS})
        disputed = parse_fact_comparison(COMPARISON).value.disputed

        outcome = await ContradictionAgent(reasoning).run(analysis_input, disputed, [], "ctx")

        assert outcome.value.contradictions[0].id == "contradiction_1"
        assert outcome.value.summary == "Identified 1 major contradiction between the parties' accounts."
        assert reasoning.calls[0]["tier"] == QualityTier.REASONING

    @pytest.mark.asyncio
    async def test_service_failure_summary(self, analysis_input):
        reasoning = FakeReasoningService({"contradictions": ExternalServiceError("boom")})
        disputed = parse_fact_comparison(COMPARISON).value.disputed

        outcome = await ContradictionAgent(reasoning).run(analysis_input, disputed, [], "ctx")

        assert not outcome.succeeded
        assert outcome.value.summary == FAILED_SUMMARY


# ---------------------------------------------------------------------------
# Credibility
# ---------------------------------------------------------------------------

class TestCredibilityAgent:
    def test_claimant_only_heuristic(self, claimant_only_input):
        facts = _facts()
        result = claimant_only_result(claimant_only_input, facts)

        # one claimant document; facts score 0.4 (date, amount) and 0.2 (amount)
        assert result.claimant.factors.evidence_support == pytest.approx(0.2)
        assert result.claimant.factors.specificity == pytest.approx(0.3)
        assert result.claimant.factors.internal_consistency == 0.7
        assert result.claimant.factors.external_consistency == 0.5
        assert result.claimant.factors.plausibility == 0.6
        assert result.claimant.overall == pytest.approx((0.2 + 0.3 + 0.5) / 3)
        assert result.claimant.strengths == ["Has supporting documentation"]
        assert result.respondent.overall == 0.0
        assert result.respondent.reasoning == "Respondent has not submitted a statement."
        assert result.comparison == "Cannot compare parties until respondent submits statement."

    @pytest.mark.asyncio
    async def test_claimant_only_makes_no_call(self, claimant_only_input):
        reasoning = FakeReasoningService()
        outcome = await CredibilityAgent(reasoning).run(claimant_only_input, _facts(), [], [], "ctx")

        assert reasoning.calls == []
        assert outcome.succeeded
        assert outcome.tokens_used == 0

    @pytest.mark.asyncio
    async def test_scores_both_parties(self, analysis_input):
        reasoning = FakeReasoningService({"credibility": CREDIBILITY})
        outcome = await CredibilityAgent(reasoning).run(analysis_input, _facts(), [], [], "ctx")

        assert outcome.value.claimant.overall == pytest.approx(0.30 * 0.8 + 0.20 * 0.7 + 0.20 * 0.6 + 0.15 * 0.7 + 0.15 * 0.7)
        assert outcome.value.respondent.overall == 0.55
        assert outcome.value.tokens_used == TOKENS_PER_CALL

    @pytest.mark.asyncio
    async def test_failure_gives_neutral_assessment(self, analysis_input):
        reasoning = FakeReasoningService({"credibility": ExternalServiceError("boom")})
        outcome = await CredibilityAgent(reasoning).run(analysis_input, _facts(), [], [], "ctx")

        assert not outcome.succeeded
        assert outcome.value.claimant.overall == 0.5
        assert outcome.value.respondent.factors.plausibility == 0.5
        assert outcome.value.comparison == "Credibility assessment could not be completed."
        assert outcome.value.claimant.reasoning == "Unable to complete credibility assessment."

    def test_claimant_only_without_evidence_has_no_strengths(self):
        analysis_input = make_input(respondent=None, evidence_summaries=[])
        result = claimant_only_result(analysis_input, ExtractedFactsResult())

        assert result.claimant.strengths == []
        assert result.claimant.overall == pytest.approx(0.5 / 3)
