"""The five-phase analysis workflow as a LangGraph state graph.

Nodes run in a fixed order. Each node reports progress and persists its
output through the ``run`` hooks supplied by the orchestrator; the graph
itself holds no job or store state.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from langgraph.graph import END, StateGraph

from src.agents.comparison.agent import FactComparisonAgent
from src.agents.contradictions.agent import ContradictionAgent
from src.agents.credibility.agent import CredibilityAgent, not_assessed_result
from src.agents.facts.agent import FactExtractionAgent
from src.agents.state import AnalysisState
from src.agents.timeline.agent import TimelineAgent
from src.analysis.schemas import (
    AnalysisPhase,
    ContradictionResult,
    ExtractedFactsResult,
    FactComparisonResult,
    PhaseOutcome,
)

# (start, done) percentages reported around each phase
PHASE_PROGRESS = {
    AnalysisPhase.EXTRACTING_FACTS: (10, 20),
    AnalysisPhase.COMPARING_FACTS: (30, 40),
    AnalysisPhase.BUILDING_TIMELINE: (50, 60),
    AnalysisPhase.DETECTING_CONTRADICTIONS: (70, 80),
    AnalysisPhase.SCORING_CREDIBILITY: (90, None),
}


@dataclass
class AnalysisAgents:
    facts: FactExtractionAgent
    comparison: FactComparisonAgent
    timeline: TimelineAgent
    contradictions: ContradictionAgent
    credibility: CredibilityAgent

    @classmethod
    def create(cls, reasoning) -> "AnalysisAgents":
        return cls(
            facts=FactExtractionAgent(reasoning),
            comparison=FactComparisonAgent(reasoning),
            timeline=TimelineAgent(reasoning),
            contradictions=ContradictionAgent(reasoning),
            credibility=CredibilityAgent(reasoning),
        )


def _accounting(name: str, outcome: Optional[PhaseOutcome]) -> Dict[str, Any]:
    if outcome is None:
        return {"tokens_used": 0, "diagnostics": {}}
    diagnostics = {} if outcome.succeeded else {name: outcome.diagnostic or f"{name} degraded"}
    return {"tokens_used": outcome.tokens_used, "diagnostics": diagnostics}


def create_analysis_pipeline(agents: AnalysisAgents, run):
    """
    Build the compiled graph for one run.

    ``run`` provides the per-run hooks: ``begin(phase, progress)`` and
    ``finish(phase, progress)`` report progress (``begin`` also raises if the
    run was cancelled),
    ``checkpoint(**fields)`` persists phase output and ``record(name, outcome)``
    accumulates tokens and diagnostics for the failure path.
    """

    async def _start(phase: AnalysisPhase):
        await run.begin(phase, PHASE_PROGRESS[phase][0])

    async def _done(phase: AnalysisPhase):
        await run.finish(phase, PHASE_PROGRESS[phase][1])

    async def extract_facts_node(state: AnalysisState):
        phase = AnalysisPhase.EXTRACTING_FACTS
        await _start(phase)
        outcome = None
        if state["options"].skip_fact_extraction:
            facts = ExtractedFactsResult()
        else:
            outcome = await agents.facts.invoke(state)
            facts = outcome.value
            run.record(agents.facts.name, outcome)
            await run.checkpoint(extracted_facts=facts)
        await _done(phase)
        return {"extracted_facts": facts, **_accounting(agents.facts.name, outcome)}

    async def compare_facts_node(state: AnalysisState):
        phase = AnalysisPhase.COMPARING_FACTS
        await _start(phase)
        outcome = None
        if state["options"].skip_fact_comparison:
            comparison = FactComparisonResult()
        else:
            if state["extracted_facts"].claimant:
                outcome = await agents.comparison.invoke(state)
                comparison = outcome.value
                run.record(agents.comparison.name, outcome)
            else:
                comparison = FactComparisonResult()
            await run.checkpoint(disputed_facts=comparison.disputed, undisputed_facts=comparison.undisputed)
        await _done(phase)
        return {"comparison": comparison, **_accounting(agents.comparison.name, outcome)}

    async def build_timeline_node(state: AnalysisState):
        phase = AnalysisPhase.BUILDING_TIMELINE
        await _start(phase)
        outcome = None
        if state["options"].skip_timeline:
            timeline = []
        else:
            outcome = await agents.timeline.invoke(state)
            timeline = outcome.value
            run.record(agents.timeline.name, outcome)
            await run.checkpoint(timeline=timeline)
        await _done(phase)
        return {"timeline": timeline, **_accounting(agents.timeline.name, outcome)}

    async def detect_contradictions_node(state: AnalysisState):
        phase = AnalysisPhase.DETECTING_CONTRADICTIONS
        await _start(phase)
        outcome = None
        if state["options"].skip_contradictions:
            contradictions = ContradictionResult()
        else:
            outcome = await agents.contradictions.invoke(state)
            contradictions = outcome.value
            run.record(agents.contradictions.name, outcome)
            await run.checkpoint(contradictions=contradictions.contradictions)
        await _done(phase)
        return {"contradictions": contradictions, **_accounting(agents.contradictions.name, outcome)}

    async def score_credibility_node(state: AnalysisState):
        await _start(AnalysisPhase.SCORING_CREDIBILITY)
        outcome = None
        if state["options"].skip_credibility:
            credibility = not_assessed_result()
        else:
            if state["extracted_facts"].claimant:
                outcome = await agents.credibility.invoke(state)
                credibility = outcome.value
                run.record(agents.credibility.name, outcome)
            else:
                credibility = not_assessed_result()
            await run.checkpoint(credibility_scores=credibility)
        # The final "completed" report follows in the orchestrator.
        return {"credibility": credibility, **_accounting(agents.credibility.name, outcome)}

    workflow = StateGraph(AnalysisState)

    workflow.add_node("extract_facts", extract_facts_node)
    workflow.add_node("compare_facts", compare_facts_node)
    workflow.add_node("build_timeline", build_timeline_node)
    workflow.add_node("detect_contradictions", detect_contradictions_node)
    workflow.add_node("score_credibility", score_credibility_node)

    workflow.set_entry_point("extract_facts")
    workflow.add_edge("extract_facts", "compare_facts")
    workflow.add_edge("compare_facts", "build_timeline")
    workflow.add_edge("build_timeline", "detect_contradictions")
    workflow.add_edge("detect_contradictions", "score_credibility")
    workflow.add_edge("score_credibility", END)

    return workflow.compile()
