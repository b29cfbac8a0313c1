"""Runs the five analysis phases for one case and tracks the job.

``AnalysisOrchestrator.run_analysis`` never raises for phase, persistence or
cancellation problems: those end as a FAILED job and a FAILED result holding
whatever phases had completed. Only a missing reasoning-service configuration
is raised, before any job is touched.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from src.agents.pipeline import AnalysisAgents, create_analysis_pipeline
from src.analysis.costs import estimate_run_cost
from src.analysis.exceptions import AnalysisCancelledError, AnalysisInProgressError, PersistenceError
from src.analysis.formatting import build_case_context
from src.analysis.schemas import (
    AnalysisInput,
    AnalysisOptions,
    AnalysisPhase,
    AnalysisProgress,
    AnalysisResult,
    AnalysisStatus,
    CredibilityResult,
    ExtractedFactsResult,
    PhaseOutcome,
    phase_to_status,
)
from src.config import Settings, settings as default_settings
from src.shared.models import utcnow

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[AnalysisProgress], Awaitable[None]]

PHASE_MESSAGES = {
    AnalysisPhase.EXTRACTING_FACTS: "Extracting facts from party statements",
    AnalysisPhase.COMPARING_FACTS: "Comparing the parties' facts",
    AnalysisPhase.BUILDING_TIMELINE: "Building the case timeline",
    AnalysisPhase.DETECTING_CONTRADICTIONS: "Detecting contradictions",
    AnalysisPhase.SCORING_CREDIBILITY: "Scoring credibility",
    AnalysisPhase.COMPLETED: "Analysis complete",
    AnalysisPhase.FAILED: "Analysis failed",
}


class _PipelineRun:
    """Per-run hooks handed to the pipeline graph."""

    def __init__(
        self,
        store,
        case_id: str,
        job_id: str,
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[asyncio.Event],
    ):
        self.store = store
        self.case_id = case_id
        self.job_id = job_id
        self.on_progress = on_progress
        self.cancel_event = cancel_event
        self.outputs: Dict[str, Any] = {}
        self.tokens_used = 0
        self.diagnostics: Dict[str, str] = {}

    async def notify(self, phase: AnalysisPhase, progress: int):
        if self.on_progress is None:
            return
        update = AnalysisProgress(
            case_id=self.case_id,
            job_id=self.job_id,
            phase=phase,
            progress=progress,
            message=PHASE_MESSAGES.get(phase),
        )
        try:
            await self.on_progress(update)
        except Exception as e:
            logger.warning("Progress callback failed for case %s: %s", self.case_id, e)

    async def report(self, phase: AnalysisPhase, progress: int):
        await self.store.update_job(
            self.job_id, status=phase_to_status(phase), phase=phase.value, progress=progress
        )
        await self.notify(phase, progress)

    async def begin(self, phase: AnalysisPhase, progress: int):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise AnalysisCancelledError(f"Analysis for case {self.case_id} was cancelled")
        logger.info("Case %s job %s: %s", self.case_id, self.job_id, phase.value)
        await self.report(phase, progress)

    async def finish(self, phase: AnalysisPhase, progress: Optional[int]):
        if progress is not None:
            await self.report(phase, progress)

    async def checkpoint(self, **fields: Any):
        self.outputs.update(fields)
        await self.store.update_job(self.job_id, **fields)

    def record(self, name: str, outcome: PhaseOutcome):
        self.tokens_used += outcome.tokens_used
        if not outcome.succeeded:
            self.diagnostics[name] = outcome.diagnostic or f"{name} degraded"
            logger.warning("Case %s: %s phase degraded: %s", self.case_id, name, outcome.diagnostic)


class AnalysisOrchestrator:
    def __init__(self, store, reasoning, settings: Optional[Settings] = None):
        self.store = store
        self.reasoning = reasoning
        self.settings = settings or default_settings
        self.agents = AnalysisAgents.create(reasoning)

    async def run_analysis(
        self,
        analysis_input: AnalysisInput,
        options: Optional[AnalysisOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AnalysisResult:
        """
        Run the full analysis for one case.

        :param analysis_input: The case's statements and evidence summaries.
        :param options: Phase skip flags and ``force`` to override a running job.
        :param on_progress: Awaited after every progress write.
        :param cancel_event: Checked between phases; once set the run fails.
        :return: A COMPLETED or FAILED ``AnalysisResult``.
        """
        options = options or AnalysisOptions()
        case_id = analysis_input.case_id

        # Raises ConfigurationError before anything is written.
        self.reasoning.ensure_configured()

        started = time.monotonic()
        try:
            job = await self.store.get_or_create(case_id, force=options.force)
        except (AnalysisInProgressError, PersistenceError) as e:
            logger.warning("Not starting analysis for case %s: %s", case_id, e)
            return AnalysisResult(case_id=case_id, job_id="", status="failed", error=str(e))

        job_id = str(job.id)
        run = _PipelineRun(self.store, case_id, job_id, on_progress, cancel_event)
        pipeline = create_analysis_pipeline(self.agents, run)
        initial_state = {
            "input": analysis_input,
            "options": options,
            "case_context": build_case_context(analysis_input),
            "job_id": job_id,
            "tokens_used": 0,
            "diagnostics": {},
        }
        logger.info("Starting analysis for case %s (job %s)", case_id, job_id)

        try:
            final_state = await pipeline.ainvoke(initial_state)

            processing_time_ms = int((time.monotonic() - started) * 1000)
            tokens_used = final_state.get("tokens_used", 0)
            diagnostics = final_state.get("diagnostics") or {}
            cost = estimate_run_cost(tokens_used, self.settings.ANALYSIS_COST_PER_MILLION_TOKENS)

            await self.store.update_job(
                job_id,
                status=AnalysisStatus.COMPLETED,
                phase=AnalysisPhase.COMPLETED.value,
                progress=100,
                completed_at=utcnow(),
                tokens_used=tokens_used,
                processing_time_ms=processing_time_ms,
                estimated_cost=cost,
                phase_diagnostics=diagnostics,
            )
            await run.notify(AnalysisPhase.COMPLETED, 100)
        except Exception as e:
            return await self._fail(run, e, started)

        comparison = final_state.get("comparison")
        contradictions = final_state.get("contradictions")
        logger.info(
            "Analysis completed for case %s in %dms (%d tokens, %d degraded phases)",
            case_id, processing_time_ms, tokens_used, len(diagnostics),
        )
        return AnalysisResult(
            case_id=case_id,
            job_id=job_id,
            status="completed",
            extracted_facts=final_state.get("extracted_facts") or ExtractedFactsResult(),
            disputed_facts=comparison.disputed if comparison else [],
            undisputed_facts=comparison.undisputed if comparison else [],
            timeline=final_state.get("timeline") or [],
            contradictions=contradictions.contradictions if contradictions else [],
            credibility_scores=final_state.get("credibility") or CredibilityResult(),
            phase_diagnostics=diagnostics,
            processing_time_ms=processing_time_ms,
            total_tokens_used=tokens_used,
            estimated_cost=cost,
        )

    async def _fail(self, run: _PipelineRun, error: Exception, started: float) -> AnalysisResult:
        reason = str(error) or type(error).__name__
        processing_time_ms = int((time.monotonic() - started) * 1000)
        if isinstance(error, AnalysisCancelledError):
            logger.info("Analysis for case %s cancelled", run.case_id)
        else:
            logger.exception("Analysis failed for case %s (job %s)", run.case_id, run.job_id)

        try:
            await self.store.update_job(
                run.job_id,
                status=AnalysisStatus.FAILED,
                phase=AnalysisPhase.FAILED.value,
                progress=0,
                failed_at=utcnow(),
                failure_reason=reason,
                tokens_used=run.tokens_used,
                processing_time_ms=processing_time_ms,
                phase_diagnostics=run.diagnostics,
            )
        except Exception as e:
            logger.error("Could not record failure of job %s: %s", run.job_id, e)
        await run.notify(AnalysisPhase.FAILED, 0)

        outputs = run.outputs
        return AnalysisResult(
            case_id=run.case_id,
            job_id=run.job_id,
            status="failed",
            extracted_facts=outputs.get("extracted_facts") or ExtractedFactsResult(),
            disputed_facts=outputs.get("disputed_facts") or [],
            undisputed_facts=outputs.get("undisputed_facts") or [],
            timeline=outputs.get("timeline") or [],
            contradictions=outputs.get("contradictions") or [],
            credibility_scores=outputs.get("credibility_scores") or CredibilityResult(),
            phase_diagnostics=dict(run.diagnostics),
            error=reason,
            processing_time_ms=processing_time_ms,
            total_tokens_used=run.tokens_used,
            estimated_cost=estimate_run_cost(run.tokens_used, self.settings.ANALYSIS_COST_PER_MILLION_TOKENS),
        )
