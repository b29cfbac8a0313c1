import asyncio
import logging
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.analysis.orchestrator import AnalysisOrchestrator, ProgressCallback
from src.analysis.schemas import (
    AnalysisInput,
    AnalysisOptions,
    AnalysisProgress,
    AnalysisResult,
    AnalysisStatus,
    AnalysisStatusResponse,
    ensure_runnable,
)
from src.analysis.store import AnalysisJobStore
from src.config import settings
from src.core.websockets.manager import case_room, manager
from src.llm.service import ReasoningService

logger = logging.getLogger(__name__)

InputLoader = Callable[[str], Awaitable[Optional[AnalysisInput]]]

NOT_STARTED = "NOT_STARTED"


async def broadcast_progress(progress: AnalysisProgress) -> None:
    """Publish a progress update to everyone watching the case."""
    await manager.broadcast_json(progress.model_dump(mode="json", by_alias=True), case_room(progress.case_id))


class AnalysisService:
    def __init__(self, db: AsyncSession, reasoning: Optional[ReasoningService] = None):
        self.db = db
        self.store = AnalysisJobStore(db)
        self.reasoning = reasoning or ReasoningService()

    async def run(
        self,
        analysis_input: AnalysisInput,
        options: Optional[AnalysisOptions] = None,
        on_progress: Optional[ProgressCallback] = broadcast_progress,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AnalysisResult:
        ensure_runnable(analysis_input)
        orchestrator = AnalysisOrchestrator(self.store, self.reasoning)
        return await orchestrator.run_analysis(analysis_input, options, on_progress, cancel_event)

    async def queue(self, case_id: str) -> AnalysisStatusResponse:
        job = await self.store.queue(case_id)
        return AnalysisStatusResponse(
            case_id=case_id, status=job.status.value, progress=job.progress, phase=job.phase
        )

    async def get_status(self, case_id: str) -> AnalysisStatusResponse:
        job = await self.store.get_by_case(case_id)
        if job is None:
            return AnalysisStatusResponse(case_id=case_id, status=NOT_STARTED)
        return AnalysisStatusResponse(
            case_id=case_id,
            status=job.status.value,
            progress=job.progress,
            phase=job.phase,
            failure_reason=job.failure_reason,
            # Checkpoints are exposed once the run has ended, including the
            # partial results of a failed run.
            job=job if job.status in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED) else None,
        )


async def process_pending_analysis(
    session_factory,
    loader: InputLoader,
    limit: Optional[int] = None,
    max_concurrency: Optional[int] = None,
    reasoning: Optional[ReasoningService] = None,
    on_progress: Optional[ProgressCallback] = broadcast_progress,
) -> int:
    """
    Run every queued job (oldest first, up to ``limit``).

    Each job gets its own session and orchestrator; at most ``max_concurrency``
    run at once. Jobs whose input cannot be loaded are skipped.
    Returns the number of jobs processed.
    """
    limit = limit or settings.ANALYSIS_BATCH_SIZE
    semaphore = asyncio.Semaphore(max_concurrency or settings.ANALYSIS_MAX_CONCURRENT_JOBS)
    reasoning = reasoning or ReasoningService()
    reasoning.ensure_configured()

    async with session_factory() as session:
        queued = await AnalysisJobStore(session).list_queued(limit)
    if not queued:
        return 0
    logger.info("Processing %d queued analysis jobs", len(queued))

    async def _process(case_id: str) -> bool:
        async with semaphore:
            analysis_input = await loader(case_id)
            if analysis_input is None:
                logger.warning("No analysis input for queued case %s, skipping", case_id)
                return False
            async with session_factory() as session:
                service = AnalysisService(session, reasoning)
                result = await service.run(analysis_input, on_progress=on_progress)
            logger.info("Queued analysis for case %s finished: %s", case_id, result.status)
            return True

    results = await asyncio.gather(*(_process(job.case_id) for job in queued), return_exceptions=True)
    processed = 0
    for job, outcome in zip(queued, results):
        if isinstance(outcome, BaseException):
            logger.error("Queued analysis for case %s could not run: %s", job.case_id, outcome)
        elif outcome:
            processed += 1
    return processed
