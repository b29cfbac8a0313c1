"""Persistence of analysis jobs.

The orchestrator is the only writer. Phase checkpoints are validated against
their pydantic schema before they are written and re-validated when a job is
read back, so a malformed record never reaches the database or a consumer.
"""

import logging
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.analysis.exceptions import AnalysisInProgressError, PersistenceError
from src.analysis.models import AnalysisJob
from src.analysis.schemas import (
    AnalysisJobRecord,
    AnalysisPhase,
    AnalysisStatus,
    Contradiction,
    CredibilityResult,
    DisputedFact,
    ExtractedFactsResult,
    TimelineEvent,
    UndisputedFact,
)
from src.shared.models import utcnow

logger = logging.getLogger(__name__)

CHECKPOINT_ADAPTERS: Dict[str, TypeAdapter] = {
    "extracted_facts": TypeAdapter(ExtractedFactsResult),
    "disputed_facts": TypeAdapter(List[DisputedFact]),
    "undisputed_facts": TypeAdapter(List[UndisputedFact]),
    "timeline": TypeAdapter(List[TimelineEvent]),
    "contradictions": TypeAdapter(List[Contradiction]),
    "credibility_scores": TypeAdapter(CredibilityResult),
    "phase_diagnostics": TypeAdapter(Dict[str, str]),
}

_WRITABLE = frozenset(
    c.name for c in AnalysisJob.__table__.columns if c.name not in ("id", "case_id", "created_at")
)


def _as_uuid(job_id: Union[UUID, str]) -> UUID:
    return job_id if isinstance(job_id, UUID) else UUID(str(job_id))


def _to_record(job: AnalysisJob) -> AnalysisJobRecord:
    return AnalysisJobRecord.model_validate(
        {c.name: getattr(job, c.name) for c in AnalysisJob.__table__.columns}
    )


def _reset_values(started: bool) -> Dict[str, Any]:
    now = utcnow()
    values: Dict[str, Any] = {
        # A started job is claimed as PROCESSING so the guard holds from the first write.
        "status": AnalysisStatus.PROCESSING if started else AnalysisStatus.QUEUED,
        "progress": 0,
        "phase": AnalysisPhase.QUEUED.value,
        "queued_at": now,
        "started_at": now if started else None,
        "completed_at": None,
        "failed_at": None,
        "failure_reason": None,
        "tokens_used": 0,
        "processing_time_ms": None,
        "estimated_cost": None,
        "phase_diagnostics": None,
        "updated_at": now,
    }
    # Checkpoints from an earlier run must not mix with this one's.
    for name in CHECKPOINT_ADAPTERS:
        values.setdefault(name, None)
    return values


class AnalysisJobStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self, action: str):
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Failed to {action}: {e}") from e

    async def _find(self, case_id: str) -> Optional[AnalysisJob]:
        result = await self.db.execute(
            select(AnalysisJob)
            .where(AnalysisJob.case_id == case_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _reset(self, case_id: str, force: bool, started: bool) -> AnalysisJobRecord:
        """
        Reset the case's job, creating it if needed.

        A started reset claims the job as PROCESSING; a queue-only reset leaves
        it QUEUED. Either way it is a single conditional UPDATE that skips a job
        currently PROCESSING (unless ``force``), so two callers can never both
        claim it.
        """
        values = _reset_values(started)

        async def _claim() -> bool:
            stmt = update(AnalysisJob).where(AnalysisJob.case_id == case_id)
            if not force:
                stmt = stmt.where(AnalysisJob.status != AnalysisStatus.PROCESSING)
            result = await self.db.execute(stmt.values(**values))
            return result.rowcount > 0

        try:
            if not await _claim():
                if await self._find(case_id) is not None:
                    raise AnalysisInProgressError(case_id)
                self.db.add(AnalysisJob(case_id=case_id, **values))
                try:
                    await self.db.flush()
                except IntegrityError:
                    # Another worker inserted the row first; claim it instead.
                    await self.db.rollback()
                    if not await _claim():
                        raise AnalysisInProgressError(case_id)
            await self.db.commit()
            job = await self._find(case_id)
        except AnalysisInProgressError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Failed to reset analysis job for case {case_id}: {e}") from e
        return _to_record(job)

    async def get_or_create(self, case_id: str, force: bool = False) -> AnalysisJobRecord:
        record = await self._reset(case_id, force=force, started=True)
        logger.info("Analysis job %s claimed for case %s", record.id, case_id)
        return record

    async def queue(self, case_id: str) -> AnalysisJobRecord:
        record = await self._reset(case_id, force=False, started=False)
        logger.info("Analysis job %s queued for case %s", record.id, case_id)
        return record

    async def update_job(self, job_id: Union[UUID, str], **fields: Any) -> None:
        unknown = set(fields) - _WRITABLE
        if unknown:
            raise ValueError(f"Unknown analysis job fields: {sorted(unknown)}")

        values: Dict[str, Any] = {}
        for name, value in fields.items():
            adapter = CHECKPOINT_ADAPTERS.get(name)
            if adapter is not None and value is not None:
                try:
                    value = adapter.dump_python(adapter.validate_python(value), mode="json", by_alias=True)
                except ValidationError as e:
                    raise PersistenceError(f"Invalid {name} checkpoint: {e.error_count()} error(s)") from e
            values[name] = value
        values["updated_at"] = utcnow()

        try:
            result = await self.db.execute(
                update(AnalysisJob).where(AnalysisJob.id == _as_uuid(job_id)).values(**values)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Failed to update analysis job {job_id}: {e}") from e
        if result.rowcount == 0:
            await self.db.rollback()
            raise PersistenceError(f"Analysis job {job_id} not found")
        await self._commit(f"update analysis job {job_id}")

    async def get_by_case(self, case_id: str) -> Optional[AnalysisJobRecord]:
        try:
            job = await self._find(case_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load analysis job for case {case_id}: {e}") from e
        return _to_record(job) if job else None

    async def list_queued(self, limit: int = 5) -> List[AnalysisJobRecord]:
        try:
            result = await self.db.execute(
                select(AnalysisJob)
                .where(AnalysisJob.status == AnalysisStatus.QUEUED)
                .order_by(AnalysisJob.queued_at.asc())
                .limit(limit)
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list queued analysis jobs: {e}") from e
        return [_to_record(job) for job in result.scalars().all()]
