import logging
from typing import Union

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.analysis.exceptions import ConfigurationError, InputError, PersistenceError
from src.analysis.schemas import (
    AnalysisInput,
    AnalysisOptions,
    AnalysisPhase,
    AnalysisResult,
    AnalysisStatus,
    AnalysisStatusResponse,
    ensure_runnable,
)
from src.analysis.service import AnalysisService
from src.database import AsyncSessionLocal, get_db
from src.llm.service import ReasoningService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cases", tags=["analysis"])


class StartAnalysisRequest(BaseModel):
    input: AnalysisInput
    options: AnalysisOptions = Field(default_factory=AnalysisOptions)
    run_async: bool = True


def get_reasoning_service() -> ReasoningService:
    return ReasoningService()


def get_session_factory():
    return AsyncSessionLocal


async def run_analysis_in_background(session_factory, reasoning: ReasoningService, request: StartAnalysisRequest):
    async with session_factory() as session:
        result = await AnalysisService(session, reasoning).run(request.input, request.options)
    logger.info("Background analysis for case %s finished: %s", request.input.case_id, result.status)


@router.post("/{case_id}/analysis", response_model=Union[AnalysisResult, AnalysisStatusResponse])
async def start_analysis_endpoint(
    case_id: str,
    request: StartAnalysisRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    reasoning: ReasoningService = Depends(get_reasoning_service),
    session_factory=Depends(get_session_factory),
):
    if request.input.case_id != case_id:
        raise HTTPException(status_code=400, detail="Case id in the body does not match the URL")

    service = AnalysisService(db, reasoning)
    try:
        ensure_runnable(request.input)
        current = await service.get_status(case_id)
        if current.status == AnalysisStatus.PROCESSING.value and not request.options.force:
            return current
        if current.status == AnalysisStatus.COMPLETED.value and not request.options.force:
            return current
        reasoning.ensure_configured()

        if request.run_async:
            background_tasks.add_task(run_analysis_in_background, session_factory, reasoning, request)
            return AnalysisStatusResponse(
                case_id=case_id, status=AnalysisStatus.QUEUED.value, phase=AnalysisPhase.QUEUED.value
            )
        return await service.run(request.input, request.options)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except PersistenceError as e:
        logger.error("Analysis request for case %s failed: %s", case_id, e)
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{case_id}/analysis", response_model=AnalysisStatusResponse)
async def get_analysis_status_endpoint(
    case_id: str,
    db: AsyncSession = Depends(get_db),
):
    service = AnalysisService(db, reasoning=None)
    try:
        return await service.get_status(case_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
