import json
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Union
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from src.analysis.exceptions import (
    AnalysisInProgressError,
    ConfigurationError,
    ExternalServiceError,
    PersistenceError,
)
from src.analysis.models import AnalysisJob  # noqa: F401  (registers the table)
from src.analysis.schemas import (
    AnalysisInput,
    AnalysisJobRecord,
    AnalysisStatus,
    EvidenceEntities,
    EvidenceSummary,
    PartySource,
)
from src.database import Base, create_session_factory
from src.llm.schemas import GenerationResult, QualityTier

TOKENS_PER_CALL = 100

# User-prompt markers identifying which phase is calling the reasoning service
_PHASE_MARKERS = (
    ("facts:claimant", ("List the material facts", "Statement of the claimant")),
    ("facts:respondent", ("List the material facts", "Statement of the respondent")),
    ("claims", ("Identify the specific demands",)),
    ("comparison", ("Compare the two sets of facts",)),
    ("timeline", ("chronological timeline",)),
    ("contradictions", ("Identify direct contradictions",)),
    ("credibility", ("Assess how credible",)),
)


def phase_of(user_prompt: str) -> str:
    for phase, markers in _PHASE_MARKERS:
        if all(m in user_prompt for m in markers):
            return phase
    raise AssertionError("Unrecognised prompt")


Scripted = Union[str, Exception, Callable[[str], str]]


class FakeReasoningService:
    """Returns scripted text per phase; unscripted phases fail like an outage."""

    def __init__(self, responses: Optional[Dict[str, Scripted]] = None, configured: bool = True):
        self.responses = dict(responses or {})
        self.configured = configured
        self.calls: List[Dict[str, Any]] = []

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError("ANTHROPIC_API_KEY is required when using the anthropic provider")

    async def generate(self, system_prompt: str, user_prompt: str, max_tokens: int, tier: QualityTier):
        phase = phase_of(user_prompt)
        self.calls.append({"phase": phase, "tier": tier, "max_tokens": max_tokens, "prompt": user_prompt})
        scripted = self.responses.get(phase)
        if scripted is None:
            raise ExternalServiceError(f"no scripted response for {phase}")
        if isinstance(scripted, Exception):
            raise scripted
        text = scripted(user_prompt) if callable(scripted) else scripted
        return GenerationResult(text=text, input_tokens=60, output_tokens=40)

    def phases_called(self) -> List[str]:
        return [c["phase"] for c in self.calls]


class FakeJobStore:
    """In-memory stand-in for ``AnalysisJobStore`` that records every write."""

    def __init__(self, fail_on: Optional[str] = None):
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.updates: List[Dict[str, Any]] = []
        self.fail_on = fail_on

    def seed(self, case_id: str, status: AnalysisStatus) -> Dict[str, Any]:
        job = {"id": uuid4(), "case_id": case_id, "status": status, "progress": 0}
        self.jobs[case_id] = job
        return job

    async def get_or_create(self, case_id: str, force: bool = False) -> AnalysisJobRecord:
        job = self.jobs.get(case_id)
        if job is None:
            job = self.seed(case_id, AnalysisStatus.QUEUED)
        elif job["status"] == AnalysisStatus.PROCESSING and not force:
            raise AnalysisInProgressError(case_id)
        job.update(status=AnalysisStatus.PROCESSING, phase="queued", progress=0, failure_reason=None)
        return AnalysisJobRecord(id=job["id"], case_id=case_id, status=job["status"], progress=0)

    async def update_job(self, job_id, **fields):
        if self.fail_on and self.fail_on in fields:
            raise PersistenceError(f"write of {self.fail_on} failed")
        self.updates.append(fields)
        for job in self.jobs.values():
            if str(job["id"]) == str(job_id):
                job.update(fields)

    def job(self, case_id: str) -> Dict[str, Any]:
        return self.jobs[case_id]

    def checkpointed(self, field: str) -> bool:
        return any(field in u for u in self.updates)


# ---------------------------------------------------------------------------
# Sample case data
# ---------------------------------------------------------------------------

CLAIMANT_STATEMENT = (
    "On January 15, 2024 I paid the respondent $2,400 to renovate my kitchen. "
    "The work was supposed to be finished by March 1, 2024 but the contractor stopped "
    "showing up in February and the cabinets were never installed. I want a full refund."
)

RESPONDENT_STATEMENT = (
    "The claimant changed the cabinet order twice in February 2024, which delayed the supplier. "
    "We completed the demolition and plumbing work as agreed and only stopped after the "
    "claimant refused to pay for the second cabinet change. No refund is owed."
)


def make_input(case_id: str = "case-1", respondent: Optional[str] = RESPONDENT_STATEMENT, **overrides) -> AnalysisInput:
    data = dict(
        case_id=case_id,
        case_description="Kitchen renovation left unfinished after a dispute over cabinet changes.",
        dispute_type="contract",
        claimed_amount=2400,
        claimant_statement=CLAIMANT_STATEMENT,
        respondent_statement=respondent,
        evidence_summaries=[
            EvidenceSummary(
                id="ev_1",
                file_name="invoice.pdf",
                document_type="invoice",
                summary="Invoice for kitchen renovation, paid in full.",
                entities=EvidenceEntities(dates=["2024-01-15"], amounts=[2400]),
                submitted_by=PartySource.CLAIMANT,
            ),
            EvidenceSummary(
                id="ev_2",
                file_name="change_order.pdf",
                summary="Second cabinet change order signed by the claimant.",
                entities=EvidenceEntities(dates=["February 20, 2024"]),
                submitted_by=PartySource.RESPONDENT,
            ),
        ],
    )
    data.update(overrides)
    return AnalysisInput(**data)


CLAIMANT_FACTS = json.dumps([
    {
        "id": "fact_1",
        "statement": "Claimant paid the respondent $2,400 for the renovation",
        "category": "event",
        "date": "2024-01-15",
        "amount": 2400,
        "supportingEvidence": ["ev_1"],
        "confidence": 0.95,
    },
    {
        "statement": "The cabinets were never installed",
        "category": "allegation",
        "confidence": 0.8,
    },
    {"statement": "Claimant seeks a full refund of $2,400", "category": "claim", "amount": "$2,400"},
])

RESPONDENT_FACTS = json.dumps([
    {
        "statement": "Claimant changed the cabinet order twice",
        "category": "event",
        "date": "February 2024",
        "confidence": 0.9,
    },
    {"statement": "Demolition and plumbing were completed", "category": "admission", "confidence": 1.4},
])

COMPARISON = json.dumps({
    "disputed": [
        {
            "topic": "cabinet installation",
            "claimantPosition": "The contractor abandoned the job",
            "respondentPosition": "Claimant's order changes delayed the cabinets",
            "relevantEvidence": ["ev_2"],
            "materialityScore": 0.9,
        }
    ],
    "undisputed": [
        {"fact": "Claimant paid $2,400", "agreedBy": ["claimant", "respondent"], "materialityScore": 0.6}
    ],
})

TIMELINE = json.dumps({
    "events": [
        {"date": "2024-03-01", "event": "Agreed completion date", "source": "claimant"},
        {"date": "2024-01-15", "event": "Payment of $2,400 made", "source": "evidence", "sourceId": "ev_1"},
    ],
    "undatedEvents": [{"event": "Cabinet installation never happened", "source": "claimant"}],
})

CONTRADICTIONS = json.dumps({
    "contradictions": [
        {
            "topic": "Why work stopped",
            "claimantClaim": "The contractor stopped showing up",
            "respondentClaim": "Work stopped because the claimant refused to pay",
            "severity": "major",
            "analysis": "The change order supports the respondent.",
        }
    ],
})

CREDIBILITY = json.dumps({
    "claimant": {
        "factors": {
            "evidenceSupport": 0.8,
            "internalConsistency": 0.7,
            "externalConsistency": 0.6,
            "specificity": 0.7,
            "plausibility": 0.7,
        },
        "reasoning": "Payment is documented.",
        "strengths": ["Invoice"],
    },
    "respondent": {"overall": 0.55, "factors": {}, "reasoning": "Change order is signed."},
    "comparison": "Both accounts are partly supported.",
})


def full_script() -> Dict[str, Scripted]:
    return {
        "facts:claimant": CLAIMANT_FACTS,
        "facts:respondent": RESPONDENT_FACTS,
        "comparison": COMPARISON,
        "timeline": TIMELINE,
        "contradictions": CONTRADICTIONS,
        "credibility": CREDIBILITY,
    }


@pytest.fixture
def analysis_input() -> AnalysisInput:
    return make_input()


@pytest.fixture
def claimant_only_input() -> AnalysisInput:
    return make_input(respondent=None)


@pytest.fixture
def fake_store() -> FakeJobStore:
    return FakeJobStore()


@pytest.fixture
def fake_reasoning() -> FakeReasoningService:
    return FakeReasoningService(full_script())


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
