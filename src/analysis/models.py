from sqlalchemy import Column, DateTime, Enum as SAEnum, Float, Integer, String, Text
from src.database import Base
from src.shared.models import AuditMixin, JSONType, utcnow
from src.analysis.schemas import AnalysisStatus


class AnalysisJob(Base, AuditMixin):
    """One analysis job per case; re-runs reset the same row."""

    __tablename__ = "analysis_jobs"

    case_id = Column(String, nullable=False, unique=True, index=True)
    status = Column(
        SAEnum(AnalysisStatus, name="analysis_status"),
        default=AnalysisStatus.QUEUED,
        nullable=False,
        index=True,
    )
    progress = Column(Integer, default=0, nullable=False)
    phase = Column(String, nullable=True)

    queued_at = Column(DateTime, default=utcnow, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    failed_at = Column(DateTime, nullable=True)
    failure_reason = Column(Text, nullable=True)

    tokens_used = Column(Integer, default=0, nullable=False)
    processing_time_ms = Column(Integer, nullable=True)
    estimated_cost = Column(Float, nullable=True)

    # Phase checkpoints, stored in their camelCase JSON form
    extracted_facts = Column(JSONType, nullable=True)
    disputed_facts = Column(JSONType, nullable=True)
    undisputed_facts = Column(JSONType, nullable=True)
    timeline = Column(JSONType, nullable=True)
    contradictions = Column(JSONType, nullable=True)
    credibility_scores = Column(JSONType, nullable=True)
    phase_diagnostics = Column(JSONType, nullable=True)
