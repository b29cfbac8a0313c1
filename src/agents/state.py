import operator
from typing import Annotated, Dict, List, Optional, TypedDict

from src.analysis.schemas import (
    AnalysisInput,
    AnalysisOptions,
    ContradictionResult,
    CredibilityResult,
    ExtractedFactsResult,
    FactComparisonResult,
    TimelineEvent,
)


def _merge_dicts(left: Dict[str, str], right: Dict[str, str]) -> Dict[str, str]:
    return {**(left or {}), **(right or {})}


class AnalysisState(TypedDict, total=False):
    # Inputs, set once per run
    input: AnalysisInput
    options: AnalysisOptions
    case_context: str
    job_id: str
    # Phase outputs
    extracted_facts: Optional[ExtractedFactsResult]
    comparison: Optional[FactComparisonResult]
    timeline: Optional[List[TimelineEvent]]
    contradictions: Optional[ContradictionResult]
    credibility: Optional[CredibilityResult]
    # Accumulators
    tokens_used: Annotated[int, operator.add]
    diagnostics: Annotated[Dict[str, str], _merge_dicts]
