from src.llm.factory import (
    get_fast_llm,
    get_reasoning_llm,
    get_llm_for_tier,
    clear_llm_cache,
)
from src.llm.schemas import GenerationResult, QualityTier
from src.llm.service import ReasoningService
