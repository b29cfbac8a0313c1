"""Token cost estimates.

``estimate_run_cost`` prices an actual run at a blended rate; the per-phase
estimators price a run before it starts, from input sizes alone, using the
per-tier list prices below (USD per million tokens).
"""

import math
from typing import Optional

from src.config import settings

FAST_INPUT_PER_M = 0.25
FAST_OUTPUT_PER_M = 1.25
REASONING_INPUT_PER_M = 3.0
REASONING_OUTPUT_PER_M = 15.0

# ~4 characters per token
CHARS_PER_TOKEN = 4


def estimate_run_cost(tokens_used: int, per_million: Optional[float] = None) -> float:
    rate = settings.ANALYSIS_COST_PER_MILLION_TOKENS if per_million is None else per_million
    return tokens_used / 1_000_000 * rate


def _fast(input_tokens: float, output_tokens: float) -> float:
    return input_tokens / 1_000_000 * FAST_INPUT_PER_M + output_tokens / 1_000_000 * FAST_OUTPUT_PER_M


def _reasoning(input_tokens: float, output_tokens: float) -> float:
    return input_tokens / 1_000_000 * REASONING_INPUT_PER_M + output_tokens / 1_000_000 * REASONING_OUTPUT_PER_M


def estimate_fact_extraction_cost(claimant_statement_length: int, respondent_statement_length: int) -> float:
    claimant_tokens = math.ceil((claimant_statement_length + 2000) / CHARS_PER_TOKEN)
    respondent_tokens = (
        math.ceil((respondent_statement_length + 2000) / CHARS_PER_TOKEN)
        if respondent_statement_length > 0 else 0
    )
    return _fast(claimant_tokens + respondent_tokens, 2048)


def estimate_comparison_cost(claimant_facts_count: int, respondent_facts_count: int) -> float:
    return _reasoning((claimant_facts_count + respondent_facts_count) * 150 + 1000, 1024)


def estimate_contradiction_cost(disputed_facts_count: int, statement_length: int) -> float:
    return _reasoning((disputed_facts_count * 200 + statement_length * 2) / CHARS_PER_TOKEN + 1000, 1024)


def estimate_credibility_cost(statement_lengths: int, facts_count: int) -> float:
    return _reasoning(statement_lengths / CHARS_PER_TOKEN + facts_count * 100 + 2000, 1024)
