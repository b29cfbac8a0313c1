from enum import Enum

from pydantic import BaseModel


class QualityTier(str, Enum):
    """Model tier requested by a phase.

    FAST covers extraction-style work (facts, claims, timeline); REASONING
    covers comparative judgment (fact comparison, contradictions, credibility).
    """

    FAST = "fast"
    REASONING = "reasoning"


class GenerationResult(BaseModel):
    text: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class TierConfig(BaseModel):
    tier: QualityTier
    provider: str
    model: str
